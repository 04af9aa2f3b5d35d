"""
Draft board surfaces.

- SurfaceAdapter: what the queue engine needs from a page
- PlaywrightSurface: live Chromium page (see draftqueue.surface.browser)
- HtmlSnapshotSurface: saved page in BeautifulSoup, for dry runs and tests

PlaywrightSurface is not imported here so that offline use does not pull
in the browser stack.
"""

from draftqueue.surface.base import (
    DiscoveryQuery,
    Element,
    ElementDetachedError,
    SurfaceAdapter,
    SurfaceError,
)
from draftqueue.surface.snapshot import HtmlSnapshotSurface, TriggerRecord

__all__ = [
    "DiscoveryQuery",
    "Element",
    "ElementDetachedError",
    "HtmlSnapshotSurface",
    "SurfaceAdapter",
    "SurfaceError",
    "TriggerRecord",
]
