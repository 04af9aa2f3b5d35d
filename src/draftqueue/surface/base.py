"""
Surface adapter contract.

The draft board is a third-party React app with no API for editing the
queue. The only way to change it is to find the controls it renders and
activate them. SurfaceAdapter is the narrow set of capabilities the queue
engine needs from whatever is driving that page:

- discover(query): find elements by CSS marker (and optional exact label)
- container_of(element, markers): nearest enclosing row
- text_of(element): visible text
- trigger(element): scroll into view and activate
- is_attached / is_visible: liveness checks before acting
- has_filter_input / drive_filter_input / alternate_filter_triggers:
  narrow the board through its own search box

Element handles are opaque. A handle may go stale on any re-render, so
callers re-discover after every mutation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence

# Opaque handle owned by the adapter (a Playwright ElementHandle, a bs4 Tag...)
Element = Any


class SurfaceError(RuntimeError):
    """An action on the surface failed."""


class ElementDetachedError(SurfaceError):
    """The element was removed from the page between observation and action."""


@dataclass(frozen=True)
class DiscoveryQuery:
    """
    What to look for on the page.

    ``selector`` is a CSS selector. When ``label`` is set, only elements
    whose stripped visible text equals it (case-insensitive) are returned.
    """

    selector: str
    label: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.selector or not self.selector.strip():
            raise ValueError("DiscoveryQuery.selector must not be empty")

    def accepts_text(self, text: Optional[str]) -> bool:
        if self.label is None:
            return True
        return (text or "").strip().lower() == self.label.strip().lower()


class SurfaceAdapter(ABC):
    """
    Abstract driver for the live draft board.

    Implementations:
    - PlaywrightSurface: a real Chromium page
    - HtmlSnapshotSurface: a saved page held in BeautifulSoup (dry runs, tests)
    """

    @abstractmethod
    async def discover(self, query: DiscoveryQuery) -> list[Element]:
        """Return the currently rendered elements matching the query, in page order."""

    @abstractmethod
    async def container_of(self, element: Element, markers: Sequence[str]) -> Optional[Element]:
        """Return the nearest ancestor (or self) matching any marker, or None."""

    @abstractmethod
    async def text_of(self, element: Element) -> str:
        """Visible text under the element. Returns '' for a detached element."""

    @abstractmethod
    async def trigger(self, element: Element) -> None:
        """
        Scroll the element into view and activate it.

        Raises:
            ElementDetachedError: If the element is no longer on the page
            SurfaceError: If the activation itself failed
        """

    @abstractmethod
    async def is_attached(self, element: Element) -> bool:
        """Whether the element is still part of the page."""

    @abstractmethod
    async def is_visible(self, element: Element) -> bool:
        """Whether the element is rendered and can be activated."""

    @abstractmethod
    async def has_filter_input(self) -> bool:
        """Whether the board exposes a player search box."""

    @abstractmethod
    async def drive_filter_input(self, text: str) -> bool:
        """
        Put ``text`` into the board's search box.

        Returns True only when the page's own change handling accepted the
        value. False means the caller must not assume the list was filtered
        (it may still re-scan to find out).
        """

    @abstractmethod
    async def alternate_filter_triggers(self, text: str) -> None:
        """
        Bounded sequence of extra input signals (click, input, paste, change...)
        for frameworks that ignore a plain value assignment.
        """

    async def clear_filter_input(self) -> bool:
        """Restore the unfiltered list."""
        return await self.drive_filter_input("")
