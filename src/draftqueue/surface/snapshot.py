"""
HTML snapshot surface.

Loads a saved copy of the draft board into BeautifulSoup and behaves like
the live page closely enough for dry runs and tests:

- Only the first ``render_limit`` player rows are "rendered", the way the
  real board virtualizes its list
- Typing into the search box narrows the rows to those containing the text
- Remove triggers take their queue row out of the document
- Add triggers append a queue row when the page has a queue list
- ``framework_accepts_filter=False`` imitates a page that ignores a plain
  value assignment until the alternate input signals are sent

Usage:
    surface = HtmlSnapshotSurface(Path("board.html").read_text(), settings)
    engine = QueueReconciler(surface, settings)
    summary = await engine.clear_queue()
    Path("board-after.html").write_text(surface.to_html())
"""

import html
import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from bs4 import BeautifulSoup, Tag

from draftqueue.config import Settings
from draftqueue.players.names import letters_only
from draftqueue.surface.base import (
    DiscoveryQuery,
    Element,
    ElementDetachedError,
    SurfaceAdapter,
    SurfaceError,
)

logger = logging.getLogger(__name__)

_DISPLAY_NONE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)


@dataclass(frozen=True)
class TriggerRecord:
    """One activation seen by the snapshot, in order."""

    kind: str  # "add", "remove" or "other"
    text: str  # Text of the row the trigger sits in


class HtmlSnapshotSurface(SurfaceAdapter):
    """SurfaceAdapter over a static HTML document."""

    def __init__(
        self,
        markup: str,
        settings: Optional[Settings] = None,
        render_limit: Optional[int] = None,
        framework_accepts_filter: bool = True,
        alternate_triggers_apply: bool = False,
        row_selector: str = ".player-row",
        name_selector: str = ".player-name",
        queue_list_selector: Optional[str] = ".queue-list",
    ):
        """
        Args:
            markup: Saved page HTML
            settings: Selectors and labels (defaults if omitted)
            render_limit: Player rows rendered at once, None for all
            framework_accepts_filter: Whether a plain value assignment filters the list
            alternate_triggers_apply: Whether the alternate signals finally filter it
            row_selector: Board rows subject to filtering and the render window
            name_selector: Element inside a row holding just the player name
            queue_list_selector: Where add triggers append queue rows (None disables)
        """
        if render_limit is not None and render_limit < 0:
            raise ValueError(f"render_limit must be >= 0, got {render_limit}")

        self.settings = settings or Settings()
        self.soup = BeautifulSoup(markup, "html.parser")
        self.render_limit = render_limit
        self.framework_accepts_filter = framework_accepts_filter
        self.alternate_triggers_apply = alternate_triggers_apply
        self.row_selector = row_selector
        self.name_selector = name_selector
        self.queue_list_selector = queue_list_selector

        self.filter_text = ""
        self.filter_history: list[str] = []
        self.alternate_trigger_calls: list[str] = []
        self.triggered: list[TriggerRecord] = []

    def to_html(self) -> str:
        return str(self.soup)

    # =========================================================================
    # SurfaceAdapter
    # =========================================================================

    async def discover(self, query: DiscoveryQuery) -> list[Element]:
        rendered = self._rendered_row_ids()
        found = []
        for tag in self.soup.select(query.selector):
            if not self._is_rendered(tag, rendered):
                continue
            if query.label is not None and not query.accepts_text(self._text(tag)):
                continue
            found.append(tag)
        return found

    async def container_of(self, element: Element, markers: Sequence[str]) -> Optional[Element]:
        if not markers or not self._attached(element):
            return None
        return element.css.closest(", ".join(markers))

    async def text_of(self, element: Element) -> str:
        if not self._attached(element):
            return ""
        return self._text(element)

    async def trigger(self, element: Element) -> None:
        if not self._attached(element):
            raise ElementDetachedError("Element is no longer in the document")
        if not self._is_rendered(element, self._rendered_row_ids()):
            raise SurfaceError("Element is outside the rendered part of the list")

        if element.css.match(self.settings.remove_trigger_selector):
            self._remove_queue_row(element)
        elif element.css.match(self.settings.add_trigger_selector):
            self._append_queue_row(element)
        else:
            row = element.css.closest(self.row_selector)
            self.triggered.append(TriggerRecord("other", self._text(row or element)))

    async def is_attached(self, element: Element) -> bool:
        return self._attached(element)

    async def is_visible(self, element: Element) -> bool:
        if not self._attached(element):
            return False
        if not self._is_rendered(element, self._rendered_row_ids()):
            return False
        for tag in (element, *element.parents):
            if not isinstance(tag, Tag) or tag is self.soup:
                continue
            if tag.has_attr("hidden") or _DISPLAY_NONE.search(tag.get("style", "")):
                return False
        return True

    async def has_filter_input(self) -> bool:
        return self._filter_input() is not None

    async def drive_filter_input(self, text: str) -> bool:
        search_box = self._filter_input()
        if search_box is None:
            return False

        self.filter_history.append(text)
        search_box["value"] = text
        if not self.framework_accepts_filter:
            logger.debug("Snapshot ignored filter value '%s'", text)
            return False

        self.filter_text = text
        return True

    async def alternate_filter_triggers(self, text: str) -> None:
        self.alternate_trigger_calls.append(text)
        if self.alternate_triggers_apply and self._filter_input() is not None:
            self.filter_text = text

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _attached(self, element: Element) -> bool:
        if element is self.soup:
            return True
        return isinstance(element, Tag) and any(p is self.soup for p in element.parents)

    @staticmethod
    def _text(tag: Tag) -> str:
        return " ".join(tag.get_text(" ", strip=True).split())

    def _filter_input(self) -> Optional[Tag]:
        for selector in self.settings.filter_input_selectors:
            found = self.soup.select_one(selector)
            if found is not None:
                return found
        return None

    def _row_passes_filter(self, row: Tag) -> bool:
        needle = " ".join(letters_only(self.filter_text).split())
        if not needle:
            return True
        return needle in " ".join(letters_only(self._text(row)).split())

    def _rendered_row_ids(self) -> set[int]:
        rows = [row for row in self.soup.select(self.row_selector) if self._row_passes_filter(row)]
        if self.render_limit is not None:
            rows = rows[:self.render_limit]
        return {id(row) for row in rows}

    def _is_rendered(self, element: Tag, rendered: set[int]) -> bool:
        row = element.css.closest(self.row_selector)
        return row is None or id(row) in rendered

    def _remove_queue_row(self, element: Tag) -> None:
        row = element.css.closest(", ".join(self.settings.queue_container_selectors))
        target = row if row is not None else element
        self.triggered.append(TriggerRecord("remove", self._text(target)))
        target.extract()

    def _append_queue_row(self, element: Tag) -> None:
        row = element.css.closest(self.row_selector) or element.parent
        name_tag = row.select_one(self.name_selector) if row is not None else None
        name = self._text(name_tag) if name_tag is not None else self._text(row or element)
        self.triggered.append(TriggerRecord("add", self._text(row or element)))

        if self.queue_list_selector is None:
            return
        queue_list = self.soup.select_one(self.queue_list_selector)
        if queue_list is None:
            return

        label = html.escape(self.settings.remove_label.upper())
        fragment = BeautifulSoup(
            f'<li class="queue-item"><span class="queue-name">{html.escape(name)}</span>'
            f'<div class="{self._class_of(self.settings.remove_trigger_selector)}">{label}</div></li>',
            "html.parser",
        )
        queue_list.append(fragment.li)

    @staticmethod
    def _class_of(selector: str) -> str:
        """Class list for a generated element so it matches a simple class selector."""
        classes = re.findall(r"\.([\w-]+)", selector)
        return " ".join(classes) or "delete-button"
