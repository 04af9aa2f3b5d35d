"""
Reading the current queue off the board.

The queue has no data attributes worth trusting, so entries are found
through their remove buttons: every visible "REMOVE" control belongs to
one queued player, and the row around it carries the player's name
followed by position and team ("Josh Allen QB BUF REMOVE").
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from draftqueue.config import Settings
from draftqueue.surface.base import DiscoveryQuery, Element, SurfaceAdapter

logger = logging.getLogger(__name__)

POSITION_TOKENS = frozenset({"QB", "RB", "WR", "TE", "K", "DEF", "DST"})

_NUMBER = re.compile(r"^\d+$")


@dataclass(frozen=True)
class QueuedEntry:
    """
    One queued player as observed during a scan.

    ``element`` is the remove control. It is only valid until the next
    change to the page.
    """

    name: str
    element: Element
    container_text: str


def _is_noise(token: str) -> bool:
    return bool(_NUMBER.match(token)) or token.upper() in POSITION_TOKENS


def extract_name(text: Optional[str], remove_label: str = "remove") -> Optional[str]:
    """
    Pull the player name out of a queue row's text.

    Looks at the first three tokens, skipping rank numbers and position
    abbreviations, and keeps the first two that remain. Falls back to the
    first two raw tokens. Multi-word surnames ("Amon-Ra St. Brown") come
    out truncated; the loose comparator used downstream tolerates that.

    Examples:
        >>> extract_name("Josh Allen QB BUF REMOVE")
        'Josh Allen'
        >>> extract_name("12 Ja'Marr Chase WR CIN")
        "Ja'Marr Chase"
        >>> extract_name("REMOVE") is None
        True
    """
    if not text:
        return None

    cleaned = " ".join(text.split())
    if remove_label:
        cleaned = re.sub(re.escape(remove_label), "", cleaned, flags=re.IGNORECASE)
    words = cleaned.split()
    if len(words) < 2:
        return None

    name_words: list[str] = []
    for word in words[:3]:
        if not _is_noise(word):
            name_words.append(word)
        if len(name_words) >= 2:
            break

    if len(name_words) >= 2:
        return " ".join(name_words)
    return " ".join(words[:2])


class QueueScanner:
    """
    Finds every queued player currently on the board.

    Usage:
        scanner = QueueScanner(surface, settings)
        for entry in await scanner.scan():
            print(entry.name)
    """

    def __init__(self, surface: SurfaceAdapter, settings: Optional[Settings] = None):
        self.surface = surface
        self.settings = settings or Settings()
        self.query = DiscoveryQuery(
            selector=self.settings.remove_trigger_selector,
            label=self.settings.remove_label,
        )

    async def scan(self) -> list[QueuedEntry]:
        entries: list[QueuedEntry] = []

        for element in await self.surface.discover(self.query):
            container = await self.surface.container_of(
                element, self.settings.queue_container_selectors
            )
            if container is None:
                logger.debug("Remove control without a queue row, skipping")
                continue

            text = await self.surface.text_of(container)
            name = extract_name(text, self.settings.remove_label)
            if name is None:
                logger.debug("No player name in queue row '%s'", text)
                continue

            entries.append(QueuedEntry(name=name, element=element, container_text=text))

        logger.debug("Queue scan found %d entries", len(entries))
        return entries


async def scan_queued(surface: SurfaceAdapter, settings: Optional[Settings] = None) -> list[QueuedEntry]:
    """Shortcut for QueueScanner(surface, settings).scan()."""
    return await QueueScanner(surface, settings).scan()
