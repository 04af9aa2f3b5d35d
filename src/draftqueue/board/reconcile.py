"""
Queue reconciliation: add players to, and clear, the draft board queue.

The board is a React app we do not control. The engine only ever talks to
it through a SurfaceAdapter and works in small observe -> act -> settle ->
observe steps, because every action can re-render the page and invalidate
whatever was looked at before.

Adding one player is a small state machine:

    SEEKING     look for the player's add control in the rendered list
    FILTERING   type search variations into the board's search box until
                the control shows up (virtualized lists only render a few
                dozen rows)
    TRIGGERING  click it while the list is still filtered, then clear the
                search box
    DONE

Known limitation: ADDED means the click went through, not that the board
accepted it. Nothing on the page confirms a successful add.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from rapidfuzz import fuzz, process, utils

from draftqueue.board.outcomes import (
    OutcomeStatus,
    ReconciliationOutcome,
    RunSummary,
    ValidationItem,
    ValidationReport,
)
from draftqueue.board.scan import QueuedEntry, QueueScanner
from draftqueue.config import Settings
from draftqueue.players.identity import MatchCandidate, MatchOptions, PlayerResolver, Roster, UniqueMatch
from draftqueue.players.models import PlayerRecord
from draftqueue.players.names import loose_names_match, name_in_text, name_variations
from draftqueue.surface.base import DiscoveryQuery, Element, SurfaceAdapter, SurfaceError

logger = logging.getLogger(__name__)

# Variation index after which the alternate input signals are tried (once)
ALTERNATE_TRIGGER_AFTER = 1

NEAR_MISS_LIMIT = 3
NEAR_MISS_SCAN_LIMIT = 200

PlayerLike = Union[PlayerRecord, MatchCandidate, UniqueMatch]
CancelCheck = Optional[Callable[[], bool]]


class AddState(str, Enum):
    SEEKING = "seeking"
    FILTERING = "filtering"
    TRIGGERING = "triggering"
    DONE = "done"


@dataclass
class _AddAttempt:
    """Mutable state of one add_player() run."""

    player: PlayerRecord
    variations: list[str]
    state: AddState = AddState.SEEKING
    variation_index: int = 0
    element: Optional[Element] = None
    filtered: bool = False
    alternate_used: bool = False
    via: str = "direct"
    outcome: Optional[ReconciliationOutcome] = None

    @property
    def name(self) -> str:
        return self.player.full_name

    def finish(self, status: OutcomeStatus, detail: Optional[str] = None) -> None:
        self.outcome = ReconciliationOutcome(
            target=self.name,
            status=status,
            detail=detail,
            player_id=self.player.player_id,
            via=self.via if status is OutcomeStatus.ADDED else None,
        )
        self.state = AddState.DONE


def _as_player(item: PlayerLike) -> PlayerRecord:
    if isinstance(item, PlayerRecord):
        return item
    if isinstance(item, (MatchCandidate, UniqueMatch)):
        return item.player
    raise TypeError(f"Expected a PlayerRecord or match result, got {type(item).__name__}")


class QueueReconciler:
    """
    Drives the board's queue through a SurfaceAdapter.

    Usage:
        async with PlaywrightSurface(settings) as surface:
            engine = QueueReconciler(surface, settings)
            summary = await engine.add_players(resolved.players())
            print(summary.counts)
    """

    def __init__(
        self,
        surface: SurfaceAdapter,
        settings: Optional[Settings] = None,
        resolver: Optional[PlayerResolver] = None,
    ):
        """
        Args:
            surface: Adapter for the draft board page
            settings: Selectors and delays (defaults if omitted)
            resolver: Used by validate_against_queue()
        """
        self.surface = surface
        self.settings = settings or Settings()
        self.resolver = resolver or PlayerResolver(self.settings)
        self.scanner = QueueScanner(surface, self.settings)
        self.add_query = DiscoveryQuery(selector=self.settings.add_trigger_selector)

    # =========================================================================
    # Adding
    # =========================================================================

    async def add_player(self, player: PlayerLike) -> ReconciliationOutcome:
        """
        Add one player to the queue.

        A player that is already queued is reported as
        ALREADY_PRESENT_OR_ADDED_ELSEWHERE and nothing is clicked, so
        running the same list twice is harmless.

        Returns:
            ReconciliationOutcome. A player that cannot be found is reported
            as NOT_FOUND, not raised.
        """
        player = _as_player(player)
        name = player.full_name

        queued = await self.find_queued(name)
        if queued is not None:
            logger.info("'%s' already in queue as '%s'", name, queued.name)
            return ReconciliationOutcome(
                target=name,
                status=OutcomeStatus.ALREADY_PRESENT,
                detail=f"queued as '{queued.name}'",
                player_id=player.player_id,
            )

        attempt = _AddAttempt(player=player, variations=name_variations(name))
        max_steps = len(attempt.variations) + 4
        steps = 0

        try:
            while attempt.state is not AddState.DONE:
                steps += 1
                if steps > max_steps:
                    attempt.finish(OutcomeStatus.NOT_FOUND, "step limit reached")
                    break

                if attempt.state is AddState.SEEKING:
                    await self._seek(attempt)
                elif attempt.state is AddState.FILTERING:
                    await self._filter_step(attempt)
                else:
                    await self._trigger_step(attempt)
        finally:
            # The search box is shared by every later add
            await self._restore_filter(attempt)

        return attempt.outcome

    async def add_players(
        self,
        players: Iterable[PlayerLike],
        should_cancel: CancelCheck = None,
    ) -> RunSummary:
        """
        Add players one at a time, in order.

        One outcome per input player: failures on one player are recorded
        and the run carries on; after cancellation the rest are reported
        NOT_ATTEMPTED.
        """
        records = [_as_player(p) for p in players]
        summary = RunSummary(operation="add")
        logger.info("Adding %d players to queue", len(records))

        for position, player in enumerate(records):
            if should_cancel is not None and should_cancel():
                remaining = records[position:]
                logger.info("Add run cancelled, %d players not attempted", len(remaining))
                summary.outcomes.extend(
                    ReconciliationOutcome(
                        target=p.full_name,
                        status=OutcomeStatus.NOT_ATTEMPTED,
                        player_id=p.player_id,
                    )
                    for p in remaining
                )
                break

            try:
                outcome = await self.add_player(player)
            except Exception as e:
                logger.exception("Error adding '%s'", player.full_name)
                outcome = ReconciliationOutcome(
                    target=player.full_name,
                    status=OutcomeStatus.ERROR,
                    detail=str(e),
                    player_id=player.player_id,
                )
            summary.outcomes.append(outcome)

            if position < len(records) - 1:
                await asyncio.sleep(self.settings.operation_delay)

        logger.info("Add run finished: %s", summary.counts)
        return summary

    async def find_add_trigger(self, name: str) -> Optional[Element]:
        """First rendered add control whose row text contains the player's name."""
        for element in await self.surface.discover(self.add_query):
            container = await self.surface.container_of(
                element, self.settings.player_container_selectors
            )
            if container is None:
                continue
            if name_in_text(name, await self.surface.text_of(container)):
                return element
        return None

    # =========================================================================
    # Clearing
    # =========================================================================

    async def clear_queue(self, should_cancel: CancelCheck = None) -> RunSummary:
        """
        Remove every queued player.

        Always acts on the first entry of a fresh scan, since each removal
        re-renders the queue. The number of attempts is bounded by the
        queue size seen at the start. Entries that failed once are not
        retried.
        """
        summary = RunSummary(operation="clear")
        entries = await self.scanner.scan()
        if not entries:
            logger.info("Queue is already empty")
            return summary

        limit = len(entries)
        attempts = 0
        failed_names: set[str] = set()
        logger.info("Clearing %d queued players", limit)

        while entries and attempts < limit:
            if should_cancel is not None and should_cancel():
                logger.info("Clear run cancelled, %d entries left", len(entries))
                summary.outcomes.extend(
                    ReconciliationOutcome(target=e.name, status=OutcomeStatus.NOT_ATTEMPTED)
                    for e in entries
                    if e.name not in failed_names
                )
                break

            entry = next((e for e in entries if e.name not in failed_names), None)
            if entry is None:
                break
            attempts += 1

            try:
                outcome = await self.remove_entry(entry)
            except Exception as e:
                logger.exception("Error removing '%s'", entry.name)
                outcome = ReconciliationOutcome(
                    target=entry.name, status=OutcomeStatus.ERROR, detail=str(e)
                )
            summary.outcomes.append(outcome)
            if not outcome.succeeded:
                failed_names.add(entry.name)

            await asyncio.sleep(self.settings.operation_delay)
            entries = await self.scanner.scan()

        if entries and attempts >= limit:
            logger.warning(
                "Stopped after %d removal attempts with %d entries still queued",
                attempts, len(entries),
            )

        logger.info("Clear run finished: %s", summary.counts)
        return summary

    async def remove_entry(self, entry: QueuedEntry) -> ReconciliationOutcome:
        """Click one entry's remove control after checking it is still live."""
        if not await self.surface.is_attached(entry.element):
            return ReconciliationOutcome(
                target=entry.name, status=OutcomeStatus.FAILED, detail="remove control detached"
            )
        if not await self.surface.is_visible(entry.element):
            return ReconciliationOutcome(
                target=entry.name, status=OutcomeStatus.FAILED, detail="remove control not visible"
            )

        try:
            await self.surface.trigger(entry.element)
        except SurfaceError as e:
            logger.warning("Could not remove '%s': %s", entry.name, e)
            return ReconciliationOutcome(target=entry.name, status=OutcomeStatus.FAILED, detail=str(e))

        await asyncio.sleep(self.settings.settle_delay)
        logger.info("Removed '%s' from queue", entry.name)
        return ReconciliationOutcome(target=entry.name, status=OutcomeStatus.REMOVED)

    # =========================================================================
    # Review
    # =========================================================================

    async def find_queued(self, name: str) -> Optional[QueuedEntry]:
        """Queued entry whose row text contains the full name, if any."""
        for entry in await self.scanner.scan():
            if name_in_text(name, entry.container_text):
                return entry
        return None

    async def validate_against_queue(
        self,
        lines: Iterable[str],
        roster: Roster,
        options: Optional[MatchOptions] = None,
        should_cancel: CancelCheck = None,
    ) -> ValidationReport:
        """
        Check which typed names are already in the queue.

        Each non-blank line is resolved to its best roster candidate and
        compared with the queued names using the loose comparator. Lines
        with no roster candidate land in ``invalid``.
        """
        options = options or MatchOptions.for_review()
        entries = await self.scanner.scan()
        report = ValidationReport(queue_size=len(entries))
        cancelled = False

        for index, raw in enumerate(lines):
            search_name = (raw or "").strip()
            if not search_name:
                continue
            if cancelled or (should_cancel is not None and should_cancel()):
                cancelled = True
                report.not_attempted.append(search_name)
                continue

            matches = self.resolver.find_matches(search_name, roster, options)
            if not matches:
                report.invalid.append(search_name)
                continue

            best = matches[0]
            queued_as = next(
                (e.name for e in entries if loose_names_match(best.full_name, e.name)),
                None,
            )
            item = ValidationItem(index=index, search_name=search_name, candidate=best, queued_as=queued_as)
            if queued_as is None:
                report.not_in_queue.append(item)
            else:
                report.in_queue.append(item)

        logger.info(
            "Validated against %d queued: %d in queue, %d not in queue, %d invalid",
            report.queue_size, len(report.in_queue), len(report.not_in_queue), len(report.invalid),
        )
        return report

    # =========================================================================
    # State machine steps
    # =========================================================================

    async def _seek(self, attempt: _AddAttempt) -> None:
        element = await self.find_add_trigger(attempt.name)
        if element is not None:
            attempt.element = element
            attempt.state = AddState.TRIGGERING
            return

        if not await self.surface.has_filter_input():
            await self._log_near_misses(attempt.name)
            attempt.finish(OutcomeStatus.NOT_FOUND, "not rendered and no search box")
            return

        attempt.filtered = True
        attempt.state = AddState.FILTERING

    async def _filter_step(self, attempt: _AddAttempt) -> None:
        if attempt.variation_index >= len(attempt.variations):
            await self._restore_filter(attempt)
            await self._log_near_misses(attempt.name)
            attempt.finish(
                OutcomeStatus.NOT_FOUND,
                f"not found after {len(attempt.variations)} search variations",
            )
            return

        text = attempt.variations[attempt.variation_index]
        try:
            element = await self._try_variation(attempt, text)
        except SurfaceError as e:
            logger.warning("Search for '%s' with '%s' failed: %s", attempt.name, text, e)
            element = None

        if element is not None:
            attempt.element = element
            attempt.via = f"search:{text}"
            attempt.state = AddState.TRIGGERING
            return

        attempt.variation_index += 1

    async def _try_variation(self, attempt: _AddAttempt, text: str) -> Optional[Element]:
        applied = await self.surface.drive_filter_input(text)
        if not applied:
            logger.debug("Search text '%s' not confirmed by the page, re-checking anyway", text)
        await asyncio.sleep(self.settings.filter_settle_delay)

        element = await self._find_visible_add_trigger(attempt.name)

        if (
            element is None
            and attempt.variation_index == ALTERNATE_TRIGGER_AFTER
            and not attempt.alternate_used
        ):
            attempt.alternate_used = True
            logger.debug("Trying alternate input signals for '%s'", text)
            await self.surface.alternate_filter_triggers(text)
            await asyncio.sleep(self.settings.settle_delay)
            element = await self._find_visible_add_trigger(attempt.name)

        return element

    async def _trigger_step(self, attempt: _AddAttempt) -> None:
        try:
            await self.surface.trigger(attempt.element)
        except SurfaceError as e:
            logger.warning("Could not click add for '%s': %s", attempt.name, e)
            await self._restore_filter(attempt)
            attempt.finish(OutcomeStatus.ERROR, str(e))
            return

        await asyncio.sleep(self.settings.settle_delay)
        await self._restore_filter(attempt)
        logger.info("Added '%s' to queue (%s)", attempt.name, attempt.via)
        attempt.finish(OutcomeStatus.ADDED)

    # =========================================================================
    # Helper Methods
    # =========================================================================

    async def _find_visible_add_trigger(self, name: str) -> Optional[Element]:
        """Find the add control; give an invisible one a single extra settle."""
        element = await self.find_add_trigger(name)
        if element is None:
            return None
        if await self.surface.is_visible(element):
            return element

        await asyncio.sleep(self.settings.settle_delay)
        element = await self.find_add_trigger(name)
        if element is not None and await self.surface.is_visible(element):
            return element
        return None

    async def _restore_filter(self, attempt: _AddAttempt) -> None:
        if not attempt.filtered:
            return
        attempt.filtered = False
        try:
            await self.surface.clear_filter_input()
        except SurfaceError as e:
            logger.warning("Could not clear search box: %s", e)
            return
        await asyncio.sleep(self.settings.filter_settle_delay)

    async def _log_near_misses(self, name: str) -> None:
        """Log the rendered rows closest to a name that was not found."""
        if not logger.isEnabledFor(logging.DEBUG):
            return

        texts: list[str] = []
        for element in (await self.surface.discover(self.add_query))[:NEAR_MISS_SCAN_LIMIT]:
            container = await self.surface.container_of(
                element, self.settings.player_container_selectors
            )
            if container is not None:
                texts.append(await self.surface.text_of(container))

        logger.debug("'%s' not found among %d rendered rows", name, len(texts))
        for text, score, _ in process.extract(
            name, texts, scorer=fuzz.partial_ratio, processor=utils.default_process, limit=NEAR_MISS_LIMIT
        ):
            logger.debug("  near miss: '%s' (%.0f)", text, score)
