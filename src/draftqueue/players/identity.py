"""
Player identity resolution: free-text name -> roster record.

This is the core service for player identification. It handles:
- Finding every roster record a typed name could refer to
- Scoring each candidate with a confidence value
- Picking a single best match, or reporting that the name is ambiguous
- Resolving a whole pasted list of names in one call

The selection strategy prioritizes predictability:
1. Exact (case-insensitive) full-name match - confidence 1.0
2. Clear winner - top confidence beats the runner-up by more than 0.1
3. Tie-break on active status, then on team affiliation
4. Otherwise ambiguous - the caller decides, with up to two alternatives

The confidence weights are a pinned policy table. They were tuned by hand
and have no derivation, so change them only together with the tests.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Optional, Union

from draftqueue.config import Settings
from draftqueue.players.models import FANTASY_POSITIONS, PlayerRecord, Position
from draftqueue.players.names import names_match, similarity

logger = logging.getLogger(__name__)

# =============================================================================
# Confidence policy
# =============================================================================

BASE_CONFIDENCE = 0.5
ACTIVE_BONUS = 0.2
TEAM_BONUS = 0.1
POSITION_BONUS = 0.15
EXACT_MATCH_CONFIDENCE = 1.0

# Top candidate must beat the runner-up by more than this to win outright
DOMINANCE_MARGIN = 0.1

MAX_ALTERNATIVES = 2

Roster = Mapping[str, PlayerRecord]


@dataclass(frozen=True)
class MatchOptions:
    """
    Filters and ordering preferences for a resolution call.

    require_active_status drops every non-active record before matching.
    prefer_active_in_ordering keeps them but sorts active players first.
    require_position_in, when set, drops records outside those positions.
    """

    require_active_status: bool = True
    prefer_active_in_ordering: bool = False
    require_position_in: Optional[frozenset[Position]] = None

    @classmethod
    def for_review(cls) -> "MatchOptions":
        """Options used when showing matches to a human (keep inactive players)."""
        return cls(require_active_status=False, prefer_active_in_ordering=True)


@dataclass(frozen=True)
class MatchCandidate:
    """
    One roster record that matched a search name.

    Returned by find_matches() in ranked order.
    """

    player: PlayerRecord
    confidence: float  # 0.0 to 1.0
    search_name: str  # What the user typed

    @property
    def player_id(self) -> str:
        return self.player.player_id

    @property
    def full_name(self) -> str:
        return self.player.full_name

    def __repr__(self) -> str:
        return (
            f"<MatchCandidate(id={self.player_id}, name='{self.full_name}', "
            f"conf={self.confidence:.2f})>"
        )


# =============================================================================
# Resolution results
# =============================================================================

@dataclass(frozen=True)
class NoMatch:
    search_name: str

    kind = "none"


@dataclass(frozen=True)
class UniqueMatch:
    candidate: MatchCandidate

    kind = "unique"

    @property
    def player(self) -> PlayerRecord:
        return self.candidate.player


@dataclass(frozen=True)
class AmbiguousMatch:
    """Best candidate plus the next one or two the caller must choose between."""

    candidate: MatchCandidate
    alternatives: tuple[MatchCandidate, ...]

    kind = "ambiguous"

    @property
    def player(self) -> PlayerRecord:
        return self.candidate.player

    @property
    def choices(self) -> tuple[MatchCandidate, ...]:
        return (self.candidate, *self.alternatives)


ResolutionResult = Union[NoMatch, UniqueMatch, AmbiguousMatch]


@dataclass(frozen=True)
class LineResolution:
    """Outcome of one input line inside resolve_list()."""

    index: int
    search_name: str
    result: ResolutionResult
    suggestions: tuple[MatchCandidate, ...] = ()


@dataclass(frozen=True)
class LineError:
    index: int
    search_name: str
    error: str


@dataclass
class ResolveListResult:
    """
    Partitioned outcome of resolving a pasted list of names.

    Blank lines are skipped and appear nowhere. Every other line appears
    in exactly one bucket.
    """

    matched: list[LineResolution] = field(default_factory=list)
    unmatched: list[LineResolution] = field(default_factory=list)
    ambiguous: list[LineResolution] = field(default_factory=list)
    errors: list[LineError] = field(default_factory=list)
    not_attempted: list[LineError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return (
            len(self.matched)
            + len(self.unmatched)
            + len(self.ambiguous)
            + len(self.errors)
            + len(self.not_attempted)
        )

    def players(self) -> list[PlayerRecord]:
        """Players of the unambiguous matches, in input order."""
        return [line.result.player for line in sorted(self.matched, key=lambda l: l.index)]


# =============================================================================
# Resolver
# =============================================================================

def calculate_confidence(search_name: str, player: PlayerRecord) -> float:
    """
    Score how likely ``player`` is the one meant by ``search_name``.

    Base 0.5, +0.2 active, +0.1 has a team, +0.15 fantasy position, capped
    at 1.0. An exact case-insensitive full-name match is always 1.0.
    """
    if search_name.strip().lower() == player.full_name.lower():
        return EXACT_MATCH_CONFIDENCE

    confidence = BASE_CONFIDENCE
    if player.is_active:
        confidence += ACTIVE_BONUS
    if player.team:
        confidence += TEAM_BONUS
    if player.position in FANTASY_POSITIONS:
        confidence += POSITION_BONUS

    return min(1.0, max(0.0, round(confidence, 6)))


class PlayerResolver:
    """
    Service for turning typed player names into roster records.

    The resolver is stateless apart from its settings; the roster is passed
    to every call because the provider owns refreshing it.

    Usage:
        resolver = PlayerResolver(settings)
        roster = await provider.get_all_players()

        result = resolver.resolve_best("Mike Evans", roster)
        if isinstance(result, UniqueMatch):
            queue.append(result.player)
        elif isinstance(result, AmbiguousMatch):
            ask_user(result.choices)
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize the resolver.

        Args:
            settings: Session settings (suggestion thresholds)
        """
        self.settings = settings or Settings()

        # Above this threshold, an unmatched line gets "did you mean" suggestions
        self.suggestion_threshold = self.settings.suggestion_threshold
        self.max_suggestions = self.settings.max_suggestions

    # =========================================================================
    # Main Public Methods
    # =========================================================================

    def find_matches(
        self,
        search_name: str,
        roster: Roster,
        options: Optional[MatchOptions] = None,
    ) -> list[MatchCandidate]:
        """
        Find every roster record the search name could refer to.

        Scans the whole roster on every call; a season roster is a few
        thousand records so there is no index.

        Args:
            search_name: Name as typed by the user
            roster: Mapping of player id to record
            options: Filters and ordering preferences

        Returns:
            Candidates sorted best first. Ties keep roster order.
        """
        options = options or MatchOptions()
        search_name = search_name.strip()
        if not search_name:
            return []

        matches: list[MatchCandidate] = []
        for player in roster.values():
            # Skip records without a usable name (team placeholders, bad rows)
            if not player.first_name or not player.last_name:
                continue
            if options.require_active_status and not player.is_active:
                continue
            if (
                options.require_position_in is not None
                and player.position not in options.require_position_in
            ):
                continue

            if names_match(search_name, player.full_name):
                matches.append(MatchCandidate(
                    player=player,
                    confidence=calculate_confidence(search_name, player),
                    search_name=search_name,
                ))

        if options.prefer_active_in_ordering:
            matches.sort(key=lambda m: (not m.player.is_active, -m.confidence))
        else:
            matches.sort(key=lambda m: -m.confidence)
        return matches

    def resolve_best(
        self,
        search_name: str,
        roster: Roster,
        options: Optional[MatchOptions] = None,
    ) -> ResolutionResult:
        """
        Pick the single best match for a name, or report ambiguity.

        Args:
            search_name: Name as typed by the user
            roster: Mapping of player id to record
            options: Filters and ordering preferences

        Returns:
            NoMatch, UniqueMatch or AmbiguousMatch
        """
        matches = self.find_matches(search_name, roster, options)

        if not matches:
            return NoMatch(search_name=search_name.strip())
        if len(matches) == 1:
            return UniqueMatch(candidate=matches[0])

        best, runner_up = matches[0], matches[1]
        if best.confidence > runner_up.confidence + DOMINANCE_MARGIN:
            return UniqueMatch(candidate=best)

        tied = [m for m in matches if m.confidence >= best.confidence - DOMINANCE_MARGIN]

        active = [m for m in tied if m.player.is_active]
        if len(active) == 1:
            return UniqueMatch(candidate=active[0])

        with_team = [m for m in active if m.player.team]
        if len(with_team) == 1:
            return UniqueMatch(candidate=with_team[0])

        logger.debug(
            "'%s' is ambiguous between %d candidates",
            search_name, len(tied),
        )
        return AmbiguousMatch(
            candidate=best,
            alternatives=tuple(matches[1:1 + MAX_ALTERNATIVES]),
        )

    def resolve_list(
        self,
        names: Iterable[str],
        roster: Roster,
        options: Optional[MatchOptions] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> ResolveListResult:
        """
        Resolve a pasted list of names, one per line.

        Lines are trimmed and blank lines skipped. A failure on one line is
        recorded in ``errors`` and the batch carries on. When
        ``should_cancel`` returns True the remaining lines are reported as
        not attempted.

        Args:
            names: Raw input lines
            roster: Mapping of player id to record
            options: Filters and ordering preferences
            should_cancel: Checked before each line

        Returns:
            ResolveListResult with one entry per non-blank line
        """
        results = ResolveListResult()
        cancelled = False

        for index, raw_name in enumerate(names):
            search_name = (raw_name or "").strip()
            if not search_name:
                continue

            if cancelled or (should_cancel is not None and should_cancel()):
                cancelled = True
                results.not_attempted.append(LineError(index, search_name, "cancelled"))
                continue

            try:
                result = self.resolve_best(search_name, roster, options)
                line = LineResolution(index=index, search_name=search_name, result=result)

                if isinstance(result, NoMatch):
                    suggestions = tuple(self.suggest(search_name, roster, options))
                    results.unmatched.append(
                        LineResolution(index, search_name, result, suggestions)
                    )
                elif isinstance(result, AmbiguousMatch):
                    results.ambiguous.append(line)
                else:
                    results.matched.append(line)

            except Exception as e:
                logger.warning("Error resolving '%s': %s", search_name, e)
                results.errors.append(LineError(index, search_name, str(e)))

        logger.info(
            "Resolved %d lines: %d matched, %d ambiguous, %d unmatched, %d errors",
            results.total,
            len(results.matched),
            len(results.ambiguous),
            len(results.unmatched),
            len(results.errors),
        )
        return results

    def suggest(
        self,
        search_name: str,
        roster: Roster,
        options: Optional[MatchOptions] = None,
    ) -> list[MatchCandidate]:
        """
        Fuzzy "did you mean" candidates for a name that matched nothing.

        Uses similarity() instead of the pattern matcher, so typos like
        "Patrik Mahomes" still find someone. Confidence on the returned
        candidates is the similarity score, not the resolution confidence.

        Args:
            search_name: Name as typed by the user
            roster: Mapping of player id to record
            options: Only require_active_status / require_position_in apply

        Returns:
            Up to max_suggestions candidates, best first
        """
        options = options or MatchOptions()
        scored: list[MatchCandidate] = []

        for player in roster.values():
            if not player.first_name or not player.last_name:
                continue
            if options.require_active_status and not player.is_active:
                continue
            if (
                options.require_position_in is not None
                and player.position not in options.require_position_in
            ):
                continue

            score = similarity(search_name, player.full_name)
            if score >= self.suggestion_threshold:
                scored.append(MatchCandidate(player=player, confidence=score, search_name=search_name))

        scored.sort(key=lambda m: -m.confidence)
        return scored[:self.max_suggestions]
