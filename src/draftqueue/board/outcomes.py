"""Result types returned by the queue engine."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional

from draftqueue.players.identity import MatchCandidate


class OutcomeStatus(str, Enum):
    ADDED = "added"
    ALREADY_PRESENT = "already_present_or_added_elsewhere"
    NOT_FOUND = "not_found"
    REMOVED = "removed"
    FAILED = "failed"
    ERROR = "error"
    NOT_ATTEMPTED = "not_attempted"


SUCCESS_STATUSES = frozenset({
    OutcomeStatus.ADDED,
    OutcomeStatus.ALREADY_PRESENT,
    OutcomeStatus.REMOVED,
})


@dataclass(frozen=True)
class ReconciliationOutcome:
    """
    What happened to one target of a batch.

    ``target`` is the player name for adds and the observed queue name for
    removals. ``via`` records how an add trigger was reached ("direct",
    or the search text that surfaced it).
    """

    target: str
    status: OutcomeStatus
    detail: Optional[str] = None
    player_id: Optional[str] = None
    via: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status in SUCCESS_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "status": self.status.value,
            "detail": self.detail,
            "player_id": self.player_id,
            "via": self.via,
        }


@dataclass
class RunSummary:
    """Per-item outcomes of one add or clear run, in processing order."""

    operation: str
    outcomes: list[ReconciliationOutcome] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.outcomes)

    def __iter__(self) -> Iterator[ReconciliationOutcome]:
        return iter(self.outcomes)

    @property
    def counts(self) -> dict[str, int]:
        return dict(Counter(o.status.value for o in self.outcomes))

    def with_status(self, status: OutcomeStatus) -> list[ReconciliationOutcome]:
        return [o for o in self.outcomes if o.status is status]

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "counts": self.counts,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


@dataclass(frozen=True)
class ValidationItem:
    """One typed line checked against the current queue."""

    index: int
    search_name: str
    candidate: MatchCandidate
    queued_as: Optional[str] = None  # Queue entry it was matched to


@dataclass
class ValidationReport:
    in_queue: list[ValidationItem] = field(default_factory=list)
    not_in_queue: list[ValidationItem] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)  # Lines with no roster match
    not_attempted: list[str] = field(default_factory=list)
    queue_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "queue_size": self.queue_size,
            "in_queue": [(i.search_name, i.candidate.full_name, i.queued_as) for i in self.in_queue],
            "not_in_queue": [(i.search_name, i.candidate.full_name) for i in self.not_in_queue],
            "invalid": list(self.invalid),
            "not_attempted": list(self.not_attempted),
        }
