"""
Draft board queue module.

- QueueScanner / extract_name: read the current queue
- QueueReconciler: add players, clear the queue, review a list against it
- outcomes: per-item results and run summaries
"""

from draftqueue.board.outcomes import (
    OutcomeStatus,
    ReconciliationOutcome,
    RunSummary,
    ValidationItem,
    ValidationReport,
)
from draftqueue.board.reconcile import AddState, QueueReconciler
from draftqueue.board.scan import QueuedEntry, QueueScanner, extract_name, scan_queued

__all__ = [
    "AddState",
    "OutcomeStatus",
    "QueueReconciler",
    "QueueScanner",
    "QueuedEntry",
    "ReconciliationOutcome",
    "RunSummary",
    "ValidationItem",
    "ValidationReport",
    "extract_name",
    "scan_queued",
]
