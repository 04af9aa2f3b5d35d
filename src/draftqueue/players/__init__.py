"""
Player identity module.

This module handles matching the player names a user types (or pastes
from a rankings article) to canonical roster records. Getting this right
is what makes the rest of the queue sync trustworthy.

Key components:
- PlayerRecord: Immutable roster entry
- PlayerResolver: Candidate search, confidence scoring and disambiguation
- names: Folding, pattern matching and the looser board-text comparisons

The resolution strategy (in priority order):
1. Exact full-name match (confidence 1.0)
2. Clear confidence winner
3. Tie-break on active status, then team affiliation
4. Otherwise ambiguous - surface up to two alternatives to the user
"""

from draftqueue.players.identity import (
    AmbiguousMatch,
    MatchCandidate,
    MatchOptions,
    NoMatch,
    PlayerResolver,
    ResolutionResult,
    ResolveListResult,
    UniqueMatch,
)
from draftqueue.players.models import PlayerRecord, PlayerStatus, Position
from draftqueue.players.names import fold, names_match

__all__ = [
    "AmbiguousMatch",
    "MatchCandidate",
    "MatchOptions",
    "NoMatch",
    "PlayerRecord",
    "PlayerResolver",
    "PlayerStatus",
    "Position",
    "ResolutionResult",
    "ResolveListResult",
    "UniqueMatch",
    "fold",
    "names_match",
]
