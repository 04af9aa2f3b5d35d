"""
Roster data structures.

PlayerRecord mirrors one entry of the Sleeper /players/nfl payload, reduced
to the fields the matcher and the queue engine read. Records are owned by
the roster provider and never mutated after they are built.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional


class Position(str, Enum):
    """Roster positions the engine cares about. Everything else is OTHER."""

    QB = "QB"
    RB = "RB"
    WR = "WR"
    TE = "TE"
    K = "K"
    DEF = "DEF"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Position":
        if not value:
            return cls.OTHER
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.OTHER


class PlayerStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    INJURED_RESERVE = "Injured Reserve"
    PRACTICE_SQUAD = "Practice Squad"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PlayerStatus":
        if not value:
            return cls.UNKNOWN
        lowered = value.strip().lower()
        for status in cls:
            if status.value.lower() == lowered:
                return status
        return cls.UNKNOWN


# Positions that earn the fantasy-relevance confidence bonus
FANTASY_POSITIONS = frozenset({
    Position.QB,
    Position.RB,
    Position.WR,
    Position.TE,
    Position.K,
    Position.DEF,
})


@dataclass(frozen=True)
class PlayerRecord:
    """
    One player from the roster.

    ``raw_position`` and ``raw_status`` keep the source strings so that
    display code can show "OL" or "Physically Unable to Perform" even though
    matching only distinguishes the enum values.
    """

    player_id: str
    first_name: str
    last_name: str
    position: Position = Position.OTHER
    team: Optional[str] = None
    status: PlayerStatus = PlayerStatus.UNKNOWN
    raw_position: Optional[str] = None
    raw_status: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        return self.status is PlayerStatus.ACTIVE

    @property
    def display_position(self) -> str:
        return self.raw_position or self.position.value

    @classmethod
    def from_api(cls, player_id: str, data: Mapping[str, Any]) -> "PlayerRecord":
        """
        Build a record from a raw roster API entry.

        Team defenses come back with first_name/last_name set to the city
        and nickname, which is what the board renders, so no special case
        is needed for them.
        """
        raw_position = data.get("position")
        raw_status = data.get("status")
        return cls(
            player_id=str(data.get("player_id") or player_id),
            first_name=(data.get("first_name") or "").strip(),
            last_name=(data.get("last_name") or "").strip(),
            position=Position.parse(raw_position),
            team=data.get("team") or None,
            status=PlayerStatus.parse(raw_status),
            raw_position=raw_position,
            raw_status=raw_status,
        )

    def __repr__(self) -> str:
        team = self.team or "FA"
        return f"<PlayerRecord({self.player_id}: {self.full_name}, {self.display_position}, {team})>"


def roster_from_api(payload: Mapping[str, Mapping[str, Any]]) -> dict[str, PlayerRecord]:
    """Convert a raw ``{player_id: {...}}`` payload into PlayerRecords."""
    return {
        str(player_id): PlayerRecord.from_api(str(player_id), data)
        for player_id, data in payload.items()
        if isinstance(data, Mapping)
    }
