"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

import html
from typing import Iterable, Optional

import pytest

from draftqueue.config import Settings
from draftqueue.players.models import PlayerRecord, PlayerStatus, Position

Row = tuple[str, str, str]  # (name, position, team)


def make_player(
    player_id: str,
    first_name: str,
    last_name: str,
    position: Position = Position.OTHER,
    team: Optional[str] = None,
    status: PlayerStatus = PlayerStatus.ACTIVE,
) -> PlayerRecord:
    return PlayerRecord(
        player_id=player_id,
        first_name=first_name,
        last_name=last_name,
        position=position,
        team=team,
        status=status,
    )


def board_html(
    rows: Iterable[Row] = (),
    queued: Iterable[Row] = (),
    search_box: bool = True,
    queue_list: bool = True,
) -> str:
    """
    Build a minimal draft board page.

    Board rows carry an add control, queue rows a REMOVE control, laid out
    the way the live board nests them.
    """
    parts = ["<html><body>"]
    if search_box:
        parts.append('<div class="player-search"><input placeholder="Find player"></div>')

    parts.append('<div class="board">')
    for name, position, team in rows:
        parts.append(
            '<div class="player-row">'
            f'<span class="player-name">{html.escape(name)}</span> '
            f'<span class="pos">{position}</span> <span class="team">{team}</span>'
            '<button class="queue-action">+</button>'
            "</div>"
        )
    parts.append("</div>")

    if queue_list:
        parts.append('<ul class="queue-list">')
        for name, position, team in queued:
            parts.append(
                '<li class="queue-item">'
                f"<span>{html.escape(name)}</span> <span>{position}</span> <span>{team}</span>"
                '<div class="delete-button">REMOVE</div>'
                "</li>"
            )
        parts.append("</ul>")

    parts.append("</body></html>")
    return "".join(parts)


@pytest.fixture
def settings():
    """Settings with every delay at zero so async tests run instantly."""
    return Settings(
        _env_file=None,
        operation_delay_ms=0,
        settle_delay_ms=0,
        filter_settle_delay_ms=0,
        alternate_trigger_step_ms=0,
        roster_rate_limit_ms=0,
        roster_max_retries=1,
    )


@pytest.fixture
def josh_allen():
    return make_player("4984", "Josh", "Allen", Position.QB, "BUF")


@pytest.fixture
def jamarr_chase():
    return make_player("7564", "Ja'Marr", "Chase", Position.WR, "CIN")


@pytest.fixture
def roster(josh_allen, jamarr_chase):
    """A small roster with the usual trouble makers."""
    players = [
        josh_allen,
        jamarr_chase,
        make_player("3321", "Mike", "Evans", Position.WR, "TB"),
        make_player("2133", "Davante", "Adams", Position.WR, "LAR"),
        make_player("6904", "Jalen", "Hurts", Position.QB, "PHI"),
        make_player("4035", "Alvin", "Kamara", Position.RB, "NO"),
        make_player("1001", "Josh", "Allenby", Position.OTHER, None, PlayerStatus.INACTIVE),
        make_player("9999", "Tom", "Brady", Position.QB, None, PlayerStatus.INACTIVE),
    ]
    return {p.player_id: p for p in players}


@pytest.fixture
def board_rows():
    return [
        ("Josh Allen", "QB", "BUF"),
        ("Ja'Marr Chase", "WR", "CIN"),
        ("Mike Evans", "WR", "TB"),
        ("Davante Adams", "WR", "LAR"),
    ]


@pytest.fixture
def make_board():
    """Factory fixture for board pages (see board_html)."""
    return board_html


@pytest.fixture
def player_factory():
    return make_player
