"""
Unit tests for player identity resolution.

Covers candidate search, the confidence table, the tie-break cascade and
batch resolution of pasted lists.
"""

import pytest

from draftqueue.players.identity import (
    AmbiguousMatch,
    MatchOptions,
    NoMatch,
    PlayerResolver,
    UniqueMatch,
    calculate_confidence,
)
from draftqueue.players.models import PlayerRecord, PlayerStatus, Position


@pytest.fixture
def resolver(settings):
    return PlayerResolver(settings)


class TestCalculateConfidence:
    """Tests for the confidence policy table."""

    def test_exact_match_is_one(self, josh_allen):
        assert calculate_confidence("josh allen", josh_allen) == 1.0

    def test_bonuses_add_up(self, player_factory):
        player = player_factory("1", "Michael", "Thomas", Position.WR, "NO")
        assert calculate_confidence("Mike Thomas", player) == pytest.approx(0.95)

    def test_base_only(self, player_factory):
        player = player_factory("1", "Michael", "Thomas", Position.OTHER, None, PlayerStatus.INACTIVE)
        assert calculate_confidence("Mike Thomas", player) == 0.5

    def test_always_in_range(self, roster):
        for player in roster.values():
            for name in ("Josh", "Mike Evans", player.full_name, "x"):
                assert 0.0 <= calculate_confidence(name, player) <= 1.0


class TestFindMatches:
    """Tests for candidate search and ordering."""

    def test_inactive_filtered_by_default(self, resolver, roster):
        matches = resolver.find_matches("Josh Allen", roster)
        assert [m.player_id for m in matches] == ["4984"]

    def test_inactive_kept_when_not_required(self, resolver, roster):
        matches = resolver.find_matches("Josh Allen", roster, MatchOptions(require_active_status=False))
        assert [m.player_id for m in matches] == ["4984", "1001"]
        assert matches[0].confidence == 1.0

    def test_prefer_active_ordering(self, resolver, player_factory):
        inactive_exact = player_factory("1", "Tom", "Brady", Position.QB, None, PlayerStatus.INACTIVE)
        active = player_factory("2", "Thomas", "Bradyson", Position.QB, "TB")
        roster = {"1": inactive_exact, "2": active}

        plain = resolver.find_matches("Tom Brady", roster, MatchOptions(require_active_status=False))
        preferred = resolver.find_matches("Tom Brady", roster, MatchOptions.for_review())

        assert [m.player_id for m in plain] == ["1", "2"]
        assert [m.player_id for m in preferred] == ["2", "1"]

    def test_position_filter(self, resolver, roster):
        options = MatchOptions(require_position_in=frozenset({Position.RB}))
        assert resolver.find_matches("Josh Allen", roster, options) == []

    def test_skips_records_without_names(self, resolver, player_factory):
        roster = {"1": player_factory("1", "", "Allen", Position.QB, "BUF")}
        assert resolver.find_matches("Allen", roster) == []

    def test_blank_search(self, resolver, roster):
        assert resolver.find_matches("   ", roster) == []

    def test_ties_keep_roster_order(self, resolver, player_factory):
        roster = {
            "b": player_factory("b", "Michael", "Thomas", Position.WR, "NO"),
            "a": player_factory("a", "Michael", "Taylor", Position.WR, "NO"),
        }
        matches = resolver.find_matches("Mike T", roster)
        assert [m.player_id for m in matches] == ["b", "a"]


class TestResolveBest:
    """Tests for the selection cascade."""

    def test_single_exact_match(self, resolver):
        roster = {
            "1": PlayerRecord.from_api("1", {
                "first_name": "Josh", "last_name": "Allen",
                "status": "Active", "team": "BUF", "position": "QB",
            })
        }
        result = resolver.resolve_best("Josh Allen", roster)

        assert isinstance(result, UniqueMatch)
        assert result.candidate.confidence == 1.0
        assert result.player.player_id == "1"

    def test_two_active_contractions_are_ambiguous(self, resolver):
        roster = {
            "1": PlayerRecord.from_api("1", {"first_name": "Michael", "last_name": "Taylor", "status": "Active"}),
            "2": PlayerRecord.from_api("2", {"first_name": "Michael", "last_name": "Thomas", "status": "Active"}),
        }
        result = resolver.resolve_best("Mike T", roster)

        assert isinstance(result, AmbiguousMatch)
        assert result.player.player_id == "1"
        assert [c.player_id for c in result.alternatives] == ["2"]

    def test_no_match(self, resolver, roster):
        result = resolver.resolve_best("Nobody Atall", roster)
        assert isinstance(result, NoMatch)
        assert result.search_name == "Nobody Atall"

    def test_dominant_confidence_wins(self, resolver, roster):
        result = resolver.resolve_best("Josh Allen", roster, MatchOptions(require_active_status=False))
        assert isinstance(result, UniqueMatch)
        assert result.player.player_id == "4984"

    def test_clear_winner_by_margin(self, resolver, player_factory):
        roster = {
            "1": player_factory("1", "Michael", "Thomas", Position.WR, None, PlayerStatus.INACTIVE),
            "2": player_factory("2", "Michael", "Taylor", Position.WR, None, PlayerStatus.ACTIVE),
        }
        # 0.85 vs 0.65
        result = resolver.resolve_best("Mike T", roster, MatchOptions(require_active_status=False))
        assert isinstance(result, UniqueMatch)
        assert result.player.player_id == "2"

    def test_active_narrowing_within_margin(self, resolver, player_factory):
        roster = {
            # 0.5 + 0.1 + 0.15 = 0.75
            "1": player_factory("1", "Michael", "Thomas", Position.WR, "NO", PlayerStatus.INACTIVE),
            # 0.5 + 0.2 = 0.70
            "2": player_factory("2", "Michael", "Taylor", Position.OTHER, None, PlayerStatus.ACTIVE),
        }
        result = resolver.resolve_best("Mike T", roster, MatchOptions(require_active_status=False))
        assert isinstance(result, UniqueMatch)
        assert result.player.player_id == "2"

    def test_team_breaks_tie_among_active(self, resolver, player_factory):
        roster = {
            # 0.5 + 0.2 + 0.15 = 0.85
            "1": player_factory("1", "Michael", "Thomas", Position.WR, None),
            # 0.5 + 0.2 + 0.1 = 0.80
            "2": player_factory("2", "Michael", "Taylor", Position.OTHER, "WAS"),
        }
        result = resolver.resolve_best("Mike T", roster)
        assert isinstance(result, UniqueMatch)
        assert result.player.player_id == "2"

    def test_at_most_two_alternatives(self, resolver, player_factory):
        roster = {
            str(i): player_factory(str(i), "Michael", f"T{'x' * i}", Position.WR, "NO")
            for i in range(1, 6)
        }
        result = resolver.resolve_best("Mike T", roster)
        assert isinstance(result, AmbiguousMatch)
        assert len(result.alternatives) == 2
        assert len(result.choices) == 3

    def test_deterministic(self, resolver, roster, player_factory):
        roster = dict(roster)
        roster["5000"] = player_factory("5000", "Michael", "Thomas", Position.WR, "NO")
        roster["5001"] = player_factory("5001", "Michael", "Taylor", Position.WR, "WAS")

        first = resolver.resolve_best("Mike T", roster)
        for _ in range(5):
            again = resolver.resolve_best("Mike T", roster)
            assert type(again) is type(first)
            assert again.player.player_id == first.player.player_id


class TestResolveList:
    """Tests for batch resolution."""

    def test_blank_lines_skipped(self, resolver, roster):
        results = resolver.resolve_list(["", "  ", "Josh Allen"], roster)

        assert len(results.matched) + len(results.unmatched) + len(results.ambiguous) == 1
        assert results.errors == []
        assert results.total == 1

    def test_partitions(self, resolver, roster, player_factory):
        roster = dict(roster)
        roster["5000"] = player_factory("5000", "Michael", "Thomas", Position.WR, "NO")
        roster["5001"] = player_factory("5001", "Michael", "Taylor", Position.WR, "WAS")

        results = resolver.resolve_list(["Josh Allen", "Mike T", "Nobody Atall", "Jalen Hurts"], roster)

        assert [l.search_name for l in results.matched] == ["Josh Allen", "Jalen Hurts"]
        assert [l.search_name for l in results.ambiguous] == ["Mike T"]
        assert [l.search_name for l in results.unmatched] == ["Nobody Atall"]
        assert [p.player_id for p in results.players()] == ["4984", "6904"]

    def test_lines_are_trimmed(self, resolver, roster):
        results = resolver.resolve_list(["   Josh Allen  "], roster)
        assert results.matched[0].search_name == "Josh Allen"

    def test_suggestions_for_typos(self, resolver, roster):
        results = resolver.resolve_list(["Jalen Hurst"], roster)

        assert len(results.unmatched) == 1
        suggestions = results.unmatched[0].suggestions
        assert suggestions
        assert suggestions[0].player_id == "6904"

    def test_per_line_error_does_not_abort(self, resolver, roster, monkeypatch):
        original = resolver.resolve_best

        def flaky(search_name, *args, **kwargs):
            if search_name == "Mike Evans":
                raise RuntimeError("boom")
            return original(search_name, *args, **kwargs)

        monkeypatch.setattr(resolver, "resolve_best", flaky)
        results = resolver.resolve_list(["Josh Allen", "Mike Evans", "Jalen Hurts"], roster)

        assert len(results.matched) == 2
        assert len(results.errors) == 1
        assert results.errors[0].index == 1
        assert "boom" in results.errors[0].error

    def test_cancellation(self, resolver, roster):
        checks = iter([False, True])
        results = resolver.resolve_list(
            ["Josh Allen", "", "Mike Evans", "Jalen Hurts"],
            roster,
            should_cancel=lambda: next(checks, True),
        )

        assert [l.search_name for l in results.matched] == ["Josh Allen"]
        assert [l.search_name for l in results.not_attempted] == ["Mike Evans", "Jalen Hurts"]
