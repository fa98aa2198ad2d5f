"""
Tests for batch aggregation: combine/merge laws and the summary report.
"""
from __future__ import annotations

import itertools
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from tennis_sim.aggregation import (
    AggregateStats,
    PlayerTotals,
    combine,
    format_summary,
    merge,
    merge_all,
    reduce_records,
    summarize,
)
from tennis_sim.simulation.profiles import default_players
from tennis_sim.simulation.orchestrator import simulate_match
from tennis_sim.simulation.schemas import MatchFormat


@pytest.fixture(scope="module")
def records():
    players = default_players()
    return [
        simulate_match(players, MatchFormat(3), seed=100 + i, match_id=i, record_points=False)
        for i in range(6)
    ]


class TestCombine:
    def test_single_record(self, records):
        rec = records[0]
        stats = combine(AggregateStats.empty(), rec)
        assert stats.total_matches == 1
        assert stats.total_shots == rec.total_points
        for i, name in enumerate(rec.players):
            t = stats.totals(name)
            assert t.wins == (1 if rec.winner == i else 0)
            assert t.aces == rec.aces[i]
            assert t.double_faults == rec.double_faults[i]
            assert t.service_points == rec.service_points[i]

    def test_combine_is_pure(self, records):
        base = AggregateStats.empty()
        combine(base, records[0])
        assert base == AggregateStats.empty()
        assert base.players == {}

    def test_order_does_not_matter(self, records):
        forward = reduce_records(records)
        backward = reduce_records(reversed(records))
        assert forward == backward

    def test_wins_sum_to_matches(self, records):
        stats = reduce_records(records)
        assert sum(stats.wins(name) for name in records[0].players) == len(records)
        assert stats.total_shots == sum(r.total_points for r in records)

    def test_unknown_player_is_zero(self):
        assert AggregateStats.empty().totals("nobody") == PlayerTotals()


class TestMerge:
    def test_identity(self, records):
        stats = reduce_records(records)
        assert merge(stats, AggregateStats.empty()) == stats
        assert merge(AggregateStats.empty(), stats) == stats

    def test_commutative(self, records):
        a = reduce_records(records[:2])
        b = reduce_records(records[2:])
        assert merge(a, b) == merge(b, a)

    def test_associative(self, records):
        a = reduce_records(records[:2])
        b = reduce_records(records[2:4])
        c = reduce_records(records[4:])
        assert merge(merge(a, b), c) == merge(a, merge(b, c))

    def test_any_grouping_equals_sequential(self, records):
        sequential = reduce_records(records)
        for size in (1, 2, 3, 4, 6):
            partials = [reduce_records(records[i:i + size]) for i in range(0, len(records), size)]
            assert merge_all(partials) == sequential
            assert merge_all(reversed(partials)) == sequential

    def test_permutations_of_partials(self, records):
        sequential = reduce_records(records)
        partials = [reduce_records(records[i:i + 2]) for i in range(0, len(records), 2)]
        for perm in itertools.permutations(partials):
            assert merge_all(perm) == sequential


class TestSummary:
    def test_percentages(self, records):
        stats = reduce_records(records)
        names = records[0].players
        summary = summarize(stats, elapsed_ms=12.5, player_order=names, seed=100)
        assert summary.total_matches == len(records)
        assert [p.name for p in summary.players] == list(names)
        assert sum(p.win_pct for p in summary.players) == pytest.approx(100.0)
        for p in summary.players:
            t = stats.totals(p.name)
            assert p.avg_aces == pytest.approx(t.aces / len(records))
            assert p.ace_rate == pytest.approx(t.aces / t.service_points)

    def test_empty_stats(self):
        summary = summarize(AggregateStats.empty(), player_order=("A", "B"))
        assert summary.total_matches == 0
        assert all(p.win_pct == 0.0 and p.ace_rate == 0.0 for p in summary.players)

    def test_default_order_is_sorted(self, records):
        summary = summarize(reduce_records(records))
        assert [p.name for p in summary.players] == sorted(records[0].players)

    def test_player_lookup(self, records):
        summary = summarize(reduce_records(records))
        assert summary.player("Nadal").name == "Nadal"
        with pytest.raises(KeyError):
            summary.player("Djokovic")

    def test_format_summary(self, records):
        stats = reduce_records(records)
        text = format_summary(summarize(stats, elapsed_ms=3.0, player_order=records[0].players, seed=7))
        assert f"Percentage of match wins after {len(records)} matches:" in text
        assert f"Total shots played: {stats.total_shots}" in text
        assert "Seed: 7" in text
        assert "Federer" in text and "Nadal" in text
        assert "Failed work units" not in text
