"""
Validation test for the simulation engine: run many matches, aggregate
statistics, and compare them to the configured serve profiles and to
typical professional tennis figures.

Benchmarks:
- Observed ace / double fault rate per service point should match the
  profile's ace_prob / double_fault_prob within sampling error.
- Average points per service game: ~6-7 on the ATP tour; a wide band is used.
- Service hold rate: ~75-85% on the ATP tour; a wide band is used.
"""
from __future__ import annotations

import math
import os
import sys
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path

import pytest

# Run from project root: python -m pytest tennis_sim/tests/test_simulation_validation.py -v
_root = Path(__file__).resolve().parent.parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from tennis_sim.aggregation import reduce_records, summarize
from tennis_sim.config import SimulationConfig
from tennis_sim.services.batch_service import run_batch
from tennis_sim.simulation.orchestrator import MatchOrchestrator
from tennis_sim.simulation.profiles import PlayerProfile
from tennis_sim.simulation.rng import SeededRNG
from tennis_sim.simulation.schemas import FinalSetRule, MatchFormat, MatchRecord

STRONG = PlayerProfile("Player 1", serve_win_prob=0.65, ace_prob=0.10, double_fault_prob=0.05)
WEAK = PlayerProfile("Player 2", serve_win_prob=0.60, ace_prob=0.08, double_fault_prob=0.06)

EXPECTED_AVG_POINTS_PER_GAME_MIN = 5.5
EXPECTED_AVG_POINTS_PER_GAME_MAX = 8.0
EXPECTED_HOLD_PCT_MIN = 0.60
EXPECTED_HOLD_PCT_MAX = 0.95
# Allowed deviation of observed serve rates, in standard errors
RATE_TOLERANCE_SE = 4.0

# Number of matches for validation (can override with env SIM_VALIDATION_MATCHES).
DEFAULT_VALIDATION_MATCHES = int(os.environ.get("SIM_VALIDATION_MATCHES", "1000"))
BASE_SEED = 2024


@dataclass
class AggregatedStats:
    """Match-level statistics not carried by AggregateStats."""
    total_matches: int = 0
    total_games: int = 0
    game_points: int = 0
    holds: list[int] = field(default_factory=lambda: [0, 0])
    service_games: list[int] = field(default_factory=lambda: [0, 0])
    set_scores: list[tuple[int, int]] = field(default_factory=list)

    @property
    def avg_points_per_game(self) -> float:
        if self.total_games <= 0:
            return 0.0
        return self.game_points / self.total_games

    def hold_pct(self, player: int) -> float:
        if self.service_games[player] <= 0:
            return 0.0
        return self.holds[player] / self.service_games[player]

    def set_score_distribution(self) -> dict[tuple[int, int], float]:
        if not self.set_scores:
            return {}
        counts: dict[tuple[int, int], int] = defaultdict(int)
        for s in self.set_scores:
            counts[s] += 1
        n = len(self.set_scores)
        return {k: v / n for k, v in counts.items()}


def play_matches(n_matches: int, best_of: int = 3, base_seed: int = BASE_SEED) -> list[MatchRecord]:
    """Same per-match seeds as run_batch uses."""
    fmt = MatchFormat(best_of, FinalSetRule.STANDARD_TIEBREAK)
    return [
        MatchOrchestrator(
            (STRONG, WEAK),
            fmt,
            SeededRNG.for_match(base_seed, i),
            match_id=i,
            record_points=False,
        ).run()
        for i in range(n_matches)
    ]


def aggregate(records: list[MatchRecord]) -> AggregatedStats:
    agg = AggregatedStats()
    for rec in records:
        agg.total_matches += 1
        agg.set_scores.append(rec.sets_won)
        for s in rec.sets:
            for g in s.games:
                agg.total_games += 1
                agg.game_points += sum(g.points)
                agg.service_games[g.server] += 1
                if g.held:
                    agg.holds[g.server] += 1
    return agg


def within_se(observed: float, expected: float, n: int) -> bool:
    se = math.sqrt(expected * (1.0 - expected) / n)
    return abs(observed - expected) <= RATE_TOLERANCE_SE * se


class TestSimulationValidation:
    """Run many matches and compare aggregate stats to the profiles and tour figures."""

    @pytest.fixture(scope="class")
    def records(self):
        return play_matches(DEFAULT_VALIDATION_MATCHES)

    @pytest.fixture(scope="class")
    def agg(self, records):
        return aggregate(records)

    @pytest.fixture(scope="class")
    def batch(self):
        config = SimulationConfig(
            num_simulations=DEFAULT_VALIDATION_MATCHES,
            num_sets=3,
            final_set_rule=FinalSetRule.STANDARD_TIEBREAK,
            max_workers=1,
            batch_size=50,
            seed=BASE_SEED,
            players=(STRONG, WEAK),
            export_enabled=False,
        )
        return run_batch(config, collect_points=False)

    def test_batch_matches_sequential_reduction(self, batch, records):
        assert batch.stats == reduce_records(records)
        assert batch.completed_matches == DEFAULT_VALIDATION_MATCHES

    def test_win_percentages_sum_to_hundred(self, batch):
        summary = batch.summary()
        assert sum(p.win_pct for p in summary.players) == pytest.approx(100.0)
        assert sum(p.wins for p in summary.players) == summary.total_matches

    def test_stronger_player_wins_more(self, batch):
        summary = batch.summary()
        assert summary.player(STRONG.name).win_pct > 55.0, (
            f"{STRONG.name} won {summary.player(STRONG.name).win_pct:.1f}%, expected > 55%"
        )

    def test_serve_rates_match_profiles(self, batch):
        summary = batch.summary()
        for profile in (STRONG, WEAK):
            p = summary.player(profile.name)
            n = batch.stats.totals(profile.name).service_points
            assert within_se(p.ace_rate, profile.ace_prob, n), (
                f"{profile.name} ace rate {p.ace_rate:.4f} vs profile {profile.ace_prob}"
            )
            assert within_se(p.double_fault_rate, profile.double_fault_prob, n), (
                f"{profile.name} double fault rate {p.double_fault_rate:.4f} vs profile {profile.double_fault_prob}"
            )

    def test_shots_equal_service_points(self, batch):
        stats = batch.stats
        assert stats.total_shots == sum(stats.totals(name).service_points for name in batch.players)

    def test_average_points_per_game_in_reasonable_range(self, agg):
        avg = agg.avg_points_per_game
        assert EXPECTED_AVG_POINTS_PER_GAME_MIN <= avg <= EXPECTED_AVG_POINTS_PER_GAME_MAX, (
            f"Avg points per game {avg:.2f} outside [{EXPECTED_AVG_POINTS_PER_GAME_MIN}, {EXPECTED_AVG_POINTS_PER_GAME_MAX}]"
        )

    def test_hold_rates_in_reasonable_range(self, agg):
        for player in (0, 1):
            pct = agg.hold_pct(player)
            assert EXPECTED_HOLD_PCT_MIN <= pct <= EXPECTED_HOLD_PCT_MAX, (
                f"Hold % {pct:.2%} for player {player} outside expected range"
            )
        assert agg.hold_pct(0) > agg.hold_pct(1)

    def test_set_score_distribution(self, agg):
        dist = agg.set_score_distribution()
        assert dist
        for (sa, sb), pct in dist.items():
            assert 0 <= pct <= 1
            assert (sa == 2) != (sb == 2)
            assert max(sa, sb) == 2

    def test_validation_report(self, batch, agg):
        """Print a short report (for manual check)."""
        summary = summarize(batch.stats, player_order=batch.players)
        print("\n--- Simulation validation report ---")
        print(f"  Matches: {summary.total_matches}, shots: {summary.total_shots}")
        for p in summary.players:
            print(
                f"  {p.name}: win {p.win_pct:.1f}%, aces/match {p.avg_aces:.2f}, "
                f"ace rate {p.ace_rate:.4f}, df rate {p.double_fault_rate:.4f}"
            )
        print(f"  Avg points per game: {agg.avg_points_per_game:.2f}")
        print(f"  Hold %: {agg.hold_pct(0):.1%} / {agg.hold_pct(1):.1%}")
        print(f"  Set scores: {dict((k, f'{v:.1%}') for k, v in sorted(agg.set_score_distribution().items()))}")
        print("------------------------------------")
