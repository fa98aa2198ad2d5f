#!/usr/bin/env python3
"""
Compare the three deciding-set rules on the same players and seed:
match length, deciding-set length and win split.
Run from project root: python3 scripts/compare_final_set_rules.py [matches] [seed]
"""
from __future__ import annotations

import sys
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tennis_sim.config import SimulationConfig
from tennis_sim.services.batch_service import run_batch
from tennis_sim.simulation.orchestrator import MatchOrchestrator
from tennis_sim.simulation.rng import SeededRNG
from tennis_sim.simulation.schemas import FinalSetRule


def deciding_set_games(config: SimulationConfig, num_matches: int, seed: int) -> tuple[int, int]:
    """(matches that went the distance, longest deciding set in games)."""
    fmt = config.match_format
    went_distance = 0
    longest = 0
    for i in range(num_matches):
        rec = MatchOrchestrator(config.profiles, fmt, SeededRNG.for_match(seed, i), i, record_points=False).run()
        if len(rec.sets) == fmt.num_sets:
            went_distance += 1
            longest = max(longest, sum(rec.sets[-1].games_won))
    return went_distance, longest


def main() -> None:
    num_matches = int(sys.argv[1]) if len(sys.argv) > 1 else 500
    seed = int(sys.argv[2]) if len(sys.argv) > 2 else 42

    for rule in FinalSetRule:
        config = SimulationConfig(
            num_simulations=num_matches,
            num_sets=5,
            final_set_rule=rule,
            seed=seed,
            export_enabled=False,
        )
        result = run_batch(config, collect_points=False)
        summary = result.summary()
        went_distance, longest = deciding_set_games(config, num_matches, seed)
        print(f"--- {rule.value} ---")
        print(f"  Avg. points per match: {summary.total_shots / summary.total_matches:.1f}")
        print(f"  Five-setters: {went_distance}, longest fifth set: {longest} games")
        for p in summary.players:
            print(f"  {p.name}: {p.win_pct:.2f}% wins, {p.avg_aces:.2f} aces/match")
        print()


if __name__ == "__main__":
    main()
