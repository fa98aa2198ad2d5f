"""
Run a batch of simulated matches between two configured players and print
win rates and serve statistics. The point-by-point log is exported to CSV.

    python -m tennis_sim.run_simulation --simulations 1000 --sets 3 --seed 42
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .aggregation import format_summary
from .config import SimulationConfig, load_config
from .errors import ConfigurationError
from .simulation.profiles import load_profiles
from .simulation.schemas import FinalSetRule
from .services.batch_service import BatchResult, run_from_config

log = logging.getLogger("tennis_sim")

EXIT_OK = 0
EXIT_UNIT_FAILURES = 1
EXIT_CONFIG_ERROR = 2


def build_config(args: argparse.Namespace) -> SimulationConfig:
    """Config file (if any), then command-line overrides."""
    config = load_config(args.config) if args.config else SimulationConfig()
    return config.with_overrides(
        num_simulations=args.simulations,
        num_sets=args.sets,
        max_workers=args.workers,
        batch_size=args.batch_size,
        log_interval=args.log_interval,
        seed=args.seed,
        final_set_rule=args.final_set,
        export_path=args.export,
        export_enabled=False if args.no_export else None,
        export_scores=True if args.export_scores else None,
        players=load_profiles(args.players) if args.players else None,
    )


def _print_result(result: BatchResult, config: SimulationConfig) -> None:
    print(format_summary(result.summary()))
    if not config.export_enabled:
        return
    if result.export_error:
        print(f"\nPoint-by-point log export failed: {result.export_error}")
    else:
        print(f"\nPoint-by-point log exported to '{config.export_path}'")


def run(config: SimulationConfig) -> int:
    result = run_from_config(config)
    _print_result(result, config)
    if result.failures:
        for f in result.failures:
            log.error("Replay failed match %s with seed %s (stage: %s)", f.match_id, f.seed, f.stage)
        return EXIT_UNIT_FAILURES
    return EXIT_OK


def make_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Simulate tennis matches in parallel and report statistics.")
    p.add_argument("--config", type=Path, default=None, help="JSON config file")
    p.add_argument("--players", type=Path, default=None, help="JSON file with the two player profiles")
    p.add_argument("--simulations", type=int, default=None, help="Number of matches to simulate")
    p.add_argument("--sets", type=int, choices=(3, 5), default=None, help="Best of 3 or 5 sets")
    p.add_argument("--workers", type=int, default=None, help="Maximum parallel worker processes")
    p.add_argument("--batch-size", type=int, default=None, help="Matches per work unit")
    p.add_argument("--log-interval", type=int, default=None, help="Matches between point log flushes")
    p.add_argument("--seed", type=int, default=None, help="RNG seed for reproducibility")
    p.add_argument(
        "--final-set",
        choices=[r.value for r in FinalSetRule],
        default=None,
        help="Deciding set rule at 6-6",
    )
    p.add_argument("--export", type=Path, default=None, help="CSV path for the point log")
    p.add_argument("--no-export", action="store_true", help="Skip the point log export")
    p.add_argument("--export-scores", action="store_true", help="Add score columns to the export")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p


def main(argv: list[str] | None = None) -> int:
    args = make_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        config = build_config(args)
    except ConfigurationError as e:
        log.error("%s", e)
        return EXIT_CONFIG_ERROR
    return run(config)


if __name__ == "__main__":
    sys.exit(main())
