"""
Batch simulation: N independent matches split into work units of
`batch_size` consecutive match indices, run on a bounded process pool.
Each unit reduces its own matches into a local AggregateStats; the parent
merges the partials and streams point logs to the exporter.
"""
from __future__ import annotations

import logging
import time
from collections import deque
from concurrent.futures import ProcessPoolExecutor
from contextlib import closing
from dataclasses import dataclass, field
from itertools import islice
from typing import Iterator, Sequence

from ..aggregation import AggregateStats, BatchSummary, combine, merge_all, summarize
from ..config import SimulationConfig
from ..errors import ConfigurationError, ExportError, SimulationInvariantError
from ..simulation.orchestrator import MatchOrchestrator
from ..simulation.persistence import CsvPointLogExporter, MemorySink, PointLogBuffer, PointLogSink
from ..simulation.profiles import PlayerProfile
from ..simulation.rng import SeededRNG, derive_match_seed, random_seed
from ..simulation.schemas import MatchFormat, PointLogEntry

log = logging.getLogger(__name__)

# Units in flight per worker; bounds how many finished results wait in memory
UNITS_IN_FLIGHT_PER_WORKER = 2


@dataclass(frozen=True)
class WorkUnit:
    """Matches [start, stop) of one run; everything a worker needs, nothing shared."""
    index: int
    start: int
    stop: int
    base_seed: int
    players: tuple[PlayerProfile, PlayerProfile]
    match_format: MatchFormat
    record_points: bool = True

    @property
    def size(self) -> int:
        return self.stop - self.start


@dataclass(frozen=True)
class UnitFailure:
    """Enough context to replay the failing match from its seed."""
    unit_index: int
    match_id: int | None
    seed: int | None
    stage: str | None
    message: str


@dataclass
class UnitResult:
    unit_index: int
    stats: AggregateStats
    match_logs: list[tuple[PointLogEntry, ...]] = field(default_factory=list)
    failure: UnitFailure | None = None


@dataclass
class BatchResult:
    stats: AggregateStats
    elapsed_ms: float
    seed: int
    players: tuple[str, str]
    point_log: tuple[PointLogEntry, ...] = ()
    failures: tuple[UnitFailure, ...] = ()
    export_error: str | None = None

    @property
    def completed_matches(self) -> int:
        return self.stats.total_matches

    def summary(self) -> BatchSummary:
        return summarize(
            self.stats,
            elapsed_ms=self.elapsed_ms,
            player_order=self.players,
            seed=self.seed,
            failed_units=len(self.failures),
        )


def partition(num_simulations: int, batch_size: int) -> list[tuple[int, int]]:
    """Split match indices 0..num_simulations-1 into [start, stop) ranges of at most batch_size."""
    if num_simulations <= 0 or batch_size <= 0:
        raise ConfigurationError("num_simulations and batch_size must be positive")
    return [(start, min(start + batch_size, num_simulations)) for start in range(0, num_simulations, batch_size)]


def run_unit(unit: WorkUnit) -> UnitResult:
    """Run one work unit to completion. Module-level so the process pool can pickle it."""
    stats = AggregateStats.empty()
    logs: list[tuple[PointLogEntry, ...]] = []
    match_index = unit.start
    try:
        for match_index in range(unit.start, unit.stop):
            rng = SeededRNG.for_match(unit.base_seed, match_index)
            record = MatchOrchestrator(
                unit.players,
                unit.match_format,
                rng,
                match_id=match_index,
                record_points=unit.record_points,
            ).run()
            stats = combine(stats, record)
            if unit.record_points:
                logs.append(record.point_log)
    except SimulationInvariantError as e:
        failure = UnitFailure(
            unit_index=unit.index,
            match_id=e.match_id if e.match_id is not None else match_index,
            seed=e.seed if e.seed is not None else derive_match_seed(unit.base_seed, match_index),
            stage=e.stage,
            message=str(e),
        )
        return UnitResult(unit.index, AggregateStats.empty(), [], failure)
    return UnitResult(unit.index, stats, logs)


def _execute(units: Sequence[WorkUnit], max_workers: int) -> Iterator[UnitResult]:
    """Yield unit results in submission order."""
    if max_workers == 1 or len(units) <= 1:
        for unit in units:
            yield run_unit(unit)
        return

    workers = min(max_workers, len(units))
    executor = ProcessPoolExecutor(max_workers=workers)
    pending = deque()
    remaining = iter(units)
    try:
        for unit in islice(remaining, workers * UNITS_IN_FLIGHT_PER_WORKER):
            pending.append(executor.submit(run_unit, unit))
        while pending:
            result = pending.popleft().result()
            nxt = next(remaining, None)
            if nxt is not None:
                pending.append(executor.submit(run_unit, nxt))
            yield result
    finally:
        for f in pending:
            f.cancel()
        executor.shutdown(wait=True, cancel_futures=True)


def _finish_export(buffer: PointLogBuffer, sink: PointLogSink, error: ExportError | None) -> ExportError | None:
    """Flush what is left (unless export already failed) and close the sink."""
    try:
        if error is None:
            buffer.flush()
    except ExportError as e:
        error = e
        log.error("Point log export failed: %s", e)
    try:
        sink.close()
    except ExportError as e:
        log.error("Closing point log failed: %s", e)
        if error is None:
            error = e
    return error


def build_units(
    config: SimulationConfig,
    num_simulations: int,
    base_seed: int,
    record_points: bool = True,
) -> list[WorkUnit]:
    players = config.profiles
    match_format = config.match_format
    return [
        WorkUnit(
            index=i,
            start=start,
            stop=stop,
            base_seed=base_seed,
            players=players,
            match_format=match_format,
            record_points=record_points,
        )
        for i, (start, stop) in enumerate(partition(num_simulations, config.batch_size))
    ]


def run_batch(
    config: SimulationConfig,
    num_simulations: int | None = None,
    sink: PointLogSink | None = None,
    collect_points: bool = True,
) -> BatchResult:
    """
    Simulate num_simulations matches (default: config.num_simulations).
    Point logs go to `sink` every config.log_interval matches; without a sink
    they are kept in memory and returned on BatchResult.point_log.
    An export failure stops exporting but never the simulation.
    """
    n = config.num_simulations if num_simulations is None else num_simulations
    if n <= 0:
        raise ConfigurationError(f"num_simulations must be positive, got {n}")
    base_seed = config.seed if config.seed is not None else random_seed()
    units = build_units(config, n, base_seed, record_points=collect_points)
    names = (config.players[0].name, config.players[1].name)

    memory_sink = None
    if sink is None and collect_points:
        memory_sink = sink = MemorySink()
    buffer = PointLogBuffer(sink, config.log_interval) if collect_points else None

    log.info(
        "Simulating %d matches (best of %d, final set: %s) in %d units on %d workers, seed=%d",
        n, config.num_sets, config.final_set_rule.value, len(units), config.max_workers, base_seed,
    )
    partials: list[AggregateStats] = []
    failures: list[UnitFailure] = []
    export_error: ExportError | None = None
    if buffer is not None:
        # Created and truncated before any unit runs
        try:
            sink.open()
        except ExportError as e:
            export_error = e
            log.error("Point log export disabled: %s", e)
    start = time.perf_counter()
    try:
        with closing(_execute(units, config.max_workers)) as results:
            for result in results:
                if result.failure is not None:
                    failures.append(result.failure)
                    log.error(
                        "Unit %d failed at match %s (seed=%s, stage=%s): %s",
                        result.unit_index,
                        result.failure.match_id,
                        result.failure.seed,
                        result.failure.stage,
                        result.failure.message,
                    )
                    continue
                partials.append(result.stats)
                log.debug("Unit %d done: %d matches", result.unit_index, result.stats.total_matches)
                if buffer is None or export_error is not None:
                    continue
                try:
                    for match_log in result.match_logs:
                        buffer.add_match(match_log)
                except ExportError as e:
                    export_error = e
                    buffer.discard()
                    log.error("Point log export stopped: %s", e)
    except KeyboardInterrupt:
        log.warning("Batch aborted after %d completed units", len(partials))
        raise
    finally:
        if buffer is not None:
            export_error = _finish_export(buffer, sink, export_error)
    elapsed_ms = (time.perf_counter() - start) * 1000.0

    stats = merge_all(partials)
    log.info("Completed %d matches in %.0f ms (%d failed units)", stats.total_matches, elapsed_ms, len(failures))
    return BatchResult(
        stats=stats,
        elapsed_ms=elapsed_ms,
        seed=base_seed,
        players=names,
        point_log=tuple(memory_sink.entries) if memory_sink is not None else (),
        failures=tuple(failures),
        export_error=str(export_error) if export_error is not None else None,
    )


def run_from_config(config: SimulationConfig) -> BatchResult:
    """Run a batch with the CSV export the config asks for."""
    if not config.export_enabled:
        return run_batch(config, collect_points=False)
    exporter = CsvPointLogExporter(config.export_path, include_scores=config.export_scores)
    return run_batch(config, sink=exporter)
