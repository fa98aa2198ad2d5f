"""
Aggregation of simulated matches into batch statistics.
combine() folds one MatchRecord in; merge() joins two partial aggregates.
Both are pure, and merge is associative and commutative with
AggregateStats.empty() as identity, so partial results from any number of
workers reduce to the same totals in any order.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from .simulation.schemas import MatchRecord


@dataclass(frozen=True)
class PlayerTotals:
    """Per-player totals across many matches."""
    wins: int = 0
    aces: int = 0
    double_faults: int = 0
    service_points: int = 0

    def __add__(self, other: PlayerTotals) -> PlayerTotals:
        return PlayerTotals(
            wins=self.wins + other.wins,
            aces=self.aces + other.aces,
            double_faults=self.double_faults + other.double_faults,
            service_points=self.service_points + other.service_points,
        )


@dataclass(frozen=True)
class AggregateStats:
    """Totals keyed by player name, plus shot and match counts. Never mutated after creation."""
    players: dict[str, PlayerTotals] = field(default_factory=dict)
    total_shots: int = 0
    total_matches: int = 0

    @classmethod
    def empty(cls) -> AggregateStats:
        return cls()

    def totals(self, name: str) -> PlayerTotals:
        return self.players.get(name, PlayerTotals())

    def wins(self, name: str) -> int:
        return self.totals(name).wins


def combine(stats: AggregateStats, record: MatchRecord) -> AggregateStats:
    """Fold one finished match into the aggregate."""
    players = dict(stats.players)
    for i, name in enumerate(record.players):
        players[name] = players.get(name, PlayerTotals()) + PlayerTotals(
            wins=1 if record.winner == i else 0,
            aces=record.aces[i],
            double_faults=record.double_faults[i],
            service_points=record.service_points[i],
        )
    return AggregateStats(
        players=players,
        total_shots=stats.total_shots + record.total_points,
        total_matches=stats.total_matches + 1,
    )


def merge(a: AggregateStats, b: AggregateStats) -> AggregateStats:
    """Join two partial aggregates."""
    players = dict(a.players)
    for name, totals in b.players.items():
        players[name] = players.get(name, PlayerTotals()) + totals
    return AggregateStats(
        players=players,
        total_shots=a.total_shots + b.total_shots,
        total_matches=a.total_matches + b.total_matches,
    )


def reduce_records(records: Iterable[MatchRecord], initial: AggregateStats | None = None) -> AggregateStats:
    stats = initial if initial is not None else AggregateStats.empty()
    for record in records:
        stats = combine(stats, record)
    return stats


def merge_all(partials: Iterable[AggregateStats]) -> AggregateStats:
    stats = AggregateStats.empty()
    for partial in partials:
        stats = merge(stats, partial)
    return stats


# ---------- Summary ----------


@dataclass(frozen=True)
class PlayerSummary:
    name: str
    wins: int
    win_pct: float
    avg_aces: float
    avg_double_faults: float
    # Observed per-serve rates, comparable to the profile's ace_prob / double_fault_prob
    ace_rate: float
    double_fault_rate: float


@dataclass(frozen=True)
class BatchSummary:
    total_matches: int
    total_shots: int
    elapsed_ms: float
    players: tuple[PlayerSummary, ...]
    seed: int | None = None
    failed_units: int = 0

    def player(self, name: str) -> PlayerSummary:
        for p in self.players:
            if p.name == name:
                return p
        raise KeyError(name)


def summarize(
    stats: AggregateStats,
    elapsed_ms: float = 0.0,
    player_order: Sequence[str] | None = None,
    seed: int | None = None,
    failed_units: int = 0,
) -> BatchSummary:
    """Win percentages and per-match averages for each player."""
    names = list(player_order) if player_order is not None else sorted(stats.players)
    n = stats.total_matches
    players = []
    for name in names:
        t = stats.totals(name)
        players.append(
            PlayerSummary(
                name=name,
                wins=t.wins,
                win_pct=100.0 * t.wins / n if n else 0.0,
                avg_aces=t.aces / n if n else 0.0,
                avg_double_faults=t.double_faults / n if n else 0.0,
                ace_rate=t.aces / t.service_points if t.service_points else 0.0,
                double_fault_rate=t.double_faults / t.service_points if t.service_points else 0.0,
            )
        )
    return BatchSummary(
        total_matches=n,
        total_shots=stats.total_shots,
        elapsed_ms=elapsed_ms,
        players=tuple(players),
        seed=seed,
        failed_units=failed_units,
    )


def format_summary(summary: BatchSummary) -> str:
    """Console report."""
    lines = [f"Percentage of match wins after {summary.total_matches} matches:"]
    for p in summary.players:
        lines.append(f"  {p.name}: {p.win_pct:.2f}%")
    lines.append("")
    lines.append(f"Total shots played: {summary.total_shots}")
    lines.append(f"Execution time: {summary.elapsed_ms:.2f} milliseconds")
    if summary.seed is not None:
        lines.append(f"Seed: {summary.seed}")
    if summary.failed_units:
        lines.append(f"Failed work units: {summary.failed_units}")
    lines.append("")
    lines.append("Match statistics:")
    for p in summary.players:
        lines.append(f"  {p.name}:")
        lines.append(f"    Avg. aces per match: {p.avg_aces:.2f}")
        lines.append(f"    Avg. double faults per match: {p.avg_double_faults:.2f}")
        lines.append(f"    Aces per service point: {p.ace_rate:.4f}")
        lines.append(f"    Double faults per service point: {p.double_fault_rate:.4f}")
    return "\n".join(lines)
