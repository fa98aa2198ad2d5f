"""
Shared types for the match simulator: point outcomes, match format,
completed game/set/match scores and point log entries.
Players are addressed by index (0 = first configured player, 1 = second).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..errors import ConfigurationError

POINTS_TO_WIN_GAME = 4
GAMES_TO_WIN_SET = 6
TIEBREAK_POINTS = 7
EXTENDED_TIEBREAK_POINTS = 10
WIN_BY = 2


class PointOutcome(str, Enum):
    """How a serve point ended."""
    ACE = "ace"
    DOUBLE_FAULT = "double_fault"
    SERVER_WINS_RALLY = "server_wins_rally"
    RETURNER_WINS_RALLY = "returner_wins_rally"

    @property
    def server_won(self) -> bool:
        return self in (PointOutcome.ACE, PointOutcome.SERVER_WINS_RALLY)


class FinalSetRule(str, Enum):
    """How the deciding set resolves at 6-6."""
    STANDARD_TIEBREAK = "standard_tiebreak"    # first to 7, win by 2
    ADVANTAGE = "advantage"                    # no tiebreak, play on until two games clear
    EXTENDED_TIEBREAK = "extended_tiebreak"    # first to 10, win by 2


def sets_to_win_match(best_of: int) -> int:
    return (best_of // 2) + 1


@dataclass(frozen=True)
class MatchFormat:
    """Best-of-3 or best-of-5, plus the deciding-set rule."""
    num_sets: int = 3
    final_set_rule: FinalSetRule = FinalSetRule.STANDARD_TIEBREAK

    def __post_init__(self) -> None:
        if self.num_sets not in (3, 5):
            raise ConfigurationError(f"num_sets must be 3 or 5, got {self.num_sets}")
        if not isinstance(self.final_set_rule, FinalSetRule):
            try:
                object.__setattr__(self, "final_set_rule", FinalSetRule(self.final_set_rule))
            except ValueError as e:
                raise ConfigurationError(f"Unknown final set rule: {self.final_set_rule!r}") from e

    @property
    def sets_to_win(self) -> int:
        return sets_to_win_match(self.num_sets)

    def is_deciding_set(self, set_index: int) -> bool:
        """True if this set is the final possible set (e.g. set 2 in best of 3)."""
        return set_index == self.num_sets - 1

    def tiebreak_target(self, set_index: int) -> int | None:
        """Points needed to win the tiebreak at 6-6 in this set; None when no tiebreak is played."""
        if not self.is_deciding_set(set_index):
            return TIEBREAK_POINTS
        if self.final_set_rule is FinalSetRule.ADVANTAGE:
            return None
        if self.final_set_rule is FinalSetRule.EXTENDED_TIEBREAK:
            return EXTENDED_TIEBREAK_POINTS
        return TIEBREAK_POINTS


@dataclass(frozen=True)
class GameScore:
    """A completed service game."""
    server: int
    points: tuple[int, int]
    winner: int

    @property
    def held(self) -> bool:
        return self.winner == self.server


@dataclass(frozen=True)
class TiebreakScore:
    """A completed tiebreak; target is 7, or 10 for the extended variant."""
    first_server: int
    points: tuple[int, int]
    target: int
    winner: int

    @property
    def loser_points(self) -> int:
        return self.points[1 - self.winner]


@dataclass(frozen=True)
class SetScore:
    """A completed set: its games in order, games won, and the tiebreak if one was played."""
    set_index: int
    games: tuple[GameScore, ...]
    games_won: tuple[int, int]
    winner: int
    tiebreak: TiebreakScore | None = None
    aces: tuple[int, int] = (0, 0)
    double_faults: tuple[int, int] = (0, 0)

    @property
    def tiebreak_played(self) -> bool:
        return self.tiebreak is not None

    def display(self) -> str:
        """E.g. '6-4' or '7-6(5)' (tiebreak loser's points in brackets)."""
        text = f"{self.games_won[0]}-{self.games_won[1]}"
        if self.tiebreak is not None:
            text += f"({self.tiebreak.loser_points})"
        return text


@dataclass(frozen=True)
class PointLogEntry:
    """
    One exported point. The first six fields are the export contract;
    the rest is presentation context (scores from the server's side).
    """
    match_id: int
    set_index: int
    game_index: int
    point_index: int
    server: str
    outcome: PointOutcome
    receiver: str = ""
    point_score: str = ""
    game_score: str = ""
    set_score: str = ""
    tiebreak: bool = False

    def sort_key(self) -> tuple[int, int, int, int]:
        return (self.match_id, self.set_index, self.game_index, self.point_index)


@dataclass(frozen=True)
class MatchRecord:
    """Finalized result of one simulated match."""
    match_id: int
    seed: int | None
    format: MatchFormat
    players: tuple[str, str]
    first_server: int
    sets: tuple[SetScore, ...]
    sets_won: tuple[int, int]
    aces: tuple[int, int]
    double_faults: tuple[int, int]
    service_points: tuple[int, int]
    total_points: int
    winner: int
    point_log: tuple[PointLogEntry, ...] = ()

    @property
    def winner_name(self) -> str:
        return self.players[self.winner]

    @property
    def loser_name(self) -> str:
        return self.players[1 - self.winner]

    def score_line(self) -> str:
        return " ".join(s.display() for s in self.sets)


_GAME_POINT_LABELS = {0: "0", 1: "15", 2: "30", 3: "40"}


def format_point_score(server_points: int, receiver_points: int, tiebreak: bool = False) -> str:
    """Tennis display for a point tally, server first: '15-30', 'Deuce', 'Ad-In', 'Ad-Out', 'GAME'."""
    if tiebreak:
        return f"{server_points}-{receiver_points}"
    if server_points >= 3 and server_points == receiver_points:
        return "Deuce"
    if max(server_points, receiver_points) >= 4:
        diff = server_points - receiver_points
        if abs(diff) >= 2:
            return "GAME"
        if diff == 1:
            return "Ad-In"
        if diff == -1:
            return "Ad-Out"
    return f"{_GAME_POINT_LABELS[server_points]}-{_GAME_POINT_LABELS[receiver_points]}"
