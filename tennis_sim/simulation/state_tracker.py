"""
Game, tiebreak and set state machines.
Counters only ever grow; each machine ends in a terminal state with a winner
and folds into an immutable score (GameScore, TiebreakScore, SetScore).
"""
from __future__ import annotations

from ..errors import SimulationInvariantError
from .schemas import (
    GAMES_TO_WIN_SET,
    POINTS_TO_WIN_GAME,
    TIEBREAK_POINTS,
    WIN_BY,
    GameScore,
    PointOutcome,
    SetScore,
    TiebreakScore,
)


def lead_winner(score_a: int, score_b: int, to_win: int, win_by: int = WIN_BY) -> int | None:
    """Returns 0 or 1 if someone reached to_win with the required lead, else None."""
    if score_a >= to_win and score_a - score_b >= win_by:
        return 0
    if score_b >= to_win and score_b - score_a >= win_by:
        return 1
    return None


def _check_player(player: int, stage: str) -> None:
    if player not in (0, 1):
        raise SimulationInvariantError(f"Unknown player index {player}", stage=stage)


class GameState:
    """One service game: first to 4 points, win by 2, no cap."""

    def __init__(self, server: int) -> None:
        _check_player(server, "game")
        self.server = server
        self.points = [0, 0]
        self.winner: int | None = None

    @property
    def is_over(self) -> bool:
        return self.winner is not None

    def award_point(self, player: int) -> bool:
        """Give one point to player; returns True when this point ends the game."""
        _check_player(player, "game")
        if self.winner is not None:
            raise SimulationInvariantError("Point awarded after the game was won", stage="game")
        self.points[player] += 1
        self.winner = lead_winner(self.points[0], self.points[1], POINTS_TO_WIN_GAME)
        return self.winner is not None

    def to_score(self) -> GameScore:
        if self.winner is None:
            raise SimulationInvariantError("Game folded before completion", stage="game")
        return GameScore(server=self.server, points=(self.points[0], self.points[1]), winner=self.winner)


class TiebreakState:
    """
    Tiebreak to `target` points, win by 2. The first server serves point 1,
    then serve changes every two points.
    """

    def __init__(self, first_server: int, target: int = TIEBREAK_POINTS) -> None:
        _check_player(first_server, "tiebreak")
        self.first_server = first_server
        self.target = target
        self.points = [0, 0]
        self.winner: int | None = None

    @property
    def is_over(self) -> bool:
        return self.winner is not None

    @property
    def points_played(self) -> int:
        return self.points[0] + self.points[1]

    def next_server(self) -> int:
        n = self.points_played
        if n == 0:
            return self.first_server
        if ((n - 1) // 2) % 2 == 0:
            return 1 - self.first_server
        return self.first_server

    def award_point(self, player: int) -> bool:
        _check_player(player, "tiebreak")
        if self.winner is not None:
            raise SimulationInvariantError("Point awarded after the tiebreak was won", stage="tiebreak")
        self.points[player] += 1
        self.winner = lead_winner(self.points[0], self.points[1], self.target)
        return self.winner is not None

    def to_score(self) -> TiebreakScore:
        if self.winner is None:
            raise SimulationInvariantError("Tiebreak folded before completion", stage="tiebreak")
        return TiebreakScore(
            first_server=self.first_server,
            points=(self.points[0], self.points[1]),
            target=self.target,
            winner=self.winner,
        )


class SetState:
    """
    Games within one set: first to 6 games, win by 2. At 6-6 a tiebreak decides
    the set unless tiebreak_target is None (advantage set, play on).
    """

    def __init__(self, set_index: int, tiebreak_target: int | None = TIEBREAK_POINTS) -> None:
        self.set_index = set_index
        self.tiebreak_target = tiebreak_target
        self.games_won = [0, 0]
        self.games: list[GameScore] = []
        self.tiebreak: TiebreakScore | None = None
        self.winner: int | None = None
        self.aces = [0, 0]
        self.double_faults = [0, 0]

    @property
    def is_over(self) -> bool:
        return self.winner is not None

    @property
    def game_index(self) -> int:
        """0-based index of the game about to be played (a tiebreak counts as a game)."""
        return self.games_won[0] + self.games_won[1]

    @property
    def needs_tiebreak(self) -> bool:
        return (
            self.winner is None
            and self.tiebreak_target is not None
            and self.games_won[0] == GAMES_TO_WIN_SET
            and self.games_won[1] == GAMES_TO_WIN_SET
        )

    def record_serve(self, server: int, outcome: PointOutcome) -> None:
        if outcome is PointOutcome.ACE:
            self.aces[server] += 1
        elif outcome is PointOutcome.DOUBLE_FAULT:
            self.double_faults[server] += 1

    def record_game(self, game: GameScore) -> bool:
        """Fold a completed game into the set; returns True when the set is over."""
        if self.winner is not None:
            raise SimulationInvariantError("Game recorded after the set was won", stage="set")
        if self.needs_tiebreak:
            raise SimulationInvariantError(
                f"Regular game played at {self.games_won[0]}-{self.games_won[1]} instead of a tiebreak",
                stage="set",
            )
        self.games.append(game)
        self.games_won[game.winner] += 1
        self.winner = lead_winner(self.games_won[0], self.games_won[1], GAMES_TO_WIN_SET)
        return self.winner is not None

    def record_tiebreak(self, tiebreak: TiebreakScore) -> bool:
        """The tiebreak winner takes the set 7-6."""
        if not self.needs_tiebreak:
            raise SimulationInvariantError(
                f"Tiebreak played at {self.games_won[0]}-{self.games_won[1]}", stage="set"
            )
        self.tiebreak = tiebreak
        self.games_won[tiebreak.winner] += 1
        self.winner = tiebreak.winner
        return True

    def to_score(self) -> SetScore:
        if self.winner is None:
            raise SimulationInvariantError("Set folded before completion", stage="set")
        return SetScore(
            set_index=self.set_index,
            games=tuple(self.games),
            games_won=(self.games_won[0], self.games_won[1]),
            winner=self.winner,
            tiebreak=self.tiebreak,
            aces=(self.aces[0], self.aces[1]),
            double_faults=(self.double_faults[0], self.double_faults[1]),
        )
