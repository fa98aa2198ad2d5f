"""
Match Orchestrator: set progression (best of 3 or 5), deciding-set rule,
service rotation. Runs one match point-by-point and returns its MatchRecord.
"""
from __future__ import annotations

from ..errors import ConfigurationError, SimulationInvariantError
from .point_simulator import play_point
from .profiles import PlayerProfile, check_matchup, check_probabilities
from .rng import SeededRNG
from .schemas import (
    MatchFormat,
    MatchRecord,
    PointLogEntry,
    PointOutcome,
    format_point_score,
)
from .state_tracker import GameState, SetState, TiebreakState


class MatchOrchestrator:
    """
    Runs a full match. Service alternates strictly game by game across the
    whole match; a tiebreak counts as one game in that rotation.
    The first server is decided by a coin toss on the match RNG.
    """

    def __init__(
        self,
        players: tuple[PlayerProfile, PlayerProfile],
        match_format: MatchFormat,
        rng: SeededRNG,
        match_id: int = 0,
        record_points: bool = True,
    ) -> None:
        if len(players) != 2:
            raise ConfigurationError(f"A match needs two players, got {len(players)}")
        for p in players:
            check_probabilities(p.name, p.serve_win_prob, p.ace_prob, p.double_fault_prob)
        check_matchup(players[0], players[1])
        self.players = tuple(players)
        self.format = match_format
        self.rng = rng
        self.match_id = match_id
        self.record_points = record_points
        self._names = (players[0].name, players[1].name)
        self._sets_won = [0, 0]
        self._service_points = [0, 0]
        self._games_played = 0
        self._point_index = 0
        self._first_server = 0
        self._log: list[PointLogEntry] = []

    def _game_server(self) -> int:
        if self._games_played % 2 == 0:
            return self._first_server
        return 1 - self._first_server

    def _point(self, server: int, set_state: SetState) -> PointOutcome:
        outcome = play_point(self.players[server], self.rng)
        self._service_points[server] += 1
        set_state.record_serve(server, outcome)
        return outcome

    def _log_point(
        self,
        set_state: SetState,
        server: int,
        outcome: PointOutcome,
        points: list[int],
        tiebreak: bool,
    ) -> None:
        receiver = 1 - server
        games = set_state.games_won
        self._log.append(
            PointLogEntry(
                match_id=self.match_id,
                set_index=set_state.set_index,
                game_index=set_state.game_index,
                point_index=self._point_index,
                server=self._names[server],
                outcome=outcome,
                receiver=self._names[receiver],
                point_score=format_point_score(points[server], points[receiver], tiebreak),
                game_score=f"{games[server]}-{games[receiver]}",
                set_score=f"{self._sets_won[server]}-{self._sets_won[receiver]}",
                tiebreak=tiebreak,
            )
        )

    def _play_game(self, set_state: SetState) -> None:
        server = self._game_server()
        game = GameState(server)
        while not game.is_over:
            outcome = self._point(server, set_state)
            game.award_point(server if outcome.server_won else 1 - server)
            if self.record_points:
                self._log_point(set_state, server, outcome, game.points, tiebreak=False)
            self._point_index += 1
        set_state.record_game(game.to_score())
        self._games_played += 1

    def _play_tiebreak(self, set_state: SetState) -> None:
        tb = TiebreakState(self._game_server(), target=set_state.tiebreak_target)
        while not tb.is_over:
            server = tb.next_server()
            outcome = self._point(server, set_state)
            tb.award_point(server if outcome.server_won else 1 - server)
            if self.record_points:
                self._log_point(set_state, server, outcome, tb.points, tiebreak=True)
            self._point_index += 1
        set_state.record_tiebreak(tb.to_score())
        self._games_played += 1

    def _play_set(self, set_index: int) -> SetState:
        set_state = SetState(set_index, self.format.tiebreak_target(set_index))
        while not set_state.is_over:
            if set_state.needs_tiebreak:
                self._play_tiebreak(set_state)
            else:
                self._play_game(set_state)
        return set_state

    def run(self) -> MatchRecord:
        """Play the match to completion."""
        self._first_server = 0 if self.rng.coin_flip() else 1
        sets_needed = self.format.sets_to_win
        completed = []
        try:
            while max(self._sets_won) < sets_needed:
                set_index = len(completed)
                if set_index >= self.format.num_sets:
                    raise SimulationInvariantError(
                        f"Set {set_index + 1} started in a best of {self.format.num_sets}", stage="match"
                    )
                set_state = self._play_set(set_index)
                self._sets_won[set_state.winner] += 1
                completed.append(set_state.to_score())
        except SimulationInvariantError as e:
            if e.match_id is None:
                e.match_id = self.match_id
            if e.seed is None:
                e.seed = self.rng.seed
            raise

        winner = 0 if self._sets_won[0] == sets_needed else 1
        return MatchRecord(
            match_id=self.match_id,
            seed=self.rng.seed,
            format=self.format,
            players=self._names,
            first_server=self._first_server,
            sets=tuple(completed),
            sets_won=(self._sets_won[0], self._sets_won[1]),
            aces=(sum(s.aces[0] for s in completed), sum(s.aces[1] for s in completed)),
            double_faults=(
                sum(s.double_faults[0] for s in completed),
                sum(s.double_faults[1] for s in completed),
            ),
            service_points=(self._service_points[0], self._service_points[1]),
            total_points=self._point_index,
            winner=winner,
            point_log=tuple(self._log),
        )


def simulate_match(
    players: tuple[PlayerProfile, PlayerProfile],
    match_format: MatchFormat,
    seed: int | None = None,
    match_id: int = 0,
    record_points: bool = True,
) -> MatchRecord:
    """Convenience: one match with its own RNG."""
    return MatchOrchestrator(players, match_format, SeededRNG(seed), match_id, record_points).run()
