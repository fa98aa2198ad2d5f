"""
Match Simulation Engine: seeded, replayable point-by-point tennis matches
from per-player serve statistics.
"""
from .schemas import (
    EXTENDED_TIEBREAK_POINTS,
    TIEBREAK_POINTS,
    FinalSetRule,
    GameScore,
    MatchFormat,
    MatchRecord,
    PointLogEntry,
    PointOutcome,
    SetScore,
    TiebreakScore,
    format_point_score,
    sets_to_win_match,
)
from .profiles import PlayerProfile, check_matchup, check_probabilities, default_players, load_profiles
from .rng import SeededRNG, derive_match_seed, random_seed
from .point_simulator import outcome_from_draw, play_point
from .state_tracker import GameState, SetState, TiebreakState, lead_winner
from .orchestrator import MatchOrchestrator, simulate_match
from .persistence import (
    CSV_COLUMNS,
    SCORE_COLUMNS,
    CsvPointLogExporter,
    MemorySink,
    PointLogBuffer,
    PointLogSink,
    entry_to_row,
    load_point_log,
)

__all__ = [
    "EXTENDED_TIEBREAK_POINTS",
    "TIEBREAK_POINTS",
    "FinalSetRule",
    "GameScore",
    "MatchFormat",
    "MatchRecord",
    "PointLogEntry",
    "PointOutcome",
    "SetScore",
    "TiebreakScore",
    "format_point_score",
    "sets_to_win_match",
    "PlayerProfile",
    "check_matchup",
    "check_probabilities",
    "default_players",
    "load_profiles",
    "SeededRNG",
    "derive_match_seed",
    "random_seed",
    "outcome_from_draw",
    "play_point",
    "GameState",
    "SetState",
    "TiebreakState",
    "lead_winner",
    "MatchOrchestrator",
    "simulate_match",
    "CSV_COLUMNS",
    "SCORE_COLUMNS",
    "CsvPointLogExporter",
    "MemorySink",
    "PointLogBuffer",
    "PointLogSink",
    "entry_to_row",
    "load_point_log",
]
