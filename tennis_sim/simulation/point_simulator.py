"""
Point Engine: resolves one serve point from the server's profile and a single uniform draw.
"""
from __future__ import annotations

from .profiles import PlayerProfile
from .rng import SeededRNG
from .schemas import PointOutcome


def outcome_from_draw(u: float, serve_win_prob: float, ace_prob: float, double_fault_prob: float) -> PointOutcome:
    """
    Map a uniform draw in [0, 1) onto an outcome.
    [0, ace) is an ace, [ace, ace + df) a double fault; the rest is a rally,
    with the draw rescaled over the remaining mass and compared to serve_win_prob.
    """
    if u < ace_prob:
        return PointOutcome.ACE
    resolved = ace_prob + double_fault_prob
    if u < resolved:
        return PointOutcome.DOUBLE_FAULT
    rally_u = (u - resolved) / (1.0 - resolved)
    if rally_u < serve_win_prob:
        return PointOutcome.SERVER_WINS_RALLY
    return PointOutcome.RETURNER_WINS_RALLY


def play_point(server: PlayerProfile, rng: SeededRNG) -> PointOutcome:
    """Play one serve point (profile already validated). Consumes exactly one draw from rng."""
    return outcome_from_draw(rng.random(), server.serve_win_prob, server.ace_prob, server.double_fault_prob)
