"""
Player profiles: immutable per-player serve statistics.
One profile is built per configuration and shared read-only by every simulation.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..errors import ConfigurationError


def check_probabilities(name: str, serve_win_prob: float, ace_prob: float, double_fault_prob: float) -> None:
    """Raise ConfigurationError unless every probability is in [0, 1] and ace + double fault <= 1."""
    for label, p in (
        ("serve_win_prob", serve_win_prob),
        ("ace_prob", ace_prob),
        ("double_fault_prob", double_fault_prob),
    ):
        if not 0.0 <= p <= 1.0:
            raise ConfigurationError(f"{name}: {label} must be in [0, 1], got {p}")
    if ace_prob + double_fault_prob > 1.0:
        raise ConfigurationError(
            f"{name}: ace_prob + double_fault_prob must be <= 1, got {ace_prob + double_fault_prob}"
        )


def certain_serve_result(profile: PlayerProfile) -> bool | None:
    """True if the server always wins the serve point, False if always loses, else None."""
    if profile.double_fault_prob == 0.0 and (profile.ace_prob == 1.0 or profile.serve_win_prob == 1.0):
        return True
    if profile.ace_prob == 0.0 and (profile.double_fault_prob == 1.0 or profile.serve_win_prob == 0.0):
        return False
    return None


def check_matchup(first: PlayerProfile, second: PlayerProfile) -> None:
    """
    Raise ConfigurationError when a match between the two can never finish:
    if both always hold (or both always lose) their serve points, a tiebreak
    or an advantage set never opens a two-point lead.
    """
    a = certain_serve_result(first)
    if a is not None and a == certain_serve_result(second):
        verb = "win" if a else "lose"
        raise ConfigurationError(
            f"{first.name} and {second.name} both always {verb} their serve points; the match could never finish"
        )


@dataclass(frozen=True)
class PlayerProfile:
    """
    Serve statistics for one player.
    ace_prob and double_fault_prob resolve a serve point outright; the
    remaining mass is a rally, won by the server with serve_win_prob.
    """
    name: str
    serve_win_prob: float
    ace_prob: float
    double_fault_prob: float

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Player name must not be empty")
        check_probabilities(self.name, self.serve_win_prob, self.ace_prob, self.double_fault_prob)

    @property
    def rally_prob(self) -> float:
        """Share of serve points that become a rally."""
        return 1.0 - self.ace_prob - self.double_fault_prob

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "serve_win_prob": self.serve_win_prob,
            "ace_prob": self.ace_prob,
            "double_fault_prob": self.double_fault_prob,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> PlayerProfile:
        try:
            return cls(
                name=str(d["name"]),
                serve_win_prob=float(d["serve_win_prob"]),
                ace_prob=float(d.get("ace_prob", 0.0)),
                double_fault_prob=float(d.get("double_fault_prob", 0.0)),
            )
        except KeyError as e:
            raise ConfigurationError(f"Player profile missing field: {e.args[0]}") from e
        except (TypeError, ValueError) as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid player profile {d!r}: {e}") from e


def default_players() -> tuple[PlayerProfile, PlayerProfile]:
    """Two demo players used when no configuration is given."""
    return (
        PlayerProfile("Federer", serve_win_prob=0.65, ace_prob=0.10, double_fault_prob=0.05),
        PlayerProfile("Nadal", serve_win_prob=0.62, ace_prob=0.08, double_fault_prob=0.04),
    )


def load_profiles(path: str | Path) -> tuple[PlayerProfile, PlayerProfile]:
    """Load two profiles from a JSON file: a list of two objects, or {"players": [...]}."""
    p = Path(path)
    try:
        data = json.loads(p.read_text())
    except FileNotFoundError as e:
        raise ConfigurationError(f"Profile file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Profile file {path} is not valid JSON: {e}") from e
    if isinstance(data, dict):
        data = data.get("players")
    if not isinstance(data, list) or len(data) != 2:
        raise ConfigurationError(f"{path}: expected exactly two player profiles")
    return PlayerProfile.from_dict(data[0]), PlayerProfile.from_dict(data[1])
