"""
Run configuration: validated with pydantic, loadable from JSON.
Any invalid value surfaces as ConfigurationError before a single match is played.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError
from .simulation.profiles import PlayerProfile, check_matchup, default_players
from .simulation.schemas import FinalSetRule, MatchFormat

DEFAULT_EXPORT_PATH = "match_log_parallel.csv"


def _default_workers() -> int:
    return max(1, min(os.cpu_count() or 1, 10))


def _describe(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", ())) or "config"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


class _ConfigModel(BaseModel):
    """Frozen model that reports validation failures as ConfigurationError."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {type(self).__name__}: {_describe(e)}") from e


class PlayerConfig(_ConfigModel):
    name: str = Field(..., min_length=1)
    serve_win_prob: float = Field(..., ge=0.0, le=1.0)
    ace_prob: float = Field(0.0, ge=0.0, le=1.0)
    double_fault_prob: float = Field(0.0, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _serve_mass(self) -> PlayerConfig:
        if self.ace_prob + self.double_fault_prob > 1.0:
            raise ValueError("ace_prob + double_fault_prob must be <= 1")
        return self

    def to_profile(self) -> PlayerProfile:
        return PlayerProfile(
            name=self.name,
            serve_win_prob=self.serve_win_prob,
            ace_prob=self.ace_prob,
            double_fault_prob=self.double_fault_prob,
        )


def _default_player_configs() -> tuple[PlayerConfig, PlayerConfig]:
    a, b = default_players()
    return PlayerConfig(**a.to_dict()), PlayerConfig(**b.to_dict())


class SimulationConfig(_ConfigModel):
    """Everything a batch run needs."""
    num_simulations: int = Field(10000, gt=0)
    num_sets: int = Field(5, description="3 or 5")
    max_workers: int = Field(default_factory=_default_workers, gt=0)
    batch_size: int = Field(10, gt=0, description="Matches per work unit")
    log_interval: int = Field(10000, gt=0, description="Completed matches buffered between point log flushes")
    final_set_rule: FinalSetRule = FinalSetRule.EXTENDED_TIEBREAK
    seed: int | None = Field(None, ge=0, description="Run seed; random when omitted")
    export_path: Path = Path(DEFAULT_EXPORT_PATH)
    export_enabled: bool = True
    export_scores: bool = Field(False, description="Append score columns to the CSV export")
    players: tuple[PlayerConfig, PlayerConfig] = Field(default_factory=_default_player_configs)

    @field_validator("num_sets")
    @classmethod
    def _num_sets(cls, v: int) -> int:
        if v not in (3, 5):
            raise ValueError(f"num_sets must be 3 or 5, got {v}")
        return v

    @field_validator("players", mode="before")
    @classmethod
    def _players(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return [p.to_dict() if isinstance(p, PlayerProfile) else p for p in v]
        return v

    @model_validator(mode="after")
    def _distinct_names(self) -> SimulationConfig:
        if self.players[0].name == self.players[1].name:
            raise ValueError(f"Player names must differ, got {self.players[0].name!r} twice")
        return self

    @model_validator(mode="after")
    def _finishable(self) -> SimulationConfig:
        check_matchup(*self.profiles)
        return self

    @property
    def profiles(self) -> tuple[PlayerProfile, PlayerProfile]:
        return self.players[0].to_profile(), self.players[1].to_profile()

    @property
    def match_format(self) -> MatchFormat:
        return MatchFormat(num_sets=self.num_sets, final_set_rule=self.final_set_rule)

    def with_overrides(self, **overrides: Any) -> SimulationConfig:
        """New validated config with some fields replaced (None values are ignored)."""
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return SimulationConfig(**data)


def load_config(path: str | Path) -> SimulationConfig:
    """Load a SimulationConfig from a JSON file with the field names as keys."""
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Config not found: {path}")
    try:
        data = json.loads(p.read_text())
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Config {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config {path} must be a JSON object")
    return SimulationConfig(**data)
