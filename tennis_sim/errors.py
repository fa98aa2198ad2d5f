"""
Error taxonomy for the simulator.
Configuration problems are fatal before any match starts; invariant
violations are fatal for one work unit only; export failures never
invalidate the in-memory statistics.
"""
from __future__ import annotations


class ConfigurationError(ValueError):
    """Invalid probabilities, set count, or non-positive batch/worker counts."""


class SimulationInvariantError(RuntimeError):
    """A state machine reached an impossible state."""

    def __init__(
        self,
        message: str,
        match_id: int | None = None,
        stage: str | None = None,
        seed: int | None = None,
    ) -> None:
        super().__init__(message)
        self.match_id = match_id
        self.stage = stage
        self.seed = seed

    def __str__(self) -> str:
        msg = super().__str__()
        context = [
            f"{k}={v}"
            for k, v in (("match_id", self.match_id), ("stage", self.stage), ("seed", self.seed))
            if v is not None
        ]
        if context:
            return f"{msg} ({', '.join(context)})"
        return msg


class ExportError(RuntimeError):
    """Writing the point log failed."""
