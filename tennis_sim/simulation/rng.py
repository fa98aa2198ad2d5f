"""
Seeded RNG for deterministic, replayable simulations.
Every match owns its own stream, derived from the run seed and the match index.
"""
from __future__ import annotations

import hashlib
import random

MAX_SEED = 2**31 - 1


def random_seed() -> int:
    return random.SystemRandom().randint(1, MAX_SEED)


def derive_match_seed(base_seed: int, match_index: int) -> int:
    """
    Seed for one match: a 64-bit hash of (base_seed, match_index).
    Independent of how matches are partitioned into units, and distinct
    streams for different run seeds regardless of run size.
    """
    digest = hashlib.sha256(f"{base_seed}:{match_index}".encode()).hexdigest()
    return int(digest[:16], 16)


class SeededRNG:
    """Wrapper around random.Random for reproducible simulations."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)
        self._seed = seed

    @classmethod
    def for_match(cls, base_seed: int, match_index: int) -> SeededRNG:
        return cls(derive_match_seed(base_seed, match_index))

    @property
    def seed(self) -> int | None:
        return self._seed

    def random(self) -> float:
        return self._rng.random()

    def coin_flip(self) -> bool:
        return self._rng.random() < 0.5
