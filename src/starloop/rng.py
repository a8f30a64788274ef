# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Seeded pseudo-random source shared by the star field and meteor scheduler.

The seed string is folded into a signed 32-bit integer with the classic
``hash * 31 + char`` polynomial, then each draw advances a linear
congruential step modulo 2^31.  Every generator owns its own state, so two
requests running side by side never interfere.

Sub-streams are derived by suffixing the seed (``"demo-meteors"``) rather
than sharing an instance, which keeps the star field and the meteor schedule
independently reproducible.
"""

from __future__ import annotations

_MULTIPLIER = 1103515245
_INCREMENT = 12345
_MODULUS = 2 ** 31


def hash_seed(seed: str) -> int:
    """Fold a seed string into a signed 32-bit integer."""
    value = 0
    for ch in seed:
        value = (value * 31 + ord(ch)) & 0xFFFFFFFF
    if value >= 2 ** 31:
        value -= 2 ** 32
    return value


class SeededRandom:
    """Deterministic float stream in ``[0, 1)`` for a seed string.

    Usage::

        rng = SeededRandom("demo")
        x = rng.next() * 100
    """

    def __init__(self, seed: str) -> None:
        self.seed = seed
        self._state = hash_seed(seed)

    def next(self) -> float:
        self._state = (self._state * _MULTIPLIER + _INCREMENT) % _MODULUS
        return self._state / _MODULUS

    def uniform(self, low: float, high: float) -> float:
        """Draw once and map into ``[low, high)``."""
        return low + self.next() * (high - low)

    def index(self, length: int) -> int:
        """Draw once and pick an index in ``[0, length)``."""
        return min(int(self.next() * length), length - 1)

    def substream(self, name: str) -> SeededRandom:
        """Fresh generator for ``seed + "-" + name``."""
        return SeededRandom(f"{self.seed}-{name}")
