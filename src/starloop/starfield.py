# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Background star field and per-star twinkle.

Stars live in percent space (x, y in [0, 100]) so the same field can be
rasterised at any resolution.  The field is generated once per request and
never mutated; ``evaluate_twinkle`` is a pure function of (star, time).
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from starloop.envelopes import (
    EULER_RATE,
    GOLDEN_RATIO,
    STAR_OPACITY_BAND,
    STAR_SIZE_BAND,
    TWINKLE_FREQUENCY_BAND,
    TWINKLE_OPACITY_BAND,
    TWINKLE_PHASE_BAND,
    TWINKLE_SIZE_BAND,
    clamp01,
)
from starloop.rng import SeededRandom


@dataclass(frozen=True, slots=True)
class Star:
    """A single background star with static attributes."""

    x: float                  # percent of width
    y: float                  # percent of height
    base_size: float          # points
    base_opacity: float       # 0..1
    twinkle_frequency: float  # Hz
    twinkle_phase: float      # radians


@dataclass(frozen=True, slots=True)
class Twinkle:
    opacity: float
    size_multiplier: float


def generate_starfield(seed: str, count: int) -> list[Star]:
    """Generate ``count`` stars for ``seed``.

    Each star consumes six draws in a fixed order: x, y, size, opacity,
    frequency, phase.
    """
    if count < 0:
        raise ValueError("Star count must be non-negative")
    rng = SeededRandom(seed)
    stars: list[Star] = []
    for _ in range(count):
        stars.append(Star(
            x=rng.next() * 100.0,
            y=rng.next() * 100.0,
            base_size=STAR_SIZE_BAND.lerp(rng.next()),
            base_opacity=STAR_OPACITY_BAND.lerp(rng.next()),
            twinkle_frequency=TWINKLE_FREQUENCY_BAND.lerp(rng.next()),
            twinkle_phase=TWINKLE_PHASE_BAND.lerp(rng.next()),
        ))
    return stars


def twinkle_signal(star: Star, time: float) -> float:
    """Three-wave interference signal in [-1, 1].

    The golden-ratio and 2.71 rates never line up with the base rate, so the
    shimmer has no obvious period inside a short loop.
    """
    t = time * star.twinkle_frequency * 2.0 * math.pi + star.twinkle_phase
    s1 = math.sin(t)
    s2 = math.sin(t * GOLDEN_RATIO + star.twinkle_phase * 0.7)
    s3 = math.sin(t * EULER_RATE + (star.x + star.y) * 0.1)
    return 0.5 * s1 + 0.3 * s2 + 0.2 * s3


def evaluate_twinkle(star: Star, time: float) -> Twinkle:
    norm = (twinkle_signal(star, time) + 1.0) / 2.0
    opacity = clamp01(star.base_opacity * TWINKLE_OPACITY_BAND.lerp(norm))
    return Twinkle(
        opacity=opacity,
        size_multiplier=TWINKLE_SIZE_BAND.lerp(norm),
    )
