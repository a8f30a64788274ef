# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Constant animation bands and piecewise-linear envelopes.

Everything the renderer tunes by number lives here so the curves can be
tested without drawing anything.

Envelopes (progress in [0, 1] -> factor):
  - TRAIL_LENGTH_ENVELOPE: 30% -> 100% over the first fifth, hold, back to 30%
  - BRIGHTNESS_ENVELOPE: soft entry, peak at mid-flight, fast burnout
"""

from __future__ import annotations

import math
from dataclasses import dataclass


def interpolate(x: float, xs: tuple[float, ...], ys: tuple[float, ...]) -> float:
    """Piecewise-linear interpolation, clamped at both ends.

    ``xs`` must be strictly increasing and the same length as ``ys``.
    """
    if len(xs) != len(ys) or not xs:
        raise ValueError("Envelope knots and values must be non-empty and equal length")
    if x <= xs[0]:
        return ys[0]
    if x >= xs[-1]:
        return ys[-1]
    for i in range(1, len(xs)):
        if x <= xs[i]:
            x0, x1 = xs[i - 1], xs[i]
            y0, y1 = ys[i - 1], ys[i]
            return y0 + (y1 - y0) * (x - x0) / (x1 - x0)
    return ys[-1]


@dataclass(frozen=True)
class Envelope:
    """A named piecewise-linear curve over meteor progress."""

    name: str
    knots: tuple[float, ...]
    values: tuple[float, ...]

    def __call__(self, progress: float) -> float:
        return interpolate(progress, self.knots, self.values)

    @property
    def peak(self) -> float:
        return max(self.values)


@dataclass(frozen=True)
class Band:
    """Closed numeric range a normalised value is mapped into."""

    low: float
    high: float

    def lerp(self, t: float) -> float:
        return self.low + (self.high - self.low) * t

    def __contains__(self, value: float) -> bool:
        return self.low <= value <= self.high


TRAIL_LENGTH_ENVELOPE = Envelope(
    "trail_length",
    knots=(0.0, 0.2, 0.8, 1.0),
    values=(0.3, 1.0, 1.0, 0.3),
)

BRIGHTNESS_ENVELOPE = Envelope(
    "brightness",
    knots=(0.0, 0.15, 0.5, 0.75, 1.0),
    values=(0.3, 0.7, 1.0, 0.9, 0.0),
)

# -- Star field bands ------------------------------------------------------

STAR_SIZE_BAND = Band(0.8, 2.0)            # points
STAR_OPACITY_BAND = Band(0.3, 0.7)
TWINKLE_FREQUENCY_BAND = Band(0.08, 0.2)   # Hz, 5-12 s per cycle
TWINKLE_PHASE_BAND = Band(0.0, 2.0 * math.pi)

TWINKLE_OPACITY_BAND = Band(0.65, 1.0)     # multiplier on base opacity
TWINKLE_SIZE_BAND = Band(0.6, 1.4)

# Interference rates for the twinkle signal
GOLDEN_RATIO = 1.618
EULER_RATE = 2.71

# -- Meteor bands ----------------------------------------------------------

METEOR_THICKNESS_BAND = Band(1.0, 3.0)     # points
METEOR_SPEED_BAND = Band(60.0, 135.0)      # percent / second, thin -> thick
METEOR_SPEED_JITTER = 15.0
METEOR_DURATION_BAND = Band(0.2, 0.45)     # seconds, thick -> thin
METEOR_DURATION_JITTER = 0.05
TRAIL_BASE_LENGTH_BAND = Band(6.0, 10.0)   # percent, thin -> thick

SCHEDULE_TAIL_MARGIN = 0.5                 # seconds kept free at the loop seam
SHORT_LOOP_THRESHOLD = 5.0                 # seconds
SHORT_LOOP_FIRST_OFFSET = Band(0.2, 0.7)
LONG_LOOP_FIRST_OFFSET = Band(1.0, 2.0)
SHORT_LOOP_GAP = Band(0.8, 2.0)
LONG_LOOP_GAP = Band(3.0, 6.0)

HEAD_GLOW_THRESHOLD = 0.5


def clamp01(value: float) -> float:
    return 0.0 if value < 0.0 else 1.0 if value > 1.0 else value
