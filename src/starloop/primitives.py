# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Vector scene description handed to the rasteriser.

Positions are in percent space, sizes in points, colors in BGR.  Nothing
here knows about pixels; ``starloop.raster`` does the mapping.
"""

from __future__ import annotations

from dataclasses import dataclass, field

BGR = tuple[int, int, int]


@dataclass(frozen=True, slots=True)
class PointLayer:
    """One concentric disc of a star sprite."""

    radius: float    # points
    opacity: float   # 0..1
    soft: bool       # radial falloff instead of a crisp edge


@dataclass(frozen=True, slots=True)
class StarPoint:
    x: float
    y: float
    color: BGR
    layers: tuple[PointLayer, ...]   # drawn in order, outermost first


@dataclass(frozen=True, slots=True)
class GradientStop:
    offset: float    # 0 = tail end, 1 = head
    color: BGR
    opacity: float


@dataclass(frozen=True, slots=True)
class HeadGlow:
    x: float
    y: float
    radius: float    # points
    color: BGR
    opacity: float


@dataclass(frozen=True, slots=True)
class TrailPrimitive:
    """Round-capped, gradient-filled segment from tail to head."""

    tail: tuple[float, float]
    head: tuple[float, float]
    thickness: float                  # points
    stops: tuple[GradientStop, ...]
    brightness: float
    glow: HeadGlow | None = None


@dataclass(slots=True)
class SceneFrame:
    """Everything visible at one sampled time.

    Stars are drawn first and trails on top; the order is the same for every
    frame of a clip.
    """

    time: float
    stars: list[StarPoint] = field(default_factory=list)
    trails: list[TrailPrimitive] = field(default_factory=list)

    @property
    def primitive_count(self) -> int:
        return len(self.stars) + len(self.trails)
