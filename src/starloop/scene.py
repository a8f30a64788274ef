# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Frame compositor: stars + meteors at one time -> SceneFrame."""

from __future__ import annotations

from typing import Iterable

from starloop.meteors import MeteorEvent, render_meteor
from starloop.primitives import BGR, PointLayer, SceneFrame, StarPoint
from starloop.starfield import Star, evaluate_twinkle

STAR_WHITE: BGR = (255, 255, 255)

# (radius as a multiple of the current size, opacity multiplier, soft)
STAR_LAYERS: tuple[tuple[float, float, bool], ...] = (
    (3.0, 0.2, True),    # outer glow, only for bright stars
    (1.5, 0.4, True),    # mid halo
    (0.5, 1.0, False),   # core
)
OUTER_GLOW_THRESHOLD = 0.5


def star_point(star: Star, time: float, color: BGR = STAR_WHITE) -> StarPoint:
    twinkle = evaluate_twinkle(star, time)
    size = star.base_size * twinkle.size_multiplier
    layers = []
    for i, (radius_mul, opacity_mul, soft) in enumerate(STAR_LAYERS):
        if i == 0 and twinkle.opacity <= OUTER_GLOW_THRESHOLD:
            continue
        layers.append(PointLayer(
            radius=size * radius_mul,
            opacity=twinkle.opacity * opacity_mul,
            soft=soft,
        ))
    return StarPoint(x=star.x, y=star.y, color=color, layers=tuple(layers))


def compose_frame(
    stars: Iterable[Star],
    meteors: Iterable[MeteorEvent],
    time: float,
    star_color: BGR = STAR_WHITE,
) -> SceneFrame:
    frame = SceneFrame(time=time)
    for star in stars:
        frame.stars.append(star_point(star, time, star_color))
    for event in meteors:
        trail = render_meteor(event, time)
        if trail is not None:
            frame.trails.append(trail)
    return frame
