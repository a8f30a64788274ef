# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Meteor scheduling and per-frame trail rendering.

Data flow:
  schedule_meteors(seed, duration) -> list[MeteorEvent]   (once per request)
  render_meteor(event, time) -> TrailPrimitive | None     (per frame)

Thick meteors burn fast and bright, thin ones drift and fade: speed rises
and lifetime falls with thickness.  Every event finishes before the loop
seam, so the first and last frames of a clip never show a cut-off streak.

Color conventions (BGR, same as cv2):
  - iron/nickel: yellow-orange tail
  - magnesium: blue-white tail
  - sodium: orange tail
  - calcium: violet tail
  - silicon: red-orange tail
  - pure white (twice, it is the most common)
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from starloop.envelopes import (
    BRIGHTNESS_ENVELOPE,
    HEAD_GLOW_THRESHOLD,
    LONG_LOOP_FIRST_OFFSET,
    LONG_LOOP_GAP,
    METEOR_DURATION_BAND,
    METEOR_DURATION_JITTER,
    METEOR_SPEED_BAND,
    METEOR_SPEED_JITTER,
    METEOR_THICKNESS_BAND,
    SCHEDULE_TAIL_MARGIN,
    SHORT_LOOP_FIRST_OFFSET,
    SHORT_LOOP_GAP,
    SHORT_LOOP_THRESHOLD,
    TRAIL_BASE_LENGTH_BAND,
    TRAIL_LENGTH_ENVELOPE,
)
from starloop.primitives import GradientStop, HeadGlow, TrailPrimitive
from starloop.rng import SeededRandom


@dataclass(frozen=True, slots=True)
class ColorGroup:
    name: str
    head: tuple[int, int, int]   # BGR
    tail: tuple[int, int, int]   # BGR
    tail_alpha: float


METEOR_COLOR_GROUPS: tuple[ColorGroup, ...] = (
    ColorGroup("iron", head=(224, 244, 255), tail=(120, 200, 255), tail_alpha=0.4),
    ColorGroup("magnesium", head=(255, 244, 232), tail=(255, 210, 180), tail_alpha=0.4),
    ColorGroup("sodium", head=(208, 232, 255), tail=(100, 180, 255), tail_alpha=0.35),
    ColorGroup("calcium", head=(255, 232, 240), tail=(255, 170, 200), tail_alpha=0.35),
    ColorGroup("silicon", head=(216, 224, 255), tail=(130, 160, 255), tail_alpha=0.35),
    ColorGroup("white", head=(255, 255, 255), tail=(255, 255, 255), tail_alpha=0.4),
    ColorGroup("white_soft", head=(255, 255, 255), tail=(255, 255, 255), tail_alpha=0.35),
)

ENTRY_EDGES = ("top", "left", "right")


@dataclass(frozen=True, slots=True)
class MeteorEvent:
    """One scheduled streak with fixed trajectory, timing and look."""

    start_x: float          # percent of width
    start_y: float          # percent of height
    angle_degrees: float    # 0 = rightward, 90 = downward
    speed: float            # percent / second
    thickness: float        # points
    color_group_index: int
    start_time: float       # seconds
    duration: float         # seconds

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    @property
    def thickness_norm(self) -> float:
        return thickness_norm(self.thickness)

    @property
    def color_group(self) -> ColorGroup:
        return METEOR_COLOR_GROUPS[self.color_group_index]

    def is_active(self, time: float) -> bool:
        return self.start_time <= time <= self.end_time


def thickness_norm(thickness: float) -> float:
    band = METEOR_THICKNESS_BAND
    return (thickness - band.low) / (band.high - band.low)


def _entry_point(rng: SeededRandom) -> tuple[float, float, float]:
    """Pick an edge and return (start_x, start_y, angle_degrees).

    Draws edge, x, y, direction and angle in that order regardless of the
    edge chosen, so the stream stays aligned for the remaining fields.
    """
    edge = ENTRY_EDGES[rng.index(len(ENTRY_EDGES))]
    rx, ry, direction, ra = rng.next(), rng.next(), rng.next(), rng.next()
    if edge == "top":
        start_x = 5.0 + rx * 90.0
        start_y = -2.0 + ry * 15.0
        # down-right or down-left
        angle = 25.0 + ra * 40.0 if direction > 0.5 else 115.0 + ra * 40.0
    elif edge == "left":
        start_x = -2.0 + rx * 10.0
        start_y = 10.0 + ry * 50.0
        angle = -15.0 + ra * 50.0
    else:
        start_x = 92.0 + rx * 10.0
        start_y = 5.0 + ry * 40.0
        angle = 145.0 + ra * 30.0
    return start_x, start_y, angle


def schedule_meteors(seed: str, total_duration: float) -> list[MeteorEvent]:
    """Build the time-sorted meteor schedule for a loop of ``total_duration``.

    Args:
        seed: Request seed.  The schedule uses the ``seed + "-meteors"``
            sub-stream so it is independent of the star field.
        total_duration: Loop length in seconds.

    Returns:
        Events with strictly increasing start times, all inside
        ``[0, total_duration - 0.5)``.
    """
    rng = SeededRandom(f"{seed}-meteors")
    short_loop = total_duration < SHORT_LOOP_THRESHOLD
    first_offset = SHORT_LOOP_FIRST_OFFSET if short_loop else LONG_LOOP_FIRST_OFFSET
    gap_band = SHORT_LOOP_GAP if short_loop else LONG_LOOP_GAP

    events: list[MeteorEvent] = []
    current_time = first_offset.lerp(rng.next())
    while current_time < total_duration - SCHEDULE_TAIL_MARGIN:
        start_x, start_y, angle = _entry_point(rng)
        thickness = METEOR_THICKNESS_BAND.lerp(rng.next())
        norm = thickness_norm(thickness)
        speed = METEOR_SPEED_BAND.lerp(norm) + rng.next() * METEOR_SPEED_JITTER
        duration = METEOR_DURATION_BAND.lerp(1.0 - norm) + rng.next() * METEOR_DURATION_JITTER
        color_index = rng.index(len(METEOR_COLOR_GROUPS))

        events.append(MeteorEvent(
            start_x=start_x,
            start_y=start_y,
            angle_degrees=angle,
            speed=speed,
            thickness=thickness,
            color_group_index=color_index,
            start_time=current_time,
            duration=duration,
        ))
        current_time += gap_band.lerp(rng.next())
    return events


# -- Rendering -------------------------------------------------------------

def meteor_brightness(progress: float) -> float:
    return BRIGHTNESS_ENVELOPE(progress)


def trail_length(event: MeteorEvent, progress: float) -> float:
    """Trail length in percent for ``event`` at ``progress``."""
    base = TRAIL_BASE_LENGTH_BAND.lerp(event.thickness_norm)
    return base * TRAIL_LENGTH_ENVELOPE(progress)


def head_position(event: MeteorEvent, progress: float) -> tuple[float, float]:
    rad = math.radians(event.angle_degrees)
    distance = progress * event.speed * event.duration
    return (
        event.start_x + distance * math.cos(rad),
        event.start_y + distance * math.sin(rad),
    )


def render_meteor(event: MeteorEvent, time: float) -> TrailPrimitive | None:
    """Trail primitive for ``event`` at ``time``, or None outside its window.

    The active window is closed: a primitive is returned at exactly
    ``start_time`` and at exactly ``start_time + duration``.
    """
    if not event.is_active(time):
        return None

    progress = (time - event.start_time) / event.duration if event.duration > 0 else 1.0
    progress = min(max(progress, 0.0), 1.0)
    brightness = meteor_brightness(progress)
    colors = event.color_group

    head_x, head_y = head_position(event, progress)
    length = trail_length(event, progress)
    rad = math.radians(event.angle_degrees)
    tail_x = head_x - length * math.cos(rad)
    tail_y = head_y - length * math.sin(rad)

    stops = (
        GradientStop(0.0, colors.tail, 0.0),
        GradientStop(0.5, colors.tail, brightness * 0.3 * colors.tail_alpha),
        GradientStop(0.85, colors.head, brightness * 0.7),
        GradientStop(1.0, colors.head, brightness),
    )

    glow = None
    if brightness > HEAD_GLOW_THRESHOLD:
        glow = HeadGlow(
            x=head_x,
            y=head_y,
            radius=event.thickness * 0.8 + brightness * 1.2,
            color=colors.head,
            opacity=brightness * 0.9,
        )

    return TrailPrimitive(
        tail=(tail_x, tail_y),
        head=(head_x, head_y),
        thickness=event.thickness,
        stops=stops,
        brightness=brightness,
        glow=glow,
    )
