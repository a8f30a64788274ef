# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Numpy rasteriser for SceneFrame -> BGRA uint8 pixel buffer.

Compositing happens on a float32 premultiplied canvas with analytic
anti-aliased coverage, then converts to straight alpha at the end so the
PNG frames (and the encoded video) keep a clean transparent background.

Primitive coverage:
  - hard disc: 1px linear edge ramp at the radius
  - soft disc: quadratic radial falloff to zero at the radius
  - trail: distance to the tail-head segment (round caps for free),
    gradient sampled by the projected position along the segment

Channel order is BGRA, matching cv2.imwrite.
"""

from __future__ import annotations

import math

import numpy as np

from starloop.primitives import BGR, HeadGlow, SceneFrame, StarPoint, TrailPrimitive

# Points per short side of the frame; 1080 px wide -> 2 px per point.
POINT_REFERENCE = 540.0
_EPS = 1e-6


def point_scale(width: int, height: int) -> float:
    """Pixels per point for a frame of the given size."""
    return min(width, height) / POINT_REFERENCE


def _to_px(x: float, y: float, width: int, height: int) -> tuple[float, float]:
    return x * width / 100.0, y * height / 100.0


def _color(bgr: BGR) -> np.ndarray:
    return np.asarray(bgr, dtype=np.float32) / 255.0


def _bbox(
    x_min: float, y_min: float, x_max: float, y_max: float, width: int, height: int,
) -> tuple[int, int, int, int] | None:
    x0 = max(int(math.floor(x_min)) - 1, 0)
    y0 = max(int(math.floor(y_min)) - 1, 0)
    x1 = min(int(math.ceil(x_max)) + 2, width)
    y1 = min(int(math.ceil(y_max)) + 2, height)
    if x0 >= x1 or y0 >= y1:
        return None
    return x0, y0, x1, y1


def _grid(box: tuple[int, int, int, int]) -> tuple[np.ndarray, np.ndarray]:
    """Pixel-centre coordinates for a bounding box."""
    x0, y0, x1, y1 = box
    xs = np.arange(x0, x1, dtype=np.float32) + 0.5
    ys = np.arange(y0, y1, dtype=np.float32) + 0.5
    return np.meshgrid(xs, ys)


def _blend(
    canvas: np.ndarray,
    box: tuple[int, int, int, int],
    color: np.ndarray,
    alpha: np.ndarray,
) -> None:
    """Source-over onto the premultiplied canvas, in place."""
    x0, y0, x1, y1 = box
    region = canvas[y0:y1, x0:x1]
    a = alpha[..., None].astype(np.float32)
    region[..., :3] = color * a + region[..., :3] * (1.0 - a)
    region[..., 3:] = a + region[..., 3:] * (1.0 - a)


def _draw_disc(
    canvas: np.ndarray,
    cx: float,
    cy: float,
    radius: float,
    color: BGR,
    opacity: float,
    soft: bool,
) -> None:
    if radius <= 0.0 or opacity <= 0.0:
        return
    height, width = canvas.shape[:2]
    box = _bbox(cx - radius, cy - radius, cx + radius, cy + radius, width, height)
    if box is None:
        return
    gx, gy = _grid(box)
    dist = np.hypot(gx - cx, gy - cy)
    if soft:
        coverage = np.clip(1.0 - dist / radius, 0.0, 1.0) ** 2
    else:
        coverage = np.clip(radius + 0.5 - dist, 0.0, 1.0)
    _blend(canvas, box, _color(color), coverage * min(opacity, 1.0))


def _draw_star(canvas: np.ndarray, star: StarPoint, scale: float) -> None:
    height, width = canvas.shape[:2]
    cx, cy = _to_px(star.x, star.y, width, height)
    for layer in star.layers:
        _draw_disc(canvas, cx, cy, layer.radius * scale, star.color, layer.opacity, layer.soft)


def _draw_trail(canvas: np.ndarray, trail: TrailPrimitive, scale: float) -> None:
    height, width = canvas.shape[:2]
    ax, ay = _to_px(*trail.tail, width, height)
    bx, by = _to_px(*trail.head, width, height)
    half = max(trail.thickness * scale / 2.0, 0.5)
    box = _bbox(
        min(ax, bx) - half, min(ay, by) - half,
        max(ax, bx) + half, max(ay, by) + half,
        width, height,
    )
    if box is None or not trail.stops:
        return

    gx, gy = _grid(box)
    dx, dy = bx - ax, by - ay
    length_sq = dx * dx + dy * dy
    if length_sq > _EPS:
        u = np.clip(((gx - ax) * dx + (gy - ay) * dy) / length_sq, 0.0, 1.0)
    else:
        u = np.zeros_like(gx)
    dist = np.hypot(gx - (ax + u * dx), gy - (ay + u * dy))
    coverage = np.clip(half + 0.5 - dist, 0.0, 1.0)

    offsets = [s.offset for s in trail.stops]
    opacity = np.interp(u, offsets, [s.opacity for s in trail.stops])
    color = np.stack(
        [np.interp(u, offsets, [s.color[c] / 255.0 for s in trail.stops]) for c in range(3)],
        axis=-1,
    ).astype(np.float32)
    _blend(canvas, box, color, coverage * np.clip(opacity, 0.0, 1.0))


def _draw_glow(canvas: np.ndarray, glow: HeadGlow, scale: float) -> None:
    height, width = canvas.shape[:2]
    cx, cy = _to_px(glow.x, glow.y, width, height)
    _draw_disc(canvas, cx, cy, glow.radius * scale, glow.color, glow.opacity, soft=True)


def _to_bgra8(canvas: np.ndarray) -> np.ndarray:
    """Premultiplied float canvas -> straight-alpha BGRA uint8."""
    alpha = canvas[..., 3:]
    visible = alpha > _EPS
    bgr = np.divide(canvas[..., :3], alpha, out=np.zeros_like(canvas[..., :3]), where=visible)
    out = np.empty(canvas.shape, dtype=np.uint8)
    out[..., :3] = np.clip(np.rint(bgr * 255.0), 0, 255)
    out[..., 3] = np.clip(np.rint(alpha[..., 0] * 255.0), 0, 255)
    return out


def rasterize(scene: SceneFrame, width: int, height: int) -> np.ndarray:
    """Render ``scene`` into a (height, width, 4) BGRA uint8 array.

    Stars are painted first, then each trail followed by its head glow.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Frame size must be positive, got {width}x{height}")
    canvas = np.zeros((height, width, 4), dtype=np.float32)
    scale = point_scale(width, height)
    for star in scene.stars:
        _draw_star(canvas, star, scale)
    for trail in scene.trails:
        _draw_trail(canvas, trail, scale)
        if trail.glow is not None:
            _draw_glow(canvas, trail.glow, scale)
    return _to_bgra8(canvas)
