# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""starloop: procedural loopable starfield + meteor overlay video.

Everything is driven by a seed string: the star field, the meteor schedule
and therefore every rasterised frame are reproducible.  Frames are drawn
with numpy, written as BGRA PNGs via OpenCV and encoded by ffmpeg into an
alpha-preserving clip meant to sit on top of other footage.

Pipeline (leaf first):
  - rng: SeededRandom, seed string -> float stream
  - starfield: generate_starfield, evaluate_twinkle
  - meteors: schedule_meteors, render_meteor
  - scene: compose_frame -> SceneFrame
  - raster: rasterize -> BGRA pixels
  - pipeline: FramePipeline, StarfieldJob, entry points

Usage::

    from starloop import generate_loopable_asset, generate_static_frame

    asset = generate_loopable_asset("demo", 1080, 1920, duration=4, fps=10)
    preview = generate_static_frame("demo", 1080, 1920)
"""

from starloop.errors import (
    EncodingError,
    GenerationCancelled,
    RasterizationError,
    StarloopError,
    StorageError,
)
from starloop.meteors import MeteorEvent, render_meteor, schedule_meteors
from starloop.pipeline import (
    CancelToken,
    FramePipeline,
    GenerationState,
    StarfieldJob,
    VideoAsset,
    frame_count,
    generate_loopable_asset,
    generate_static_frame,
)
from starloop.rng import SeededRandom
from starloop.scene import compose_frame
from starloop.starfield import Star, evaluate_twinkle, generate_starfield

__all__ = [
    "SeededRandom",
    "Star",
    "generate_starfield",
    "evaluate_twinkle",
    "MeteorEvent",
    "schedule_meteors",
    "render_meteor",
    "compose_frame",
    "frame_count",
    "CancelToken",
    "FramePipeline",
    "GenerationState",
    "StarfieldJob",
    "VideoAsset",
    "generate_loopable_asset",
    "generate_static_frame",
    "StarloopError",
    "RasterizationError",
    "EncodingError",
    "StorageError",
    "GenerationCancelled",
]
