# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""End-to-end generation: seed -> frames -> loopable alpha video.

Request lifecycle::

    Scheduled -> Generating(frames 0..N) -> Encoding -> Completed
                        \\                       \\
                         +-----------------------+--> Failed

Frames are independent (each reads the immutable stars/meteors and writes
only its own file), so they are rendered on a thread pool.  Every frame
write finishes before the encoder starts.  Scratch frames are removed on
success and on failure; a failed delete is logged, never raised.

Usage::

    from starloop import generate_loopable_asset

    asset = generate_loopable_asset("demo", 1080, 1920, duration=4, fps=10)
    print(asset.path, asset.frame_count)
"""

from __future__ import annotations

import json
import math
import re
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Sequence

import numpy as np
from loguru import logger

from starloop.config import settings
from starloop.encoder import FfmpegEncoder
from starloop.errors import GenerationCancelled, RasterizationError, StorageError
from starloop.meteors import MeteorEvent, schedule_meteors
from starloop.primitives import BGR
from starloop.raster import rasterize
from starloop.scene import STAR_WHITE, compose_frame
from starloop.starfield import Star, generate_starfield
from starloop.storage import ScratchSpace

ProgressCallback = Callable[[int, int], None]


def frame_count(duration: float, fps: float) -> int:
    """Number of frames for a clip: ``ceil(duration * fps)``.

    The product is rounded to 9 decimals first so float noise such as
    ``0.3 * 10 == 3.0000000000000004`` does not add a frame.
    """
    return math.ceil(round(duration * fps, 9))


def _validate(width: int, height: int, duration: float, fps: float, star_count: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Frame size must be positive, got {width}x{height}")
    if duration <= 0:
        raise ValueError("Duration must be positive")
    if fps <= 0:
        raise ValueError("FPS must be positive")
    if star_count < 0:
        raise ValueError("Star count must be non-negative")


class CancelToken:
    """Cooperative cancellation, checked between frames and before encoding."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise GenerationCancelled("Generation cancelled")


class GenerationState(Enum):
    SCHEDULED = "scheduled"
    GENERATING = "generating"
    ENCODING = "encoding"
    COMPLETED = "completed"
    FAILED = "failed"


class Encoder(Protocol):
    name: str
    extension: str

    def encode(self, input_pattern: Path, fps: float, output_path: Path) -> Path: ...


@dataclass
class VideoAsset:
    """A finished, loopable clip on disk."""

    path: Path
    seed: str
    width: int
    height: int
    duration: float
    fps: float
    frame_count: int
    star_count: int
    meteor_count: int
    codec: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["path"] = str(self.path)
        return data

    @property
    def metadata_path(self) -> Path:
        return self.path.with_name(self.path.name + ".json")


# ---------------------------------------------------------------------------
# Frame pipeline
# ---------------------------------------------------------------------------

class FramePipeline:
    """Renders every frame of a clip into a ScratchSpace.

    Args:
        stars: Immutable star field for the request.
        meteors: Time-sorted meteor schedule.
        width: Output width in pixels.
        height: Output height in pixels.
        fps: Frames per second.
        duration: Clip length in seconds.
        star_color: BGR tint for stars.
        max_workers: Thread pool size (None = executor default).
        cancel_token: Checked before each frame starts.
        on_progress: Called with (frames_done, frames_total) after each write;
            an exception it raises is logged and does not stop the run.
    """

    def __init__(
        self,
        stars: Sequence[Star],
        meteors: Sequence[MeteorEvent],
        width: int,
        height: int,
        fps: float,
        duration: float,
        star_color: BGR = STAR_WHITE,
        max_workers: Optional[int] = None,
        cancel_token: Optional[CancelToken] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.stars = tuple(stars)
        self.meteors = tuple(meteors)
        self.width = width
        self.height = height
        self.fps = fps
        self.duration = duration
        self.star_color = star_color
        self.max_workers = max_workers
        self.cancel_token = cancel_token or CancelToken()
        self.on_progress = on_progress
        self._done = 0
        self._lock = threading.Lock()

    @property
    def frame_count(self) -> int:
        return frame_count(self.duration, self.fps)

    def frame_time(self, index: int) -> float:
        return index / self.fps

    def render_frame(self, index: int) -> np.ndarray:
        """Compose and rasterise frame ``index`` (no disk I/O)."""
        scene = compose_frame(self.stars, self.meteors, self.frame_time(index), self.star_color)
        try:
            return rasterize(scene, self.width, self.height)
        except Exception as e:
            raise RasterizationError(index, e) from e

    def _frame_done(self) -> None:
        with self._lock:
            self._done += 1
            done = self._done
        if self.on_progress is None:
            return
        try:
            self.on_progress(done, self.frame_count)
        except Exception as e:
            logger.warning(f"Progress callback failed at frame {done}/{self.frame_count}: {e}")

    def run(self, scratch: ScratchSpace) -> list[Path]:
        """Render all frames into ``scratch`` and return their paths in order.

        The first failure stops the run: queued frames are cancelled, frames
        already in flight finish, and the error is re-raised.  Returning
        means every frame is on disk.
        """
        total = self.frame_count
        abort = threading.Event()
        paths: list[Optional[Path]] = [None] * total

        def produce(index: int) -> Optional[Path]:
            if abort.is_set():
                return None
            self.cancel_token.raise_if_cancelled()
            pixels = self.render_frame(index)
            path = scratch.write_frame(index, pixels)
            self._frame_done()
            return path

        logger.info(f"Generating {total} frames at {self.width}x{self.height}, {self.fps:g} fps")
        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="starloop-frame",
        ) as pool:
            futures = {pool.submit(produce, i): i for i in range(total)}
            try:
                for future in as_completed(futures):
                    paths[futures[future]] = future.result()
            except BaseException:
                abort.set()
                for future in futures:
                    future.cancel()
                raise
        return [p for p in paths if p is not None]


# ---------------------------------------------------------------------------
# Request orchestration
# ---------------------------------------------------------------------------

def _seed_slug(seed: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "_", seed).strip("_") or "seed"


class StarfieldJob:
    """One generation request from seed to encoded asset.

    A job runs once.  Re-running the same arguments (even after a failure)
    is safe and reproduces the same frames.
    """

    def __init__(
        self,
        seed: str,
        width: int,
        height: int,
        duration: float,
        fps: Optional[float] = None,
        star_count: Optional[int] = None,
        output_path: Optional[Path | str] = None,
        encoder: Optional[Encoder] = None,
        codec: Optional[str] = None,
        star_color: BGR = STAR_WHITE,
        max_workers: Optional[int] = None,
        scratch_root: Optional[Path | str] = None,
        cancel_token: Optional[CancelToken] = None,
        on_progress: Optional[ProgressCallback] = None,
        write_metadata: Optional[bool] = None,
    ) -> None:
        self.seed = seed
        self.width = width
        self.height = height
        self.duration = duration
        self.fps = fps if fps is not None else settings.default_fps
        self.star_count = star_count if star_count is not None else settings.default_star_count
        _validate(width, height, duration, self.fps, self.star_count)

        self.codec = codec or settings.video_codec
        self.encoder: Encoder = encoder or FfmpegEncoder(
            self.codec, ffmpeg_bin=settings.ffmpeg_bin, timeout=settings.encode_timeout,
        )
        if output_path is None:
            name = f"starfield-{_seed_slug(seed)}-{width}x{height}{self.encoder.extension}"
            output_path = settings.output_dir / name
        self.output_path = Path(output_path)
        self.star_color = star_color
        self.max_workers = max_workers if max_workers is not None else settings.max_workers
        root = scratch_root if scratch_root is not None else settings.scratch_root
        self.scratch_root = Path(root) if root is not None else None
        self.cancel_token = cancel_token or CancelToken()
        self.on_progress = on_progress
        self.write_metadata = settings.write_metadata if write_metadata is None else write_metadata
        self.state = GenerationState.SCHEDULED

    def _transition(self, state: GenerationState) -> None:
        logger.debug(f"[{self.seed}] {self.state.value} -> {state.value}")
        self.state = state

    def run(self) -> VideoAsset:
        if self.state is not GenerationState.SCHEDULED:
            raise RuntimeError(f"Job already {self.state.value}")

        stars = generate_starfield(self.seed, self.star_count)
        meteors = schedule_meteors(self.seed, self.duration)
        logger.info(
            f"Starfield '{self.seed}': {len(stars)} stars, {len(meteors)} meteors, "
            f"{self.duration:g}s loop"
        )
        pipeline = FramePipeline(
            stars,
            meteors,
            self.width,
            self.height,
            self.fps,
            self.duration,
            star_color=self.star_color,
            max_workers=self.max_workers,
            cancel_token=self.cancel_token,
            on_progress=self.on_progress,
        )
        asset = VideoAsset(
            path=self.output_path,
            seed=self.seed,
            width=self.width,
            height=self.height,
            duration=self.duration,
            fps=self.fps,
            frame_count=pipeline.frame_count,
            star_count=len(stars),
            meteor_count=len(meteors),
            codec=self.encoder.name,
        )

        try:
            with ScratchSpace(pipeline.frame_count, root=self.scratch_root) as scratch:
                self._transition(GenerationState.GENERATING)
                pipeline.run(scratch)
                self.cancel_token.raise_if_cancelled()

                self._transition(GenerationState.ENCODING)
                logger.info(f"Encoding {pipeline.frame_count} frames -> {self.output_path}")
                self.encoder.encode(scratch.input_pattern, self.fps, self.output_path)
            self._finalize(asset)
        except BaseException as e:
            self._transition(GenerationState.FAILED)
            logger.error(f"Starfield '{self.seed}' failed: {e}")
            raise

        self._transition(GenerationState.COMPLETED)
        logger.info(f"Starfield '{self.seed}' completed: {self.output_path}")
        return asset

    def _finalize(self, asset: VideoAsset) -> None:
        """Write the sidecar; on failure the encoded clip is removed too."""
        if not self.write_metadata:
            return
        logger.debug(f"[{self.seed}] writing metadata sidecar {asset.metadata_path}")
        try:
            self._write_metadata(asset)
        except StorageError as e:
            logger.error(f"[{self.seed}] metadata sidecar failed, removing {asset.path}: {e}")
            try:
                asset.path.unlink(missing_ok=True)
            except OSError as unlink_error:
                logger.warning(f"Could not delete {asset.path}: {unlink_error}")
            raise

    @staticmethod
    def _write_metadata(asset: VideoAsset) -> None:
        path = asset.metadata_path
        try:
            with open(path, "w") as f:
                json.dump(asset.to_dict(), f, indent=2)
        except OSError as e:
            raise StorageError(path, e) from e


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def generate_loopable_asset(
    seed: str,
    width: int,
    height: int,
    duration: float,
    fps: Optional[float] = None,
    star_count: Optional[int] = None,
    **options: Any,
) -> VideoAsset:
    """Generate a seamlessly loopable, transparent starfield clip.

    Args:
        seed: Any string; identical seeds and parameters give identical frames.
        width: Output width in pixels.
        height: Output height in pixels.
        duration: Loop length in seconds.
        fps: Frame rate (defaults to ``settings.default_fps``).
        star_count: Number of background stars (defaults to
            ``settings.default_star_count``).
        **options: Passed through to StarfieldJob (output_path, encoder,
            codec, star_color, max_workers, scratch_root, cancel_token,
            on_progress, write_metadata).

    Raises:
        RasterizationError, StorageError, EncodingError, GenerationCancelled.
    """
    job = StarfieldJob(seed, width, height, duration, fps=fps, star_count=star_count, **options)
    return job.run()


def generate_static_frame(
    seed: str,
    width: int,
    height: int,
    star_count: Optional[int] = None,
    star_color: BGR = STAR_WHITE,
) -> np.ndarray:
    """Single preview frame: stars at t=0, no meteors. Returns BGRA uint8."""
    count = star_count if star_count is not None else settings.default_star_count
    if width <= 0 or height <= 0:
        raise ValueError(f"Frame size must be positive, got {width}x{height}")
    if count < 0:
        raise ValueError("Star count must be non-negative")
    stars = generate_starfield(seed, count)
    scene = compose_frame(stars, (), 0.0, star_color)
    try:
        return rasterize(scene, width, height)
    except Exception as e:
        raise RasterizationError(None, e) from e
