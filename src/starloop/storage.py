# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Per-request scratch directory for rasterised frames.

Each request gets its own ``starloop-*`` directory so concurrent requests
never collide.  Frames are named ``frame_00000.png`` etc; the fixed width
keeps lexicographic and numeric order identical, which the encoder's
``%05d`` input pattern relies on.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import cv2
import numpy as np
from loguru import logger

from starloop.errors import StorageError

FRAME_PREFIX = "frame_"
FRAME_SUFFIX = ".png"
MIN_INDEX_WIDTH = 5


def index_width(frame_count: int) -> int:
    return max(MIN_INDEX_WIDTH, len(str(max(frame_count - 1, 0))))


def write_png(path: Path, pixels: np.ndarray) -> Path:
    """Write a BGRA (or BGR) buffer as PNG, raising StorageError on failure."""
    try:
        ok = cv2.imwrite(str(path), pixels)
    except cv2.error as e:
        raise StorageError(path, e) from e
    if not ok:
        raise StorageError(path, "cv2.imwrite returned False")
    return path


class ScratchSpace:
    """Owns one temporary frame directory for the lifetime of a request.

    Usage::

        with ScratchSpace(frame_count=40) as scratch:
            scratch.write_frame(0, pixels)
            encoder.encode(scratch.input_pattern, fps, output)
        # frames and directory are gone here, even on error
    """

    def __init__(self, frame_count: int, root: Path | None = None) -> None:
        self.frame_count = frame_count
        self.width = index_width(frame_count)
        self._root = root
        self.path: Path | None = None

    def __enter__(self) -> ScratchSpace:
        self.create()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def create(self) -> Path:
        try:
            if self._root is not None:
                self._root.mkdir(parents=True, exist_ok=True)
            self.path = Path(tempfile.mkdtemp(
                prefix="starloop-",
                dir=str(self._root) if self._root is not None else None,
            ))
        except OSError as e:
            raise StorageError(self._root or tempfile.gettempdir(), e) from e
        logger.debug(f"Scratch directory created: {self.path}")
        return self.path

    def frame_name(self, index: int) -> str:
        return f"{FRAME_PREFIX}{index:0{self.width}d}{FRAME_SUFFIX}"

    def frame_path(self, index: int) -> Path:
        if self.path is None:
            raise StorageError("<unset>", "scratch directory not created")
        return self.path / self.frame_name(index)

    @property
    def input_pattern(self) -> Path:
        """printf-style pattern covering every frame (ffmpeg image2 input)."""
        if self.path is None:
            raise StorageError("<unset>", "scratch directory not created")
        return self.path / f"{FRAME_PREFIX}%0{self.width}d{FRAME_SUFFIX}"

    def write_frame(self, index: int, pixels: np.ndarray) -> Path:
        return write_png(self.frame_path(index), pixels)

    def frame_files(self) -> list[Path]:
        if self.path is None or not self.path.exists():
            return []
        return sorted(self.path.glob(f"{FRAME_PREFIX}*{FRAME_SUFFIX}"))

    def cleanup(self) -> int:
        """Delete frames and the directory; best effort, never raises.

        Returns:
            Number of frame files that could not be removed.
        """
        if self.path is None:
            return 0
        leftover = 0
        for frame in self.frame_files():
            try:
                frame.unlink()
            except OSError as e:
                leftover += 1
                logger.warning(f"Could not delete scratch frame {frame}: {e}")
        try:
            self.path.rmdir()
        except OSError as e:
            logger.warning(f"Could not remove scratch directory {self.path}: {e}")
        else:
            logger.debug(f"Scratch directory removed: {self.path}")
        return leftover
