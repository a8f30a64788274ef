# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Failure taxonomy for a generation request.

Any of these moves a request straight to Failed.  There is no partial
success: either one complete asset exists or one of these is raised.
"""

from __future__ import annotations

from pathlib import Path


class StarloopError(Exception):
    """Base class for all generation failures."""


class RasterizationError(StarloopError):
    """A frame (or the static preview) could not be rasterised."""

    def __init__(self, frame_index: int | None, cause: BaseException | None = None):
        self.frame_index = frame_index
        self.cause = cause
        where = "static frame" if frame_index is None else f"frame {frame_index}"
        super().__init__(
            f"Rasterization failed for {where}"
            f"{f': {cause}' if cause else ''}"
        )


class EncodingError(StarloopError):
    """The encoder could not be run, exited non-zero, or wrote nothing."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        detail = f" (exit {returncode})" if returncode is not None else ""
        super().__init__(f"{message}{detail}")


class StorageError(StarloopError):
    """Scratch directory creation or a frame write failed."""

    def __init__(self, path: Path | str, cause: BaseException | str | None = None):
        self.path = Path(path)
        self.cause = cause
        super().__init__(
            f"Scratch storage failure at {self.path}"
            f"{f': {cause}' if cause else ''}"
        )


class GenerationCancelled(StarloopError):
    """The request's cancel token was tripped before it finished."""
