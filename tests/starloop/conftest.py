"""Shared fixtures for starloop tests."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from starloop.errors import EncodingError
from starloop.meteors import MeteorEvent
from starloop.starfield import Star


class RecordingEncoder:
    """In-memory stand-in for FfmpegEncoder.

    Records which frames were on disk at encode time (names and content
    hashes) and writes a placeholder file, or raises EncodingError when
    ``fail`` is set.
    """

    name = "recording"
    extension = ".mov"

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[Path, float, Path]] = []
        self.frame_names: list[str] = []
        self.frame_hashes: list[str] = []

    def encode(self, input_pattern: Path, fps: float, output_path: Path) -> Path:
        frames = sorted(input_pattern.parent.glob("frame_*.png"))
        self.frame_names = [f.name for f in frames]
        self.frame_hashes = [hashlib.sha256(f.read_bytes()).hexdigest() for f in frames]
        self.calls.append((input_pattern, fps, output_path))
        if self.fail:
            raise EncodingError("forced encoder failure", returncode=1, stderr="boom")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(b"fake-video")
        return output_path


@pytest.fixture
def encoder() -> RecordingEncoder:
    return RecordingEncoder()


@pytest.fixture
def failing_encoder() -> RecordingEncoder:
    return RecordingEncoder(fail=True)


@pytest.fixture
def scratch_root(tmp_path: Path) -> Path:
    return tmp_path / "scratch"


def leftover_frames(root: Path) -> list[Path]:
    if not root.exists():
        return []
    return list(root.rglob("*.png"))


def make_star(**overrides) -> Star:
    fields = dict(
        x=50.0,
        y=50.0,
        base_size=1.5,
        base_opacity=0.6,
        twinkle_frequency=0.1,
        twinkle_phase=0.0,
    )
    fields.update(overrides)
    return Star(**fields)


def make_meteor(**overrides) -> MeteorEvent:
    fields = dict(
        start_x=20.0,
        start_y=10.0,
        angle_degrees=45.0,
        speed=80.0,
        thickness=2.0,
        color_group_index=0,
        start_time=1.0,
        duration=0.4,
    )
    fields.update(overrides)
    return MeteorEvent(**fields)
