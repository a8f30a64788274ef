# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Root conftest: skip encoder integration tests when ffmpeg is missing."""

import shutil
import subprocess

import pytest


def _ffmpeg_available() -> bool:
    """Check that an ffmpeg binary is on PATH and actually runs."""
    path = shutil.which("ffmpeg")
    if not path:
        return False
    try:
        result = subprocess.run(
            [path, "-hide_banner", "-version"],
            capture_output=True, text=True, timeout=10,
        )
        return result.returncode == 0
    except (OSError, subprocess.TimeoutExpired):
        return False


_HAS_FFMPEG = _ffmpeg_available()


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "ffmpeg" in item.keywords and not _HAS_FFMPEG:
            item.add_marker(pytest.mark.skip(reason="ffmpeg not available"))
