"""Tests for the ffmpeg encoding stage.

Command construction and failure mapping are unit tests with
``subprocess.run`` patched out; one test drives a real ffmpeg binary and is
skipped when none is installed.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from starloop.encoder import CODEC_PROFILES, FfmpegEncoder, get_profile
from starloop.errors import EncodingError
from starloop.storage import ScratchSpace

FAKE_BIN = "/usr/bin/ffmpeg"


def _encoder(profile: str = "prores") -> FfmpegEncoder:
    encoder = FfmpegEncoder(profile)
    encoder.resolve_binary = lambda: FAKE_BIN
    return encoder


@pytest.mark.unit
class TestProfiles:
    def test_prores_profile(self):
        p = get_profile("prores")
        assert p.codec == "prores_ks"
        assert p.pix_fmt == "yuva444p10le"
        assert p.extension == ".mov"

    def test_vp9_profile(self):
        p = get_profile("vp9")
        assert p.codec == "libvpx-vp9"
        assert p.pix_fmt == "yuva420p"
        assert p.extension == ".webm"
        assert p.keyframe_every_second

    def test_invalid_codec(self):
        with pytest.raises(ValueError, match="Invalid codec 'h264'"):
            get_profile("h264")

    def test_every_profile_has_alpha_pixel_format(self):
        for profile in CODEC_PROFILES.values():
            assert profile.pix_fmt.startswith("yuva")

    def test_extension_follows_profile(self):
        assert FfmpegEncoder("prores").extension == ".mov"
        assert FfmpegEncoder("vp9").extension == ".webm"


@pytest.mark.unit
class TestBuildCommand:
    def test_prores_command(self, tmp_path):
        cmd = _encoder("prores").build_command(
            FAKE_BIN, tmp_path / "frame_%05d.png", 30, tmp_path / "out.mov",
        )
        assert cmd[0] == FAKE_BIN
        assert cmd[cmd.index("-framerate") + 1] == "30"
        assert cmd[cmd.index("-i") + 1] == str(tmp_path / "frame_%05d.png")
        assert cmd[cmd.index("-c:v") + 1] == "prores_ks"
        assert cmd[cmd.index("-pix_fmt") + 1] == "yuva444p10le"
        assert cmd[cmd.index("-profile:v") + 1] == "4444"
        assert "-g" not in cmd
        assert cmd[-2:] == ["-an", str(tmp_path / "out.mov")]

    def test_vp9_command_has_keyframe_interval(self, tmp_path):
        cmd = _encoder("vp9").build_command(
            FAKE_BIN, tmp_path / "frame_%05d.png", 24, tmp_path / "out.webm",
        )
        assert cmd[cmd.index("-c:v") + 1] == "libvpx-vp9"
        assert cmd[cmd.index("-pix_fmt") + 1] == "yuva420p"
        assert cmd[cmd.index("-auto-alt-ref") + 1] == "0"
        assert cmd[cmd.index("-g") + 1] == "24"

    def test_fractional_fps(self, tmp_path):
        cmd = _encoder("vp9").build_command(
            FAKE_BIN, tmp_path / "frame_%05d.png", 12.5, tmp_path / "out.webm",
        )
        assert cmd[cmd.index("-framerate") + 1] == "12.5"
        assert cmd[cmd.index("-g") + 1] == "12"

    def test_overwrites_output(self, tmp_path):
        cmd = _encoder().build_command(FAKE_BIN, tmp_path / "f_%05d.png", 10, tmp_path / "o.mov")
        assert "-y" in cmd


@pytest.mark.unit
class TestEncodeFailures:
    def test_missing_binary(self, tmp_path):
        encoder = FfmpegEncoder(ffmpeg_bin="definitely-not-ffmpeg-xyz")
        with pytest.raises(EncodingError, match="ffmpeg not found"):
            encoder.encode(tmp_path / "frame_%05d.png", 10, tmp_path / "out.mov")

    def test_non_zero_exit(self, tmp_path):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=1, stderr="x" * 5000 + "Invalid data")
            with pytest.raises(EncodingError) as exc:
                _encoder().encode(tmp_path / "frame_%05d.png", 10, tmp_path / "out.mov")
        assert exc.value.returncode == 1
        assert "(exit 1)" in str(exc.value)
        assert exc.value.stderr.endswith("Invalid data")
        assert len(exc.value.stderr) == 2000

    def test_timeout(self, tmp_path):
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("ffmpeg", 5)):
            with pytest.raises(EncodingError, match="timed out"):
                _encoder().encode(tmp_path / "frame_%05d.png", 10, tmp_path / "out.mov")

    def test_exec_failure(self, tmp_path):
        with patch("subprocess.run", side_effect=PermissionError("denied")):
            with pytest.raises(EncodingError, match="could not be executed"):
                _encoder().encode(tmp_path / "frame_%05d.png", 10, tmp_path / "out.mov")

    def test_success_without_output_file(self, tmp_path):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stderr="")
            with pytest.raises(EncodingError, match="no output"):
                _encoder().encode(tmp_path / "frame_%05d.png", 10, tmp_path / "out.mov")

    def test_success_with_output(self, tmp_path):
        out = tmp_path / "nested" / "out.mov"

        def fake_run(cmd, **kwargs):
            Path(cmd[-1]).write_bytes(b"video")
            return MagicMock(returncode=0, stderr="")

        with patch("subprocess.run", side_effect=fake_run) as mock_run:
            assert _encoder().encode(tmp_path / "frame_%05d.png", 10, out) == out
        assert mock_run.call_args.kwargs["timeout"] == 600.0
        assert out.read_bytes() == b"video"


@pytest.mark.ffmpeg
class TestRealFfmpeg:
    @pytest.mark.parametrize("codec", ["prores", "vp9"])
    def test_encodes_transparent_frames(self, tmp_path, codec):
        encoder = FfmpegEncoder(codec, ffmpeg_bin=shutil.which("ffmpeg") or "ffmpeg")
        out = tmp_path / f"clip{encoder.extension}"
        with ScratchSpace(6, root=tmp_path / "scratch") as scratch:
            for i in range(6):
                px = np.zeros((64, 64, 4), dtype=np.uint8)
                px[10 + i:20 + i, 10:20] = (255, 255, 255, 255)
                scratch.write_frame(i, px)
            encoder.encode(scratch.input_pattern, 6, out)
        assert out.exists()
        assert out.stat().st_size > 0


def _fake_ffmpeg(tmp_path: Path, payload: str, exit_code: int) -> str:
    """Executable that writes ``payload`` to its last argument and exits."""
    script = tmp_path / "fake-ffmpeg"
    script.write_text(
        "#!/bin/sh\n"
        'for last; do :; done\n'
        f'printf "{payload}" > "$last"\n'
        f"exit {exit_code}\n"
    )
    script.chmod(0o755)
    return str(script)


@pytest.mark.unit
class TestOutputReplacement:
    def test_partial_path_keeps_extension(self, tmp_path):
        assert FfmpegEncoder.partial_path(tmp_path / "clip.mov") == tmp_path / ".clip.part.mov"

    def test_failed_encode_keeps_existing_asset(self, tmp_path):
        out = tmp_path / "clip.mov"
        out.write_bytes(b"previous good asset")
        encoder = FfmpegEncoder(ffmpeg_bin=_fake_ffmpeg(tmp_path, "trunc", 1))
        with pytest.raises(EncodingError) as exc:
            encoder.encode(tmp_path / "frame_%05d.png", 10, out)
        assert exc.value.returncode == 1
        assert out.read_bytes() == b"previous good asset"
        assert not FfmpegEncoder.partial_path(out).exists()

    def test_failed_encode_leaves_nothing_when_no_asset_existed(self, tmp_path):
        out = tmp_path / "clip.mov"
        encoder = FfmpegEncoder(ffmpeg_bin=_fake_ffmpeg(tmp_path, "trunc", 1))
        with pytest.raises(EncodingError):
            encoder.encode(tmp_path / "frame_%05d.png", 10, out)
        assert not out.exists()
        assert not FfmpegEncoder.partial_path(out).exists()

    def test_successful_encode_replaces_asset(self, tmp_path):
        out = tmp_path / "clip.mov"
        out.write_bytes(b"old")
        encoder = FfmpegEncoder(ffmpeg_bin=_fake_ffmpeg(tmp_path, "fresh", 0))
        assert encoder.encode(tmp_path / "frame_%05d.png", 10, out) == out
        assert out.read_bytes() == b"fresh"
        assert not FfmpegEncoder.partial_path(out).exists()

    def test_timeout_removes_partial(self, tmp_path):
        out = tmp_path / "clip.mov"
        out.write_bytes(b"previous good asset")

        def slow_run(cmd, **kwargs):
            Path(cmd[-1]).write_bytes(b"half")
            raise subprocess.TimeoutExpired("ffmpeg", 5)

        with patch("subprocess.run", side_effect=slow_run):
            with pytest.raises(EncodingError, match="timed out"):
                _encoder().encode(tmp_path / "frame_%05d.png", 10, out)
        assert out.read_bytes() == b"previous good asset"
        assert not FfmpegEncoder.partial_path(out).exists()

    def test_command_targets_partial_file(self, tmp_path):
        out = tmp_path / "clip.mov"
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stderr="")
            with pytest.raises(EncodingError, match="no output"):
                _encoder().encode(tmp_path / "frame_%05d.png", 10, out)
        cmd = mock_run.call_args.args[0]
        assert cmd[-1] == str(FfmpegEncoder.partial_path(out))

    def test_encoder_name_is_profile_name(self):
        assert FfmpegEncoder("vp9").name == "vp9"
