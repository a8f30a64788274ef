# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""ffmpeg encoding stage: PNG frame sequence -> alpha-preserving video.

Codec profiles:
  - prores: ProRes 4444 in .mov, every frame intra-coded, 16-bit alpha
  - vp9: VP9 in .webm with yuva420p, one keyframe per second,
    alt-ref frames off (libvpx drops alpha otherwise)
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from starloop.errors import EncodingError

_STDERR_TAIL = 2000


@dataclass(frozen=True)
class CodecProfile:
    name: str
    codec: str
    pix_fmt: str
    extension: str
    args: tuple[str, ...] = ()
    keyframe_every_second: bool = False


CODEC_PROFILES: dict[str, CodecProfile] = {
    "prores": CodecProfile(
        name="prores",
        codec="prores_ks",
        pix_fmt="yuva444p10le",
        extension=".mov",
        args=("-profile:v", "4444", "-alpha_bits", "16", "-vendor", "apl0"),
    ),
    "vp9": CodecProfile(
        name="vp9",
        codec="libvpx-vp9",
        pix_fmt="yuva420p",
        extension=".webm",
        args=("-b:v", "0", "-crf", "30", "-auto-alt-ref", "0", "-row-mt", "1"),
        keyframe_every_second=True,
    ),
}


def get_profile(name: str) -> CodecProfile:
    try:
        return CODEC_PROFILES[name]
    except KeyError:
        raise ValueError(
            f"Invalid codec '{name}', expected one of {sorted(CODEC_PROFILES)}"
        ) from None


class FfmpegEncoder:
    """Runs one ffmpeg process per clip.

    The encoder reads the scratch directory through an image2 pattern, so it
    only sees frames in index order.
    """

    def __init__(
        self,
        profile: CodecProfile | str = "prores",
        ffmpeg_bin: str = "ffmpeg",
        timeout: float = 600.0,
    ) -> None:
        self.profile = get_profile(profile) if isinstance(profile, str) else profile
        self.ffmpeg_bin = ffmpeg_bin
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self.profile.name

    @property
    def extension(self) -> str:
        return self.profile.extension

    @staticmethod
    def partial_path(output_path: Path) -> Path:
        """Hidden sibling ffmpeg writes to; keeps the extension so the muxer is inferred."""
        return output_path.with_name(f".{output_path.stem}.part{output_path.suffix}")

    def resolve_binary(self) -> str:
        path = shutil.which(self.ffmpeg_bin)
        if not path:
            raise EncodingError(f"ffmpeg not found: {self.ffmpeg_bin}")
        return path

    def build_command(self, binary: str, input_pattern: Path, fps: float, output_path: Path) -> list[str]:
        cmd = [
            binary,
            "-y",
            "-hide_banner",
            "-loglevel", "error",
            "-framerate", f"{fps:g}",
            "-i", str(input_pattern),
            "-c:v", self.profile.codec,
            "-pix_fmt", self.profile.pix_fmt,
            *self.profile.args,
        ]
        if self.profile.keyframe_every_second:
            cmd.extend(["-g", str(max(1, round(fps)))])
        cmd.extend(["-an", str(output_path)])
        return cmd

    def encode(self, input_pattern: Path, fps: float, output_path: Path) -> Path:
        """Encode the frames matching ``input_pattern`` into ``output_path``.

        ffmpeg writes to ``partial_path(output_path)``; the result replaces
        ``output_path`` only once it is known to be complete, so a failed
        encode leaves any existing file there untouched.

        Raises:
            EncodingError: binary missing, timeout, non-zero exit, or no
                output written.
        """
        binary = self.resolve_binary()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        partial = self.partial_path(output_path)
        cmd = self.build_command(binary, input_pattern, fps, partial)
        logger.debug(f"Encoder command: {' '.join(cmd)}")
        try:
            self._run(cmd)
            if not partial.exists() or partial.stat().st_size == 0:
                raise EncodingError(f"ffmpeg produced no output at {output_path}")
            try:
                partial.replace(output_path)
            except OSError as e:
                raise EncodingError(f"Could not move encoded clip to {output_path}: {e}") from e
        finally:
            try:
                partial.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not delete partial encode {partial}: {e}")

        logger.info(f"Encoded {output_path} ({self.profile.name}, {output_path.stat().st_size} bytes)")
        return output_path

    def _run(self, cmd: list[str]) -> None:
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise EncodingError(f"ffmpeg timed out after {self.timeout:g}s") from e
        except OSError as e:
            raise EncodingError(f"ffmpeg could not be executed: {e}") from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()[-_STDERR_TAIL:]
            raise EncodingError("ffmpeg failed", returncode=result.returncode, stderr=stderr)
