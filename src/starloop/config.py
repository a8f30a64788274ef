# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Runtime settings, read from STARLOOP_* environment variables or .env."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Defaults for generation requests.

    Explicit arguments to the entry points always win; these only fill in
    what the caller leaves as None.
    """

    model_config = SettingsConfigDict(
        env_prefix="STARLOOP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Generation
    default_fps: int = 30
    default_star_count: int = 80

    # Storage
    output_dir: Path = Path("output")
    scratch_root: Optional[Path] = None
    write_metadata: bool = True

    # Encoding
    ffmpeg_bin: str = "ffmpeg"
    video_codec: str = "prores"
    encode_timeout: float = 600.0

    # Frame workers (None = executor default)
    max_workers: Optional[int] = None

    log_level: str = "INFO"


settings = Settings()
