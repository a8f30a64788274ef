#!/usr/bin/env python3
# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Generate a loopable transparent starfield clip (or a still preview).

Usage:
    python3 scripts/generate_starfield.py --seed demo                     # 1080x1920, 4s, 30fps
    python3 scripts/generate_starfield.py --seed demo --fps 10 --codec vp9
    python3 scripts/generate_starfield.py --seed demo --still preview.png # single frame, no meteors
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add src/ for starloop imports when run from a checkout
_PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(_PROJECT_ROOT / "src"))

from loguru import logger

from starloop.config import settings
from starloop.encoder import CODEC_PROFILES
from starloop.errors import StarloopError
from starloop.pipeline import generate_loopable_asset, generate_static_frame
from starloop.storage import write_png


def _parse_color(value: str) -> tuple[int, int, int]:
    """Parse ``#rrggbb`` into a BGR tuple."""
    text = value.lstrip("#")
    if len(text) != 6:
        raise argparse.ArgumentTypeError(f"Expected #rrggbb, got {value!r}")
    try:
        r, g, b = (int(text[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected #rrggbb, got {value!r}") from None
    return (b, g, r)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Procedural starfield + meteor overlay generator",
    )
    parser.add_argument("--seed", required=True, help="Seed string (same seed = same clip)")
    parser.add_argument("--width", type=int, default=1080)
    parser.add_argument("--height", type=int, default=1920)
    parser.add_argument("--duration", type=float, default=4.0, help="Loop length in seconds")
    parser.add_argument("--fps", type=float, default=None)
    parser.add_argument("--stars", type=int, default=None, help="Star count")
    parser.add_argument(
        "--codec", choices=sorted(CODEC_PROFILES), default=None,
        help=f"Video codec profile (default: {settings.video_codec})",
    )
    parser.add_argument("--tint", type=_parse_color, default=None, help="Star color as #rrggbb")
    parser.add_argument("--workers", type=int, default=None, help="Frame worker threads")
    parser.add_argument("--output", type=Path, default=None, help="Output video path")
    parser.add_argument("--still", type=Path, default=None, help="Write a single PNG preview instead")
    parser.add_argument("--log-level", default=settings.log_level)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    star_color = {"star_color": args.tint} if args.tint else {}
    try:
        if args.still is not None:
            pixels = generate_static_frame(
                args.seed, args.width, args.height, star_count=args.stars, **star_color,
            )
            write_png(args.still, pixels)
            logger.info(f"Preview written: {args.still}")
            return 0

        def progress(done: int, total: int) -> None:
            if done == total or done % 25 == 0:
                logger.info(f"  frames {done}/{total}")

        asset = generate_loopable_asset(
            args.seed,
            args.width,
            args.height,
            args.duration,
            fps=args.fps,
            star_count=args.stars,
            output_path=args.output,
            codec=args.codec,
            max_workers=args.workers,
            on_progress=progress,
            **star_color,
        )
    except (StarloopError, ValueError) as e:
        logger.error(str(e))
        return 1

    print(asset.path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
