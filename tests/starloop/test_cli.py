"""Tests for scripts/generate_starfield.py."""

from __future__ import annotations

import argparse
from types import SimpleNamespace

import cv2
import pytest

import scripts.generate_starfield as cli

pytestmark = pytest.mark.unit


class TestParseColor:
    def test_hex_to_bgr(self):
        assert cli._parse_color("#ff8000") == (0, 128, 255)

    def test_without_hash(self):
        assert cli._parse_color("0000ff") == (255, 0, 0)

    @pytest.mark.parametrize("value", ["#fff", "#gggggg", "red"])
    def test_invalid(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            cli._parse_color(value)


class TestMain:
    def test_seed_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_defaults(self):
        args = cli.build_parser().parse_args(["--seed", "demo"])
        assert (args.width, args.height, args.duration) == (1080, 1920, 4.0)
        assert args.fps is None
        assert args.codec is None

    def test_still_preview(self, tmp_path):
        out = tmp_path / "preview.png"
        rc = cli.main(["--seed", "demo", "--width", "64", "--height", "96",
                       "--stars", "20", "--still", str(out)])
        assert rc == 0
        pixels = cv2.imread(str(out), cv2.IMREAD_UNCHANGED)
        assert pixels.shape == (96, 64, 4)

    def test_invalid_size_returns_error(self, tmp_path):
        rc = cli.main(["--seed", "demo", "--width", "0", "--still", str(tmp_path / "x.png")])
        assert rc == 1
        assert not (tmp_path / "x.png").exists()

    def test_video_arguments_forwarded(self, tmp_path, monkeypatch, capsys):
        seen = {}

        def fake_generate(seed, width, height, duration, **kwargs):
            seen.update(seed=seed, width=width, height=height, duration=duration, **kwargs)
            return SimpleNamespace(path=tmp_path / "clip.webm")

        monkeypatch.setattr(cli, "generate_loopable_asset", fake_generate)
        rc = cli.main(["--seed", "demo", "--duration", "6", "--fps", "12", "--codec", "vp9",
                       "--tint", "#ffffff", "--workers", "2"])
        assert rc == 0
        assert seen["seed"] == "demo"
        assert seen["duration"] == 6.0
        assert seen["fps"] == 12.0
        assert seen["codec"] == "vp9"
        assert seen["star_color"] == (255, 255, 255)
        assert seen["max_workers"] == 2
        assert str(tmp_path / "clip.webm") in capsys.readouterr().out
