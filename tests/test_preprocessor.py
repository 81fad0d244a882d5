"""Tests for orientation fixing and letterboxing."""

from __future__ import annotations

import numpy as np
import pytest

from src.config import PreprocessConfig
from src.processing import preprocessor
from src.processing.preprocessor import (
    Preprocessor,
    letterbox_params,
    needs_rotation,
    resolve_input_size,
)
from tests.conftest import make_frame


class TestGeometry:
    def test_letterbox_landscape(self):
        assert letterbox_params(1280, 720, 640) == (0.5, 0, 140)

    def test_letterbox_square(self):
        assert letterbox_params(640, 640, 640) == (1.0, 0, 0)

    @pytest.mark.parametrize("width, height, portrait, expected", [
        (1280, 720, False, False),
        (720, 1280, False, True),
        (720, 1280, True, False),
        (1280, 720, True, True),
        (640, 640, True, False),
    ])
    def test_needs_rotation(self, width, height, portrait, expected):
        assert needs_rotation(width, height, portrait) is expected


class TestPreprocessor:
    def test_tensor_layout_and_padding(self, preprocess_config):
        """A landscape frame is letterboxed into a 1x3x640x640 tensor."""
        frame = np.full((720, 1280, 3), 255, dtype=np.uint8)
        tensor, info = Preprocessor(preprocess_config).prepare(frame)

        assert tensor.shape == (1, 3, 640, 640)
        assert tensor.dtype == np.float32
        assert info.scale == pytest.approx(0.5)
        assert (info.pad_x, info.pad_y) == (0, 140)
        assert not info.was_rotated
        assert tensor[0, :, :140, :].max() == 0.0
        assert tensor[0, :, 500:, :].max() == 0.0
        assert tensor[0, :, 320, 320] == pytest.approx([1.0, 1.0, 1.0])

    def test_channels_are_rgb(self, preprocess_config):
        frame = make_frame(640, 640)
        frame[:, :, 0] = 255      # blue in BGR
        tensor, _ = Preprocessor(preprocess_config).prepare(frame)

        assert tensor[0, 2].min() == pytest.approx(1.0)
        assert tensor[0, 0].max() == 0.0

    def test_portrait_frame_is_rotated_clockwise(self, preprocess_config):
        """The top-left corner of an upright frame ends up top-right."""
        frame = make_frame(720, 1280)
        frame[:100, :100] = 255
        tensor, info = Preprocessor(preprocess_config).prepare(frame, is_portrait=False)

        assert info.was_rotated
        assert (info.pad_x, info.pad_y) == (0, 140)
        assert tensor[0, 0, 160, 620] == pytest.approx(1.0)
        assert tensor[0, 0, 160, 20] == 0.0

    def test_frame_below_minimum_is_skipped(self, preprocess_config):
        assert Preprocessor(preprocess_config).prepare(make_frame(50, 50)) is None

    def test_canvas_is_cleared_between_frames(self, preprocess_config):
        """Padding from an earlier frame never leaks into the next one."""
        prep = Preprocessor(preprocess_config)
        prep.prepare(np.full((640, 640, 3), 255, dtype=np.uint8))
        tensor, _ = prep.prepare(np.full((720, 1280, 3), 255, dtype=np.uint8))
        assert tensor[0, :, :140, :].max() == 0.0

    @pytest.mark.parametrize("width, height, accepted", [
        (100, 100, False),
        (101, 100, False),
        (101, 101, True),
    ])
    def test_minimum_size_is_exclusive(self, preprocess_config, width, height, accepted):
        """Both sides must be strictly larger than the floor."""
        result = Preprocessor(preprocess_config).prepare(make_frame(width, height))
        assert (result is not None) is accepted


class TestInputSize:
    @pytest.mark.parametrize("tier, size", [("low", 352), ("mid", 512), ("high", 640)])
    def test_auto_size_follows_device_tier(self, monkeypatch, tier, size):
        monkeypatch.setattr(preprocessor, "performance_tier", lambda: tier)
        assert resolve_input_size("auto") == size

    def test_explicit_size(self):
        assert resolve_input_size(416) == 416
        assert resolve_input_size("320") == 320

    def test_auto_size_drives_letterbox(self, monkeypatch):
        monkeypatch.setattr(preprocessor, "performance_tier", lambda: "low")
        tensor, info = Preprocessor(PreprocessConfig(input_size="auto")).prepare(
            make_frame(1280, 720))

        assert tensor.shape == (1, 3, 352, 352)
        assert info.input_size == 352
        assert info.scale == pytest.approx(0.275)
