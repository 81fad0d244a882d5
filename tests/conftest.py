"""Shared test fixtures: synthetic raw network outputs and fake model invokers."""

from __future__ import annotations

import threading

import numpy as np
import pytest

from src.config import (
    AppConfig,
    DecoderConfig,
    GovernorConfig,
    PostprocessConfig,
    PreprocessConfig,
    TrackingConfig,
)
from src.models import Detection, LetterboxInfo, Rect
from src.monitoring.governor import ResourceGovernor
from src.processing.inference import InferenceError

LABELS = [
    "Person", "Cup", "Plate", "Fork", "Bottle", "Toilet", "Waste container",
    "Human body", "Mug", "Car", "Building", "Chair",
]


def class_index(name: str) -> int:
    return LABELS.index(name)


@pytest.fixture
def labels() -> list[str]:
    return list(LABELS)


@pytest.fixture
def decoder_config() -> DecoderConfig:
    return DecoderConfig()


@pytest.fixture
def tracking_config() -> TrackingConfig:
    return TrackingConfig()


@pytest.fixture
def postprocess_config() -> PostprocessConfig:
    return PostprocessConfig()


@pytest.fixture
def preprocess_config() -> PreprocessConfig:
    return PreprocessConfig(input_size=640, min_source_dim=100)


@pytest.fixture
def governor_config() -> GovernorConfig:
    return GovernorConfig(cooldown=3.0, pause_duration=3.0,
                          memory_high_mb=450.0, memory_low_mb=350.0)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def governor(governor_config, clock) -> ResourceGovernor:
    return ResourceGovernor(governor_config, sampler=None, clock=clock)


@pytest.fixture
def app_config() -> AppConfig:
    config = AppConfig()
    config.web.enabled = False
    return config


def identity_letterbox(size: int = 640) -> LetterboxInfo:
    """No padding, unit scale: network pixels equal source pixels."""
    return LetterboxInfo(scale=1.0, pad_x=0, pad_y=0, was_rotated=False, input_size=size)


def make_raw(anchors: list[tuple[float, float, float, float, str, float]],
             num_classes: int = len(LABELS), extra_anchors: int = 4) -> np.ndarray:
    """Build a ``(4 + C, A)`` raw output.

    Each anchor is ``(cx, cy, w, h, class_name, score)`` in network pixels.
    ``extra_anchors`` all-zero anchors are appended as background.
    """
    total = len(anchors) + extra_anchors
    raw = np.zeros((4 + num_classes, total), dtype=np.float32)
    for i, (cx, cy, w, h, name, score) in enumerate(anchors):
        raw[0:4, i] = (cx, cy, w, h)
        raw[4 + class_index(name), i] = score
    return raw


def make_detection(name: str, x: float, y: float, w: float = 0.1, h: float = 0.1,
                   score: float = 0.9) -> Detection:
    return Detection(class_index=class_index(name), class_name=name,
                     score=score, rect=Rect(x, y, w, h))


class FakeInvoker:
    """Stands in for the ONNX session; returns a fixed raw output."""

    def __init__(self, raw: np.ndarray | None = None, labels: list[str] | None = None,
                 fail: bool = False, fail_reset: bool = False):
        self.raw = raw if raw is not None else make_raw([])
        self.labels = list(labels or LABELS)
        self.fail = fail
        self.fail_reset = fail_reset
        self.calls = 0
        self.resets = 0
        self.gate: threading.Event | None = None

    def invoke(self, tensor: np.ndarray) -> np.ndarray:
        self.calls += 1
        if self.gate is not None:
            self.gate.wait(timeout=5.0)
        if self.fail:
            raise RuntimeError("model exploded")
        return self.raw

    def reset(self) -> None:
        self.resets += 1
        if self.fail_reset:
            raise InferenceError("reload failed")


def make_frame(width: int = 640, height: int = 640) -> np.ndarray:
    """Create a blank BGR frame."""
    return np.zeros((height, width, 3), dtype=np.uint8)
