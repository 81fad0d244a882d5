"""Tests for the frame source."""

from __future__ import annotations

import threading

import pytest

from src.capture import stream
from src.capture.stream import FrameSource, parse_source
from tests.conftest import make_frame


class FakeCapture:
    """Yields a fixed number of frames, then reports end of stream."""

    def __init__(self, source, frames: int = 5):
        self.source = source
        self.remaining = frames
        self.released = False

    def isOpened(self) -> bool:
        return True

    def get(self, prop) -> float:
        return 25.0

    def read(self):
        if self.remaining <= 0:
            return False, None
        self.remaining -= 1
        return True, make_frame(160, 120)

    def release(self) -> None:
        self.released = True


class TestParseSource:
    @pytest.mark.parametrize("raw, expected", [
        ("0", 0),
        (" 2 ", 2),
        ("rtsp://cam/stream", "rtsp://cam/stream"),
        ("clips/demo.mp4", "clips/demo.mp4"),
    ])
    def test_parse(self, raw, expected):
        assert parse_source(raw) == expected


class TestFrameSource:
    def test_pushes_numbered_frames(self, monkeypatch):
        captures = []

        def open_capture(source):
            cap = FakeCapture(source)
            captures.append(cap)
            return cap

        monkeypatch.setattr(stream.cv2, "VideoCapture", open_capture)

        received = []
        done = threading.Event()

        def on_frame(frame, number):
            received.append((frame.shape, number))
            if number == 5:
                done.set()

        source = FrameSource("1", on_frame, reconnect_delay=0.01, grab_timeout=60.0)
        source.start()
        try:
            assert done.wait(timeout=5.0)
            assert source.is_connected
            assert source.fps == 25.0
        finally:
            source.stop()

        assert captures[0].source == 1
        assert [n for _, n in received] == [1, 2, 3, 4, 5]
        assert received[0][0] == (120, 160, 3)
        assert captures[0].released
        assert not source.is_connected

    def test_consumer_errors_do_not_stop_capture(self, monkeypatch):
        monkeypatch.setattr(stream.cv2, "VideoCapture", lambda src: FakeCapture(src, 3))
        seen = []
        done = threading.Event()

        def on_frame(frame, number):
            seen.append(number)
            if number == 3:
                done.set()
            raise ValueError("bad consumer")

        source = FrameSource("0", on_frame, reconnect_delay=0.01)
        source.start()
        try:
            assert done.wait(timeout=5.0)
        finally:
            source.stop()
        assert seen == [1, 2, 3]
