"""Threaded camera/stream reader that pushes every frame to a consumer."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

import cv2
import numpy as np

logger = logging.getLogger(__name__)

FrameCallback = Callable[[np.ndarray, int], None]


def parse_source(source: str) -> int | str:
    """Numeric sources are webcam indices, anything else is a URL or path."""
    source = str(source).strip()
    return int(source) if source.isdigit() else source


class FrameSource:
    """Reads frames on a background thread and hands each one to ``on_frame``.

    The callback runs on the capture thread and must return quickly; the
    pipeline's frame gate drops frames it cannot take.
    """

    def __init__(self, source: str, on_frame: FrameCallback,
                 reconnect_delay: float = 5.0, grab_timeout: float = 10.0):
        self._source = parse_source(source)
        self._on_frame = on_frame
        self._reconnect_delay = reconnect_delay
        self._grab_timeout = grab_timeout

        self._cap: cv2.VideoCapture | None = None
        self._frame_number = 0
        self._running = False
        self._thread: threading.Thread | None = None
        self._connected = False
        self._fps = 30.0

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def fps(self) -> float:
        return self._fps

    @property
    def frame_number(self) -> int:
        return self._frame_number

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._read_loop, daemon=True)
        self._thread.start()
        logger.info("Frame source started for: %s", self._source)

    def stop(self) -> None:
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
        self._release()
        logger.info("Frame source stopped")

    def _connect(self) -> bool:
        self._release()
        try:
            self._cap = cv2.VideoCapture(self._source)
            if not self._cap.isOpened():
                logger.warning("Failed to open source: %s", self._source)
                return False

            fps = self._cap.get(cv2.CAP_PROP_FPS)
            if fps and fps > 0:
                self._fps = fps

            self._connected = True
            logger.info("Connected to source: %s (%.1f FPS)", self._source, self._fps)
            return True
        except cv2.error:
            logger.exception("Error opening source")
            return False

    def _release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._connected = False

    def _read_loop(self) -> None:
        last_read = time.monotonic()

        while self._running:
            if not self._connected:
                if not self._connect():
                    time.sleep(self._reconnect_delay)
                    continue
                last_read = time.monotonic()

            ok, frame = self._cap.read()
            if ok and frame is not None:
                last_read = time.monotonic()
                self._frame_number += 1
                try:
                    self._on_frame(frame, self._frame_number)
                except Exception:
                    logger.exception("Error in frame consumer")
                continue

            if (time.monotonic() - last_read) > self._grab_timeout:
                logger.warning("No frames for %.0fs, reconnecting...", self._grab_timeout)
                self._connected = False
                time.sleep(self._reconnect_delay)
            else:
                time.sleep(0.01)
