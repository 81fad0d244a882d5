"""Single-flight admission control for incoming frames."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from src.monitoring.governor import ResourceGovernor

logger = logging.getLogger(__name__)


class FrameGate:
    """Admits at most one frame into inference at a time.

    Frames are never queued: a frame arriving while another is in flight,
    while the governor has paused the pipeline, off the skip pattern, or
    sooner than ``min_interval`` after the last admitted frame is dropped.
    """

    def __init__(self, governor: ResourceGovernor,
                 clock: Callable[[], float] = time.monotonic):
        self._governor = governor
        self._clock = clock
        self._last_admit = float("-inf")
        self._lock = threading.Lock()
        self._in_flight = False
        self._frames_seen = 0
        self._dropped = 0

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight

    @property
    def frames_seen(self) -> int:
        return self._frames_seen

    @property
    def dropped(self) -> int:
        return self._dropped

    def admit(self, frame: object = None, min_interval: float = 0.0) -> bool:
        """Try to admit a frame; on success the caller must ``release()``.

        The skip pattern thins offered frames first, then ``min_interval``
        caps the admitted rate.
        """
        skip = max(1, self._governor.snapshot().frame_skip_pattern)
        paused = self._governor.is_paused()
        now = self._clock()
        with self._lock:
            self._frames_seen += 1
            if (self._in_flight or paused or self._frames_seen % skip != 0
                    or now - self._last_admit < min_interval):
                self._dropped += 1
                return False
            self._in_flight = True
            self._last_admit = now
            return True

    def release(self) -> None:
        with self._lock:
            self._in_flight = False

    def reset(self) -> None:
        with self._lock:
            self._in_flight = False
            self._frames_seen = 0
            self._dropped = 0
            self._last_admit = float("-inf")
