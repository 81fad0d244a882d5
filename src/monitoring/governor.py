"""Resource governor: maps thermal and memory pressure to throughput targets."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from typing import Callable

from src.config import GovernorConfig
from src.models import PerformanceState, ThermalLevel
from src.monitoring.system import SystemSampler

logger = logging.getLogger(__name__)

# (target fps, process every Nth frame), best to worst
TIERS: tuple[tuple[int, int], ...] = (
    (30, 1),
    (25, 1),
    (20, 2),
    (15, 3),
    (10, 4),
)
LOWEST_TIER = len(TIERS) - 1


def select_tier(thermal: ThermalLevel, memory_pressure: int) -> int:
    """Index into ``TIERS`` for a thermal level and memory pressure count."""
    if thermal == ThermalLevel.CRITICAL or memory_pressure >= 6:
        return 4
    if memory_pressure >= 4:
        return 3
    if thermal == ThermalLevel.SERIOUS:
        return 3 if memory_pressure >= 2 else 2
    if thermal == ThermalLevel.FAIR:
        return 2 if memory_pressure >= 2 else 1
    return 2 if memory_pressure >= 2 else 0


class ResourceGovernor:
    """Owns the ``PerformanceState`` read by the frame gate before each frame.

    Targets are re-evaluated at most once per cooldown period. A critical
    thermal reading bypasses the cooldown and pauses the pipeline for
    ``pause_duration`` seconds, after which it resumes at the lowest tier.
    """

    def __init__(self, config: GovernorConfig, sampler: SystemSampler | None = None,
                 clock: Callable[[], float] = time.monotonic):
        self._cfg = config
        self._sampler = sampler
        self._clock = clock
        self._lock = threading.Lock()
        self._state = PerformanceState()
        self._last_eval = float("-inf")
        self._running = False
        self._thread: threading.Thread | None = None

    def snapshot(self) -> PerformanceState:
        with self._lock:
            return replace(self._state)

    def is_paused(self, now: float | None = None) -> bool:
        now = self._clock() if now is None else now
        with self._lock:
            return now < self._state.paused_until

    def update(self, thermal: ThermalLevel | None = None,
               memory_mb: float | None = None,
               now: float | None = None) -> PerformanceState:
        """Feed new signals and re-evaluate if the cooldown allows.

        Returns the resulting state snapshot.
        """
        now = self._clock() if now is None else now
        with self._lock:
            if thermal is not None:
                if thermal != self._state.thermal_level:
                    logger.info("Thermal state %s -> %s",
                                self._state.thermal_level.value, thermal.value)
                self._state.thermal_level = thermal
            if memory_mb is not None:
                self._apply_memory(memory_mb)
            self._evaluate(now)
            return replace(self._state)

    def report_thermal(self, level: ThermalLevel, now: float | None = None) -> PerformanceState:
        return self.update(thermal=level, now=now)

    def report_memory(self, memory_mb: float, now: float | None = None) -> PerformanceState:
        return self.update(memory_mb=memory_mb, now=now)

    def start(self) -> None:
        """Start background sampling of system signals."""
        if self._running or self._sampler is None:
            return
        self._running = True
        self._thread = threading.Thread(target=self._monitor_loop, daemon=True)
        self._thread.start()
        logger.info("Resource governor started")

    def stop(self) -> None:
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
        logger.info("Resource governor stopped")

    def _apply_memory(self, memory_mb: float) -> None:
        # Hysteresis band between the low and high water marks
        state = self._state
        if memory_mb > self._cfg.memory_high_mb:
            state.memory_pressure = min(self._cfg.max_memory_pressure,
                                        state.memory_pressure + 1)
        elif memory_mb < self._cfg.memory_low_mb:
            state.memory_pressure = max(0, state.memory_pressure - 1)

    def _evaluate(self, now: float) -> None:
        state = self._state
        if state.thermal_level == ThermalLevel.CRITICAL:
            if now >= state.paused_until:
                state.paused_until = now + self._cfg.pause_duration
                logger.warning("Critical thermal state, pausing for %.1fs",
                               self._cfg.pause_duration)
                self._set_tier(LOWEST_TIER)
                # Cooldown restarts when the pause ends
                self._last_eval = state.paused_until
            return

        if now < state.paused_until or now - self._last_eval < self._cfg.cooldown:
            return
        self._last_eval = now
        self._set_tier(select_tier(state.thermal_level, state.memory_pressure))

    def _set_tier(self, tier: int) -> None:
        fps, skip = TIERS[tier]
        state = self._state
        if (fps, skip) != (state.frame_rate_target, state.frame_skip_pattern):
            logger.info("Throughput target %d fps, processing every %d frame(s) "
                        "(thermal=%s, memory pressure=%d)", fps, skip,
                        state.thermal_level.value, state.memory_pressure)
        state.frame_rate_target = fps
        state.frame_skip_pattern = skip

    def _monitor_loop(self) -> None:
        while self._running:
            try:
                self.update(thermal=self._sampler.thermal_level(),
                            memory_mb=self._sampler.memory_mb())
            except Exception:
                logger.exception("Error sampling system signals")
            time.sleep(self._cfg.sample_interval)
