"""Pipeline orchestrator: gate → preprocess → infer → decode → post-process → sinks."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

import numpy as np

from src.capture.stream import FrameSource
from src.config import AppConfig, normalize_filter_mode
from src.models import Detection, FrameResult
from src.monitoring.governor import TIERS, ResourceGovernor
from src.monitoring.system import SystemSampler
from src.processing.decoder import Decoder
from src.processing.gate import FrameGate
from src.processing.inference import InferenceInvoker
from src.processing.labels import load_labels
from src.processing.postprocess import PostProcessor
from src.processing.preprocessor import Preprocessor

logger = logging.getLogger(__name__)

ResultListener = Callable[[FrameResult], None]


class Pipeline:
    """Runs detection on live frames with single-flight backpressure.

    ``submit()`` returns a future for admitted frames and None for dropped
    ones. Registered listeners receive every ``FrameResult`` in admission
    order.
    """

    def __init__(self, config: AppConfig, invoker: InferenceInvoker | None = None,
                 governor: ResourceGovernor | None = None,
                 clock: Callable[[], float] = time.monotonic):
        self._config = config
        self._clock = clock
        self._running = False

        # Components
        self._governor = governor or ResourceGovernor(
            config.governor, SystemSampler(config.governor))
        self._invoker = invoker or InferenceInvoker(config.inference)
        labels = self._invoker.labels or load_labels(
            config.inference.labels_path, config.inference.num_classes)
        self._gate = FrameGate(self._governor, clock)
        self._preprocessor = Preprocessor(config.preprocess)
        self._decoder = Decoder(config.decoder, config.tracking, labels)
        self._postprocessor = PostProcessor(config.postprocess, config.tracking.grid_size)
        self._source: FrameSource | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

        # User-facing detection settings
        self._settings_lock = threading.Lock()
        self._filter_mode = config.decoder.filter_mode
        self._confidence_threshold = config.decoder.confidence_threshold

        # Result subscribers
        self._listeners: list[ResultListener] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._last_result: FrameResult | None = None

        # Stats, touched only by the inference worker
        self._processed = 0
        self._frame_times: deque[float] = deque(maxlen=30)
        self._fps_actual = 0.0
        self._latency_ms = 0.0
        self._degraded_count = 0
        self._resets = 0

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def gate(self) -> FrameGate:
        return self._gate

    @property
    def governor(self) -> ResourceGovernor:
        return self._governor

    @property
    def decoder(self) -> Decoder:
        return self._decoder

    @property
    def postprocessor(self) -> PostProcessor:
        return self._postprocessor

    @property
    def processed_frames(self) -> int:
        return self._processed

    @property
    def last_result(self) -> FrameResult | None:
        return self._last_result

    @property
    def settings(self) -> dict[str, Any]:
        with self._settings_lock:
            return {
                "filter_mode": self._filter_mode,
                "confidence_threshold": self._confidence_threshold,
            }

    @property
    def stats(self) -> dict[str, Any]:
        state = self._governor.snapshot()
        return {
            "fps": round(self._fps_actual, 1),
            "latency_ms": round(self._latency_ms, 1),
            "frames_seen": self._gate.frames_seen,
            "frames_dropped": self._gate.dropped,
            "frames_processed": self._processed,
            "resets": self._resets,
            "tracked": len(self._decoder.tracker),
            "history": len(self._postprocessor.history),
            "thermal": state.thermal_level.value,
            "memory_pressure": state.memory_pressure,
            "frame_rate_target": state.frame_rate_target,
            "frame_skip_pattern": state.frame_skip_pattern,
            "paused": self._governor.is_paused(),
            "connected": self._source.is_connected if self._source else False,
        }

    def set_event_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Set the asyncio event loop for thread-safe listener delivery."""
        self._loop = loop

    def add_result_listener(self, listener: ResultListener) -> None:
        self._listeners.append(listener)

    def update_detection_settings(self, filter_mode: str | None = None,
                                  confidence_threshold: float | None = None) -> dict[str, Any]:
        """Change the class filter and confidence multiplier at runtime."""
        with self._settings_lock:
            if filter_mode is not None:
                self._filter_mode = normalize_filter_mode(filter_mode)
            if confidence_threshold is not None:
                self._confidence_threshold = max(0.0, float(confidence_threshold))
        logger.info("Detection settings updated: %s", self.settings)
        return self.settings

    def start(self) -> None:
        """Start the inference worker, governor sampling and frame capture."""
        if self._running:
            return
        self._running = True
        self._ensure_executor()
        self._governor.start()
        self._source = FrameSource(
            self._config.capture.source,
            on_frame=self._on_frame,
            reconnect_delay=self._config.capture.reconnect_delay,
            grab_timeout=self._config.capture.grab_timeout,
        )
        self._source.start()
        logger.info("Pipeline started")

    def stop(self) -> None:
        self._running = False
        if self._source is not None:
            self._source.stop()
        self._governor.stop()
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None
        logger.info("Pipeline stopped")

    def submit(self, frame: np.ndarray, is_portrait: bool | None = None,
               min_interval: float = 0.0) -> Future | None:
        """Offer a frame; returns a future for its result or None if dropped."""
        if not self._gate.admit(frame, min_interval):
            return None
        if is_portrait is None:
            is_portrait = self._config.capture.portrait
        try:
            future = self._ensure_executor().submit(self._run_frame, frame, is_portrait)
        except RuntimeError:
            self._gate.release()
            logger.warning("Inference worker unavailable, frame dropped")
            return None
        future.add_done_callback(self._deliver)
        return future

    def process(self, frame: np.ndarray, is_portrait: bool = False) -> list[Detection]:
        """Run one frame through every stage synchronously."""
        prepared = self._preprocessor.prepare(frame, is_portrait)
        if prepared is None:
            return []
        tensor, letterbox = prepared

        raw = self._invoker.invoke(tensor)

        height, width = frame.shape[:2]
        with self._settings_lock:
            filter_mode = self._filter_mode
            threshold = self._confidence_threshold
        candidates = self._decoder.decode(raw, (width, height), letterbox,
                                          filter_mode, threshold)
        return self._postprocessor.process(candidates)

    def clear_history(self) -> None:
        """Drop detection history and scratch buffers."""
        self._postprocessor.reset()
        self._decoder.tracker.clear()
        self._preprocessor.reset()

    def full_reset(self) -> None:
        """Reset every stateful stage, including the inference session."""
        self.clear_history()
        self._decoder.reset()
        try:
            self._invoker.reset()
        except Exception:
            logger.exception("Inference reset failed")
        self._resets += 1

    def _ensure_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1,
                                                    thread_name_prefix="inference")
            return self._executor

    def _on_frame(self, frame: np.ndarray, frame_number: int) -> Future | None:
        """Capture-thread callback; the gate applies the governor's tier."""
        target = self._governor.snapshot().frame_rate_target
        return self.submit(frame, min_interval=1.0 / target if target > 0 else 0.0)

    def _run_frame(self, frame: np.ndarray, is_portrait: bool) -> FrameResult:
        """Worker body; the in-flight flag is released on every path."""
        started = time.perf_counter()
        try:
            try:
                detections = self.process(frame, is_portrait)
            except Exception:
                logger.exception("Frame processing failed")
                detections = []
            return self._finish_frame(detections, started)
        finally:
            self._gate.release()

    def _finish_frame(self, detections: list[Detection], started: float) -> FrameResult:
        self._processed += 1
        now = self._clock()
        self._latency_ms = (time.perf_counter() - started) * 1000.0

        result = FrameResult(
            frame_index=self._processed,
            detections=detections,
            latency_ms=self._latency_ms,
            timestamp=time.time(),
        )
        self._last_result = result

        self._frame_times.append(now)
        if len(self._frame_times) > 1:
            span = self._frame_times[-1] - self._frame_times[0]
            self._fps_actual = (len(self._frame_times) - 1) / max(span, 0.001)

        self._check_degraded()
        self._periodic_reset()
        return result

    def _check_degraded(self) -> None:
        rt = self._config.runtime
        state = self._governor.snapshot()
        if (state.frame_rate_target, state.frame_skip_pattern) != TIERS[0]:
            # Low throughput is expected while the governor is throttling
            self._degraded_count = 0
            return
        if self._processed > rt.degraded_warmup and self._fps_actual < rt.degraded_fps:
            self._degraded_count += 1
            if self._degraded_count > rt.degraded_limit:
                logger.warning("Throughput degraded (%.1f fps), forcing reset",
                               self._fps_actual)
                self.full_reset()
                self._degraded_count = 0
        else:
            self._degraded_count = max(0, self._degraded_count - 1)

    def _periodic_reset(self) -> None:
        rt = self._config.runtime
        if self._processed % rt.full_reset_interval == 0:
            logger.info("Periodic full reset at frame %d", self._processed)
            self.full_reset()
        elif self._processed % rt.history_reset_interval == 0:
            logger.info("Periodic history reset at frame %d", self._processed)
            self.clear_history()

    def _deliver(self, future: Future) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        result = future.result()
        for listener in self._listeners:
            try:
                if self._loop is not None:
                    self._loop.call_soon_threadsafe(listener, result)
                else:
                    listener(result)
            except Exception:
                logger.exception("Error in result listener")
