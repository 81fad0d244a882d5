"""Raw YOLO output decoding: context discovery, calibrated thresholds, geometry."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from src.config import DecoderConfig, TrackingConfig, normalize_filter_mode
from src.models import ContextObject, Detection, LetterboxInfo, Rect
from src.processing import labels as tables
from src.processing.tracker import DetectionTracker

logger = logging.getLogger(__name__)


@dataclass
class _ClassTables:
    """Per-class lookup vectors, indexed by class index."""
    names: list[str]
    base_threshold: np.ndarray
    priority: np.ndarray
    generic: np.ndarray
    body: np.ndarray
    context: np.ndarray
    co_occurs: dict[int, np.ndarray]
    filters: dict[str, np.ndarray]


class Decoder:
    """Turns the raw ``(4 + C, A)`` network output into normalized detections.

    Pass 1 finds high-confidence context objects (e.g. a plate). Pass 2
    accepts anchors against a per-class threshold that is relaxed for
    priority classes and for classes that co-occur with a context object,
    maps boxes back to the source frame and smooths scores over time.
    """

    def __init__(self, config: DecoderConfig, tracking: TrackingConfig,
                 labels: list[str]):
        self._cfg = config
        self._labels = list(labels)
        self._tracker = DetectionTracker(tracking)
        self._frame_number = 0
        self._tables: _ClassTables | None = None
        self._last_context: list[ContextObject] = []

    @property
    def tracker(self) -> DetectionTracker:
        return self._tracker

    @property
    def frame_number(self) -> int:
        return self._frame_number

    @property
    def last_context(self) -> list[ContextObject]:
        """Context objects found in the most recent frame."""
        return list(self._last_context)

    def reset(self) -> None:
        self._tracker.clear()
        self._last_context = []

    def decode(self, raw_output: np.ndarray, original_size: tuple[int, int],
               letterbox: LetterboxInfo, filter_mode: str | None = None,
               confidence_threshold: float | None = None) -> list[Detection]:
        """Decode one frame.

        ``original_size`` is the ``(width, height)`` of the source frame
        before any orientation fix.
        """
        raw = np.asarray(raw_output, dtype=np.float32)
        if raw.ndim == 3:
            raw = raw[0]
        if raw.ndim != 2 or raw.shape[0] < 5 or raw.shape[1] == 0:
            logger.warning("Unexpected raw output shape %s", raw.shape)
            return []

        if filter_mode is None:
            filter_mode = self._cfg.filter_mode
        if confidence_threshold is None:
            confidence_threshold = self._cfg.confidence_threshold

        self._frame_number += 1
        try:
            return self._decode(raw, original_size, letterbox,
                                normalize_filter_mode(filter_mode),
                                float(confidence_threshold))
        finally:
            self._tracker.end_frame(self._frame_number)

    def _decode(self, raw: np.ndarray, original_size: tuple[int, int],
                letterbox: LetterboxInfo, filter_mode: str,
                confidence_threshold: float) -> list[Detection]:
        num_classes = raw.shape[0] - 4
        num_anchors = raw.shape[1]
        ct = self._class_tables(num_classes)

        scores = raw[4:]
        best = np.argmax(scores, axis=0)   # first index wins on ties
        max_scores = scores[best, np.arange(num_anchors)]

        cx, cy, bw, bh = raw[0], raw[1], raw[2], raw[3]
        side = letterbox.input_size
        inside = ((cx >= letterbox.pad_x) & (cx <= side - letterbox.pad_x)
                  & (cy >= letterbox.pad_y) & (cy <= side - letterbox.pad_y))

        # Pass 1: context discovery
        contexts = self._find_context(ct, best, max_scores, inside)
        self._last_context = contexts

        # Pass 2: calibrated acceptance
        thresholds = self._class_thresholds(ct, contexts, confidence_threshold)
        accepted = (inside
                    & (max_scores > 0)
                    & (max_scores > thresholds[best])
                    & ct.filters[filter_mode][best])
        if self._cfg.exclude_generic:
            accepted &= ~ct.generic[best]

        idx = np.flatnonzero(accepted)
        if idx.size == 0:
            return []
        # Strongest anchors first so the candidate cap keeps them
        idx = idx[np.argsort(-max_scores[idx], kind="stable")]

        rects = self._to_normalized(cx[idx], cy[idx], bw[idx], bh[idx],
                                    original_size, letterbox)

        detections: list[Detection] = []
        for j, anchor in enumerate(idx):
            rect = self._validate(rects[j], ct.body[best[anchor]])
            if rect is None:
                continue
            cls = int(best[anchor])
            name = ct.names[cls]
            score = self._tracker.smooth(cls, name, rect, float(max_scores[anchor]),
                                         self._frame_number)
            detections.append(Detection(
                class_index=cls,
                class_name=name,
                score=min(1.0, score),
                rect=rect,
            ))
            if len(detections) >= self._cfg.max_candidates:
                break

        return detections

    def _find_context(self, ct: _ClassTables, best: np.ndarray,
                      max_scores: np.ndarray, inside: np.ndarray) -> list[ContextObject]:
        hits = np.flatnonzero(inside & (max_scores > self._cfg.context_score)
                              & ct.context[best])
        found: dict[int, ContextObject] = {}
        for anchor in hits:
            cls = int(best[anchor])
            if cls not in found:
                found[cls] = ContextObject(cls, ct.names[cls], float(max_scores[anchor]))
        return list(found.values())

    def _class_thresholds(self, ct: _ClassTables, contexts: list[ContextObject],
                          confidence_threshold: float) -> np.ndarray:
        thresholds = ct.base_threshold * confidence_threshold
        thresholds = np.where(ct.priority, thresholds * self._cfg.priority_discount,
                              thresholds)
        if contexts:
            paired = np.zeros_like(ct.priority)
            for ctx in contexts:
                paired |= ct.co_occurs[ctx.class_index]
            # Applied once per class even when several context objects pair with it
            thresholds = np.where(paired, thresholds * self._cfg.context_discount,
                                  thresholds)
        return thresholds

    def _to_normalized(self, cx: np.ndarray, cy: np.ndarray, bw: np.ndarray,
                       bh: np.ndarray, original_size: tuple[int, int],
                       letterbox: LetterboxInfo) -> np.ndarray:
        """Map network-space boxes to ``(x, y, w, h)`` rows in the source frame."""
        width, height = float(original_size[0]), float(original_size[1])
        scale = letterbox.scale

        ow = bw / scale
        oh = bh / scale
        ox = (cx - letterbox.pad_x) / scale - ow / 2
        oy = (cy - letterbox.pad_y) / scale - oh / 2

        if letterbox.was_rotated:
            # The network saw the frame rotated 90° clockwise (width' = height)
            nx = oy / width
            ny = 1.0 - (ox + ow) / height
            nw = oh / width
            nh = ow / height
        else:
            nx = ox / width
            ny = oy / height
            nw = ow / width
            nh = oh / height

        return np.stack([nx, ny, nw, nh], axis=1)

    def _validate(self, row: np.ndarray, is_body: bool) -> Rect | None:
        nx, ny, nw, nh = (float(v) for v in row)
        tol = self._cfg.bounds_tolerance
        if nx < -tol or ny < -tol or nx + nw > 1 + tol or ny + nh > 1 + tol:
            return None

        x1 = min(1.0, max(0.0, nx))
        y1 = min(1.0, max(0.0, ny))
        x2 = min(1.0, max(0.0, nx + nw))
        y2 = min(1.0, max(0.0, ny + nh))
        w, h = x2 - x1, y2 - y1

        min_size = self._cfg.min_box_size
        if w < min_size or h < min_size:
            return None
        area = w * h
        if area > self._cfg.max_box_area:
            return None
        if is_body and area > self._cfg.max_body_area:
            return None
        return Rect(x1, y1, w, h)

    def _class_tables(self, num_classes: int) -> _ClassTables:
        if self._tables is not None and len(self._tables.names) == num_classes:
            return self._tables

        if len(self._labels) != num_classes:
            logger.warning("Model reports %d classes but %d labels are loaded",
                           num_classes, len(self._labels))
        names = [
            self._labels[i] if i < len(self._labels) else f"Class_{i}"
            for i in range(num_classes)
        ]
        lower = [n.lower() for n in names]

        base = np.full(num_classes, self._cfg.default_threshold, dtype=np.float32)
        for i, name in enumerate(lower):
            if name in tables.ULTRA_SMALL_OBJECTS:
                base[i] = self._cfg.ultra_small_threshold
            elif name in tables.SMALL_OBJECTS:
                base[i] = self._cfg.small_threshold
            elif name == "person":
                base[i] = self._cfg.person_threshold

        def mask(members) -> np.ndarray:
            return np.array([n in members for n in lower], dtype=bool)

        co_occurs = {
            i: mask(tables.CO_OCCURRENCE[name])
            for i, name in enumerate(lower) if name in tables.CO_OCCURRENCE
        }
        filters = {"all": np.ones(num_classes, dtype=bool)}
        for mode in ("indoor", "outdoor"):
            filters[mode] = mask(tables.allowed_classes(mode))

        self._tables = _ClassTables(
            names=names,
            base_threshold=base,
            priority=mask(tables.PRIORITY_CLASSES),
            generic=mask(tables.GENERIC_CLASSES),
            body=mask(tables.BODY_CLASSES),
            context=mask(tables.CO_OCCURRENCE),
            co_occurs=co_occurs,
            filters=filters,
        )
        return self._tables
