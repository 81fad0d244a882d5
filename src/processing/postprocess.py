"""Detection clean-up: dedup → NMS → conflicts → history → per-class caps."""

from __future__ import annotations

import threading
from collections import defaultdict

from src.config import PostprocessConfig
from src.models import Detection
from src.processing.labels import MULTI_INSTANCE_CLASSES, is_conflicting


def _by_score(detections: list[Detection]) -> list[Detection]:
    return sorted(detections, key=lambda d: d.score, reverse=True)


def deduplicate(detections: list[Detection], iou_threshold: float) -> list[Detection]:
    """Drop near-identical boxes regardless of class, keeping the stronger one."""
    kept: list[Detection] = []
    for det in _by_score(detections):
        if all(det.rect.iou(k.rect) <= iou_threshold for k in kept):
            kept.append(det)
    return kept


def non_max_suppression(detections: list[Detection], iou_threshold: float) -> list[Detection]:
    """Greedy same-class suppression."""
    kept: list[Detection] = []
    for det in _by_score(detections):
        suppressed = any(
            k.class_name == det.class_name and det.rect.iou(k.rect) > iou_threshold
            for k in kept
        )
        if not suppressed:
            kept.append(det)
    return kept


def resolve_conflicts(detections: list[Detection], iou_threshold: float) -> list[Detection]:
    """Keep only the higher-scoring box of overlapping mutually exclusive classes."""
    kept: list[Detection] = []
    for det in _by_score(detections):
        clash = any(
            is_conflicting(k.class_name, det.class_name)
            and det.rect.iou(k.rect) > iou_threshold
            for k in kept
        )
        if not clash:
            kept.append(det)
    return kept


def cap_per_class(detections: list[Detection], multi_cap: int,
                  default_cap: int) -> list[Detection]:
    """Limit instances per class, allowing more for commonly repeated classes."""
    groups: dict[str, list[Detection]] = defaultdict(list)
    for det in _by_score(detections):
        groups[det.class_name].append(det)

    capped: list[Detection] = []
    for name, group in groups.items():
        limit = multi_cap if name.lower() in MULTI_INSTANCE_CLASSES else default_cap
        capped.extend(group[:limit])
    return _by_score(capped)


class DetectionHistory:
    """Rolling per-location detection frequency, decayed every frame."""

    def __init__(self, grid_size: int = 10, decay: float = 0.9, floor: float = 0.05):
        self._grid = grid_size
        self._decay = decay
        self._floor = floor
        self._counts: dict[tuple[str, int, int], float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._counts)

    def snapshot(self) -> dict[tuple[str, int, int], float]:
        with self._lock:
            return dict(self._counts)

    def update(self, detections: list[Detection]) -> None:
        with self._lock:
            for key in list(self._counts):
                value = self._counts[key] * self._decay
                if value < self._floor:
                    del self._counts[key]
                else:
                    self._counts[key] = value
            for det in detections:
                key = self._key(det)
                self._counts[key] = self._counts.get(key, 0.0) + 1.0

    def frequency(self, detection: Detection) -> float:
        with self._lock:
            return self._counts.get(self._key(detection), 0.0)

    def clear(self) -> None:
        with self._lock:
            self._counts.clear()

    def _key(self, det: Detection) -> tuple[str, int, int]:
        cx, cy = det.rect.center
        last = self._grid - 1
        return (det.class_name,
                min(last, max(0, int(cx * self._grid))),
                min(last, max(0, int(cy * self._grid))))


class PostProcessor:
    """Fixed post-processing chain applied to each frame's decoded candidates."""

    def __init__(self, config: PostprocessConfig, grid_size: int = 10):
        self._cfg = config
        self._history = DetectionHistory(grid_size, config.history_decay,
                                         config.history_min)

    @property
    def history(self) -> DetectionHistory:
        return self._history

    def process(self, detections: list[Detection]) -> list[Detection]:
        cfg = self._cfg
        result = deduplicate(detections, cfg.dedup_iou)
        result = non_max_suppression(result, cfg.nms_iou)
        result = resolve_conflicts(result, cfg.conflict_iou)
        self._history.update(result)
        result = cap_per_class(result, cfg.multi_instance_cap, cfg.default_instance_cap)
        return result[:cfg.max_detections]

    def reset(self) -> None:
        self._history.clear()
