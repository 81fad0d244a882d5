"""Shared data models for the detection pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ThermalLevel(str, Enum):
    NOMINAL = "nominal"
    FAIR = "fair"
    SERIOUS = "serious"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Rect:
    """Normalized axis-aligned box, (x, y) is the top-left corner."""
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    def iou(self, other: Rect) -> float:
        """Intersection-over-union with another box (0.0 when disjoint)."""
        ix1 = max(self.x, other.x)
        iy1 = max(self.y, other.y)
        ix2 = min(self.x + self.width, other.x + other.width)
        iy2 = min(self.y + self.height, other.y + other.height)
        if ix2 <= ix1 or iy2 <= iy1:
            return 0.0
        inter = (ix2 - ix1) * (iy2 - iy1)
        union = self.area + other.area - inter
        if union <= 0:
            return 0.0
        return inter / union


@dataclass(frozen=True)
class LetterboxInfo:
    """Geometry needed to map network-input boxes back to the source frame."""
    scale: float
    pad_x: float
    pad_y: float
    was_rotated: bool = False
    input_size: int = 640


@dataclass
class Detection:
    """One recognized object instance in one frame."""
    class_index: int
    class_name: str
    score: float              # smoothed confidence in (0, 1]
    rect: Rect

    def to_dict(self) -> dict:
        return {
            "class_index": self.class_index,
            "class_name": self.class_name,
            "score": round(self.score, 4),
            "rect": {
                "x": round(self.rect.x, 4),
                "y": round(self.rect.y, 4),
                "width": round(self.rect.width, 4),
                "height": round(self.rect.height, 4),
            },
        }


@dataclass
class TrackedDetection:
    """Short-lived temporal anchor used to damp score flicker."""
    track_id: int
    class_name: str
    rect: Rect
    smoothed_score: float
    last_seen_frame: int


@dataclass(frozen=True)
class ContextObject:
    """High-confidence detection that relaxes thresholds for co-occurring classes."""
    class_index: int
    class_name: str
    score: float


@dataclass
class PerformanceState:
    """Throughput targets owned by the resource governor."""
    thermal_level: ThermalLevel = ThermalLevel.NOMINAL
    memory_pressure: int = 0
    frame_rate_target: int = 30
    frame_skip_pattern: int = 1
    paused_until: float = 0.0


@dataclass
class FrameResult:
    """Detections for one admitted frame, handed to result consumers."""
    frame_index: int
    detections: list[Detection] = field(default_factory=list)
    latency_ms: float = 0.0
    timestamp: float = 0.0

    def to_dict(self) -> dict:
        return {
            "type": "detections",
            "frame_index": self.frame_index,
            "latency_ms": round(self.latency_ms, 1),
            "timestamp": self.timestamp,
            "detections": [d.to_dict() for d in self.detections],
        }
