"""Bucketed score smoothing that keeps detections stable across frames."""

from __future__ import annotations

from collections import OrderedDict

from src.config import TrackingConfig
from src.models import Rect, TrackedDetection

BucketKey = tuple[int, int, int]


class DetectionTracker:
    """Blends each detection's score with the last one seen in the same bucket.

    Buckets are coarse: class index plus the box center quantized onto a
    ``grid_size x grid_size`` grid, so two instances of a class in the same
    cell share one entry.
    """

    def __init__(self, config: TrackingConfig):
        self._grid = config.grid_size
        self._history_weight = config.history_weight
        self._max_age = config.max_age
        self._cleanup_interval = config.cleanup_interval

        self._next_id = 0
        self._tracks: OrderedDict[BucketKey, TrackedDetection] = OrderedDict()

    @property
    def tracks(self) -> dict[BucketKey, TrackedDetection]:
        return dict(self._tracks)

    def __len__(self) -> int:
        return len(self._tracks)

    def bucket(self, class_index: int, rect: Rect) -> BucketKey:
        cx, cy = rect.center
        last = self._grid - 1
        qx = min(last, max(0, int(cx * self._grid)))
        qy = min(last, max(0, int(cy * self._grid)))
        return class_index, qx, qy

    def smooth(self, class_index: int, class_name: str, rect: Rect,
               score: float, frame_number: int) -> float:
        """Record a sighting and return the smoothed score to emit."""
        key = self.bucket(class_index, rect)
        track = self._tracks.get(key)
        if track is None:
            self._register(key, class_name, rect, score, frame_number)
            return score

        new_weight = 1.0 - self._history_weight
        track.smoothed_score = (self._history_weight * track.smoothed_score
                                + new_weight * score)
        track.rect = rect
        track.last_seen_frame = frame_number
        return track.smoothed_score

    def end_frame(self, frame_number: int) -> None:
        """Purge stale entries on the cleanup cadence."""
        if frame_number % self._cleanup_interval == 0:
            self.purge(frame_number)

    def purge(self, frame_number: int) -> int:
        stale = [
            key for key, track in self._tracks.items()
            if frame_number - track.last_seen_frame > self._max_age
        ]
        for key in stale:
            del self._tracks[key]
        return len(stale)

    def clear(self) -> None:
        self._tracks.clear()

    def _register(self, key: BucketKey, class_name: str, rect: Rect,
                  score: float, frame_number: int) -> None:
        self._tracks[key] = TrackedDetection(
            track_id=self._next_id,
            class_name=class_name,
            rect=rect,
            smoothed_score=score,
            last_seen_frame=frame_number,
        )
        self._next_id += 1
