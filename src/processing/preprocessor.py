"""Frame preprocessing: orientation fix, letterbox resize, tensor layout."""

from __future__ import annotations

import logging

import cv2
import numpy as np

from src.config import PreprocessConfig
from src.models import LetterboxInfo
from src.monitoring.system import TIER_INPUT_SIZES, performance_tier

logger = logging.getLogger(__name__)


def needs_rotation(width: int, height: int, is_portrait: bool) -> bool:
    """True when the frame's long axis disagrees with the device orientation."""
    return (is_portrait and width > height) or (not is_portrait and height > width)


def resolve_input_size(value: int | str) -> int:
    """Network input side; ``"auto"`` picks 352/512/640 from the device class."""
    if str(value).strip().lower() == "auto":
        tier = performance_tier()
        size = TIER_INPUT_SIZES[tier]
        logger.info("Input size %d for %s performance tier", size, tier)
        return size
    return int(value)


def letterbox_params(width: int, height: int, input_size: int) -> tuple[float, int, int]:
    """Scale and symmetric padding that fit ``width x height`` into a square."""
    scale = min(input_size / width, input_size / height)
    scaled_w = int(width * scale)
    scaled_h = int(height * scale)
    pad_x = (input_size - scaled_w) // 2
    pad_y = (input_size - scaled_h) // 2
    return scale, pad_x, pad_y


class Preprocessor:
    """Prepares BGR frames for the detector: rotate → letterbox → RGB CHW float."""

    def __init__(self, config: PreprocessConfig):
        self._size = resolve_input_size(config.input_size)
        self._min_dim = config.min_source_dim
        self._pad_value = config.pad_value
        self._canvas: np.ndarray | None = None

    @property
    def input_size(self) -> int:
        return self._size

    def prepare(self, image: np.ndarray,
                is_portrait: bool = False) -> tuple[np.ndarray, LetterboxInfo] | None:
        """Letterbox a frame into the network input.

        Returns ``(tensor, letterbox)`` with a ``1x3xSxS`` float32 tensor, or
        None when the frame is below the minimum size.
        """
        if image is None or image.ndim < 2:
            return None
        height, width = image.shape[:2]
        if width <= self._min_dim or height <= self._min_dim:
            logger.debug("Frame %dx%d not above minimum size, skipped", width, height)
            return None

        rotated = needs_rotation(width, height, is_portrait)
        if rotated:
            image = cv2.rotate(image, cv2.ROTATE_90_CLOCKWISE)
            width, height = height, width

        scale, pad_x, pad_y = letterbox_params(width, height, self._size)
        new_w, new_h = int(width * scale), int(height * scale)
        resized = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LINEAR)
        if resized.ndim == 2:
            resized = cv2.cvtColor(resized, cv2.COLOR_GRAY2BGR)

        canvas = self._get_canvas()
        canvas[pad_y:pad_y + new_h, pad_x:pad_x + new_w] = resized[:, :, :3]

        rgb = cv2.cvtColor(canvas, cv2.COLOR_BGR2RGB)
        tensor = rgb.astype(np.float32) / 255.0
        tensor = np.ascontiguousarray(tensor.transpose(2, 0, 1)[np.newaxis, ...])

        info = LetterboxInfo(
            scale=scale,
            pad_x=pad_x,
            pad_y=pad_y,
            was_rotated=rotated,
            input_size=self._size,
        )
        return tensor, info

    def reset(self) -> None:
        """Drop the reusable canvas."""
        self._canvas = None

    def _get_canvas(self) -> np.ndarray:
        """Return the padded canvas, reused across frames and cleared each time."""
        if self._canvas is None:
            self._canvas = np.empty((self._size, self._size, 3), dtype=np.uint8)
        self._canvas.fill(self._pad_value)
        return self._canvas
