"""ONNX Runtime wrapper around the opaque detection network."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import onnxruntime as ort

from src.config import InferenceConfig
from src.processing.labels import labels_from_metadata, load_labels

logger = logging.getLogger(__name__)


class InferenceError(RuntimeError):
    """Raised when the model cannot be loaded or a forward pass fails."""


class InferenceInvoker:
    """Runs a ``1x3xSxS`` tensor through the network.

    Output is the raw ``(4 + num_classes, num_anchors)`` score/box matrix
    with the batch axis removed.
    """

    def __init__(self, config: InferenceConfig):
        self._cfg = config
        self._session: ort.InferenceSession | None = None
        self._input_name = ""
        self._output_name = ""
        self._labels: list[str] = []
        self._load()

    @property
    def labels(self) -> list[str]:
        return self._labels

    @property
    def input_size(self) -> int:
        """Square input side reported by the model, 640 when dynamic."""
        shape = self._session.get_inputs()[0].shape if self._session else None
        if shape and len(shape) >= 4 and isinstance(shape[-1], int):
            return shape[-1]
        return 640

    def invoke(self, tensor: np.ndarray) -> np.ndarray:
        if self._session is None:
            raise InferenceError("Model session is not loaded")
        try:
            outputs = self._session.run([self._output_name], {self._input_name: tensor})
        except Exception as exc:
            raise InferenceError(f"Inference failed: {exc}") from exc

        raw = np.asarray(outputs[0], dtype=np.float32)
        if raw.ndim == 3:
            raw = raw[0]
        if raw.ndim != 2:
            raise InferenceError(f"Unexpected output shape {raw.shape}")
        return raw

    def reset(self) -> None:
        """Recreate the runtime session.

        The current session stays in service if the reload fails.
        """
        logger.info("Reloading inference session")
        self._load()

    def _load(self) -> None:
        model_path = Path(self._cfg.model_path)
        if not model_path.exists():
            raise InferenceError(f"Model not found: {model_path}")

        try:
            session = ort.InferenceSession(str(model_path), providers=self._cfg.providers)
        except Exception as exc:
            raise InferenceError(f"Failed to load model {model_path}: {exc}") from exc

        self._session = session
        self._input_name = session.get_inputs()[0].name
        self._output_name = session.get_outputs()[0].name
        logger.info("Model loaded: %s (provider %s)", model_path,
                    session.get_providers()[0])

        if not self._labels:
            meta = session.get_modelmeta().custom_metadata_map
            labels = None if self._cfg.labels_path else labels_from_metadata(meta.get("names"))
            self._labels = labels or load_labels(self._cfg.labels_path, self._cfg.num_classes)
