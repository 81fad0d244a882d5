"""YAML configuration loader with dataclass mapping."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

FILTER_MODES = ("all", "indoor", "outdoor")


@dataclass
class CaptureConfig:
    source: str = "0"             # webcam index, RTSP URL or video file
    portrait: bool = False
    reconnect_delay: float = 5.0
    grab_timeout: float = 10.0


@dataclass
class PreprocessConfig:
    input_size: int | str = 640   # or "auto" for a device-tier size
    min_source_dim: int = 100     # both sides must exceed this
    pad_value: int = 0


@dataclass
class InferenceConfig:
    model_path: str = "models/yolov8n-oiv7.onnx"
    labels_path: str | None = None
    num_classes: int = 601
    providers: list[str] = field(default_factory=lambda: ["CPUExecutionProvider"])


@dataclass
class DecoderConfig:
    filter_mode: str = "all"
    confidence_threshold: float = 1.0
    default_threshold: float = 0.05
    small_threshold: float = 0.025
    ultra_small_threshold: float = 0.01
    person_threshold: float = 0.10
    context_score: float = 0.5
    priority_discount: float = 0.7
    context_discount: float = 0.6
    max_candidates: int = 150
    min_box_size: float = 0.005
    max_box_area: float = 0.85
    max_body_area: float = 0.3
    bounds_tolerance: float = 0.1
    exclude_generic: bool = True


@dataclass
class TrackingConfig:
    grid_size: int = 10
    history_weight: float = 0.8
    max_age: int = 15
    cleanup_interval: int = 30


@dataclass
class PostprocessConfig:
    dedup_iou: float = 0.90
    nms_iou: float = 0.45
    conflict_iou: float = 0.8
    multi_instance_cap: int = 3
    default_instance_cap: int = 2
    max_detections: int = 40
    history_decay: float = 0.9
    history_min: float = 0.05


@dataclass
class GovernorConfig:
    cooldown: float = 3.0
    pause_duration: float = 3.0
    sample_interval: float = 1.0
    memory_high_mb: float = 450.0
    memory_low_mb: float = 350.0
    max_memory_pressure: int = 8
    temp_fair: float = 60.0
    temp_serious: float = 75.0
    temp_critical: float = 90.0


@dataclass
class RuntimeConfig:
    history_reset_interval: int = 500
    full_reset_interval: int = 600
    degraded_fps: float = 10.0
    degraded_warmup: int = 100
    degraded_limit: int = 30


@dataclass
class WebConfig:
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class LoggingConfig:
    log_dir: str = "data/logs"
    log_file: str = "detect.log"


@dataclass
class AppConfig:
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    inference: InferenceConfig = field(default_factory=InferenceConfig)
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    postprocess: PostprocessConfig = field(default_factory=PostprocessConfig)
    governor: GovernorConfig = field(default_factory=GovernorConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _apply_dict(dc: object, data: dict) -> None:
    """Apply dictionary values onto a dataclass instance, ignoring unknown keys."""
    for key, value in data.items():
        if hasattr(dc, key):
            setattr(dc, key, value)


def normalize_filter_mode(mode: str | None) -> str:
    """Return a supported filter mode, falling back to ``"all"``."""
    value = (mode or "all").strip().lower()
    if value not in FILTER_MODES:
        logger.warning("Unknown filter mode %r, using 'all'", mode)
        return "all"
    return value


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load configuration from a YAML file, falling back to defaults."""
    config = AppConfig()

    if path is None:
        path = os.environ.get("CONFIG_PATH", "config/default.yaml")

    path = Path(path)
    if path.exists():
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}

        section_map = {
            "capture": config.capture,
            "preprocess": config.preprocess,
            "inference": config.inference,
            "decoder": config.decoder,
            "tracking": config.tracking,
            "postprocess": config.postprocess,
            "governor": config.governor,
            "runtime": config.runtime,
            "web": config.web,
            "logging": config.logging,
        }

        for section_name, dc_instance in section_map.items():
            if section_name in raw and isinstance(raw[section_name], dict):
                _apply_dict(dc_instance, raw[section_name])
    else:
        logger.debug("Config file %s not found, using defaults", path)

    config.capture.source = str(config.capture.source)
    config.decoder.filter_mode = normalize_filter_mode(config.decoder.filter_mode)

    # Environment variable overrides
    env_source = os.environ.get("VIDEO_SOURCE")
    if env_source:
        config.capture.source = env_source

    env_model = os.environ.get("MODEL_PATH")
    if env_model:
        config.inference.model_path = env_model

    env_host = os.environ.get("WEB_HOST")
    if env_host:
        config.web.host = env_host

    env_port = os.environ.get("WEB_PORT")
    if env_port:
        config.web.port = int(env_port)

    return config
