"""Entry point: CLI argument parsing + pipeline + uvicorn startup."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import uvicorn

from src.config import LoggingConfig, load_config
from src.models import FrameResult
from src.pipeline import Pipeline
from src.processing.inference import InferenceError
from src.web.app import create_app


def setup_logging(config: LoggingConfig, verbose: bool = False) -> None:
    """Configure logging to both console and file."""
    log_path = Path(config.log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    level = logging.DEBUG if verbose else logging.INFO
    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_path / config.log_file),
        ],
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Real-time object detection with thermal-aware throughput"
    )
    parser.add_argument(
        "-c", "--config",
        default="config/default.yaml",
        help="Path to YAML config file (default: config/default.yaml)",
    )
    parser.add_argument(
        "-s", "--source",
        default=None,
        help="Webcam index, stream URL or video file (overrides config)",
    )
    parser.add_argument(
        "-m", "--model",
        default=None,
        help="Path to the ONNX detection model (overrides config)",
    )
    parser.add_argument(
        "--portrait",
        action="store_true",
        help="Treat the capture device as held in portrait orientation",
    )
    parser.add_argument(
        "--no-web",
        action="store_true",
        help="Run without the HTTP/WebSocket result API",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Web server host (overrides config)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Web server port (overrides config)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    config = load_config(args.config)

    # Apply CLI overrides
    if args.source:
        config.capture.source = args.source
    if args.model:
        config.inference.model_path = args.model
    if args.portrait:
        config.capture.portrait = True
    if args.no_web:
        config.web.enabled = False
    if args.host:
        config.web.host = args.host
    if args.port:
        config.web.port = args.port

    setup_logging(config.logging, args.verbose)
    logger = logging.getLogger(__name__)
    logger.info("Starting real-time detection")
    logger.info("Video source: %s", config.capture.source)
    logger.info("Model: %s", config.inference.model_path)

    try:
        pipeline = Pipeline(config)
    except InferenceError as exc:
        logger.error("Cannot start: %s", exc)
        return 1

    pipeline.start()
    try:
        if config.web.enabled:
            logger.info("Result API: http://%s:%d", config.web.host, config.web.port)
            app = create_app(pipeline)
            uvicorn.run(
                app,
                host=config.web.host,
                port=config.web.port,
                log_level="info",
            )
        else:
            def log_result(result: FrameResult) -> None:
                names = ", ".join(f"{d.class_name} {d.score:.0%}" for d in result.detections)
                logger.info("Frame %d (%.0f ms): %s", result.frame_index,
                            result.latency_ms, names or "-")

            pipeline.add_result_listener(log_result)
            while True:
                time.sleep(1.0)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        pipeline.stop()
        logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
