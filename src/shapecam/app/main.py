#!/usr/bin/env python3
"""
shapecam - live geometric shape classification from a camera.

Commands:
    run        Open the camera, classify frames in the background and
               overlay the latest label on the preview window
    classify   Classify still image files and print one label per line

Usage:
    shapecam run                      # Default camera, models/ directory
    shapecam run --camera 1
    shapecam classify circle.png square.jpg
    shapecam classify --top-k 3 shape.png

Environment variables (prefix SHAPECAM_) are documented in
shapecam.app.config.Settings.
"""

import argparse
import logging
import sys
from pathlib import Path

import cv2
import yaml

from shapecam.app.config import LOG_LEVELS, Settings, get_settings
from shapecam.config import (
    get_config,
    get_luma_weights,
    load_config_file,
    load_pipeline_config,
    validate_config,
)
from shapecam.errors import ConfigurationError, FrameError, StartupError
from shapecam.inference import infer, top_k
from shapecam.logger import setup_logging
from shapecam.model import ModelRegistry, SessionConfig
from shapecam.pipeline import FrameDispatcher, ResultDisplay, ShapeClassificationPipeline
from shapecam.processing import ShapePreprocessor, load_image

logger = logging.getLogger(__name__)

QUIT_KEYS = {ord("q"), 27}  # q, ESC


# =============================================================================
# Startup
# =============================================================================

def build_pipeline(settings: Settings) -> ShapeClassificationPipeline:
    """Load configuration and model, and assemble the pipeline.

    Raises:
        StartupError: If the model is missing, fails to load, or disagrees
            with the label table
    """
    config_path = Path(settings.CLASSIFIER_CONFIG) if settings.CLASSIFIER_CONFIG else None

    try:
        raw_config = get_config() if config_path is None else load_config_file(config_path)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not read classifier config: {e}") from e

    errors = validate_config(raw_config)
    if errors:
        raise ConfigurationError(f"Invalid classifier config: {'; '.join(errors)}")

    config = load_pipeline_config(config_path)

    model_name = settings.MODEL_NAME or config.model_name

    registry = ModelRegistry(
        Path(settings.MODELS_DIR),
        SessionConfig(
            intra_op_threads=settings.INTRA_OP_THREADS,
            inter_op_threads=settings.INTER_OP_THREADS,
        ),
    )
    model = registry.load(model_name)

    preprocessor = ShapePreprocessor(
        config.target_width,
        config.target_height,
        get_luma_weights(raw_config),
    )

    pipeline = ShapeClassificationPipeline(model, config, preprocessor)
    logger.info(
        f"Pipeline ready: {config.target_width}x{config.target_height} input, "
        f"{len(config.labels)} classes",
        extra={"model": model_name},
    )
    return pipeline


# =============================================================================
# Display
# =============================================================================

def draw_result(frame, text: str):
    """Draw the result text in a dark box at the bottom of the frame."""
    font = cv2.FONT_HERSHEY_SIMPLEX
    scale, thickness, pad = 0.8, 2, 10

    (text_w, text_h), baseline = cv2.getTextSize(text, font, scale, thickness)
    height, width = frame.shape[:2]

    x = max(pad, (width - text_w) // 2)
    y = height - pad * 3

    overlay = frame.copy()
    cv2.rectangle(
        overlay,
        (x - pad, y - text_h - pad),
        (x + text_w + pad, y + baseline + pad),
        (0, 0, 0),
        thickness=-1,
    )
    frame = cv2.addWeighted(overlay, 0.7, frame, 0.3, 0)
    cv2.putText(frame, text, (x, y), font, scale, (255, 255, 255), thickness, cv2.LINE_AA)
    return frame


# =============================================================================
# Commands
# =============================================================================

def run_camera(settings: Settings) -> int:
    """Camera loop: capture, submit, overlay, repeat until quit."""
    pipeline = build_pipeline(settings)

    capture = cv2.VideoCapture(settings.CAMERA_INDEX)
    if not capture.isOpened():
        raise StartupError(f"Could not open camera {settings.CAMERA_INDEX}")

    logger.info("Camera opened", extra={"camera": settings.CAMERA_INDEX})

    display = ResultDisplay()
    dispatcher = FrameDispatcher(pipeline, display)

    try:
        while True:
            ok, bgr = capture.read()
            if not ok:
                logger.warning("Camera stopped delivering frames")
                break

            dispatcher.submit(cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB))

            cv2.imshow(settings.WINDOW_NAME, draw_result(bgr, display.text))
            if (cv2.waitKey(1) & 0xFF) in QUIT_KEYS:
                break
    finally:
        dispatcher.shutdown()
        capture.release()
        cv2.destroyAllWindows()

    return 0


def classify_images(settings: Settings, paths: list[Path], k: int = 1) -> int:
    """Classify still images; print "<path>: <label>" per image."""
    pipeline = build_pipeline(settings)
    failures = 0

    for path in paths:
        try:
            frame = load_image(str(path))
        except ValueError as e:
            logger.error(str(e))
            print(f"{path}: error: could not read image")
            failures += 1
            continue

        result = pipeline.preprocessor(frame)
        if result is None:
            print(f"{path}: error: could not convert frame")
            failures += 1
            continue

        try:
            scores = infer(pipeline.model, result.tensor)
            predictions = top_k(scores, pipeline.config.labels, k)
        except FrameError as e:
            logger.warning(f"{path}: {e}", extra={"error_kind": e.kind})
            print(f"{path}: error: {e.display_message}")
            failures += 1
            continue

        ranked = ", ".join(f"{p.label} ({p.confidence:.3f})" for p in predictions)
        print(f"{path}: {ranked}")

    return 1 if failures else 0


# =============================================================================
# Main
# =============================================================================

def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="shapecam",
        description="Real-time geometric shape classification",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  shapecam run                       # Live camera preview with labels
  shapecam run --camera 1            # Use a different capture device
  shapecam classify shape.png        # Classify a still image
        """,
    )
    parser.add_argument(
        "--models-dir",
        type=Path,
        default=None,
        help="Directory containing the model file (default: $SHAPECAM_MODELS_DIR)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: $SHAPECAM_LOG_LEVEL)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Classify frames from a camera")
    run_parser.add_argument(
        "--camera",
        type=int,
        default=None,
        help="Capture device index (default: $SHAPECAM_CAMERA_INDEX)",
    )

    classify_parser = subparsers.add_parser("classify", help="Classify image files")
    classify_parser.add_argument("images", nargs="+", type=Path)
    classify_parser.add_argument(
        "--top-k",
        type=int,
        default=1,
        help="Number of ranked labels to print per image",
    )

    args = parser.parse_args(argv)

    overrides = {}
    if args.models_dir is not None:
        overrides["MODELS_DIR"] = str(args.models_dir)
    if args.log_level is not None:
        overrides["LOG_LEVEL"] = args.log_level
    if getattr(args, "camera", None) is not None:
        overrides["CAMERA_INDEX"] = args.camera

    settings = get_settings().model_copy(update=overrides)
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    try:
        if args.command == "run":
            return run_camera(settings)
        return classify_images(settings, args.images, args.top_k)
    except StartupError as e:
        logger.error(f"Startup failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
