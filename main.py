"""
Face Bounds CLI Entrypoint.

Responsibility:
    Parse command-line arguments, configure the application, wire the
    camera, the face detector and the overlay together, and run the
    preview loop on the main thread.

Usage:
    python main.py --source 0 --lens front         # Selfie webcam
    python main.py --source clip.mp4 --lens back --rotation 90
    python main.py --config my_config.yaml

This module is the executable entry point. It should not be imported
by other modules.
"""

import argparse
import dataclasses
import logging
import sys
import time

import cv2

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")

from facebounds.camera import FrameSource
from facebounds.config import AppConfig, _validate, load_config
from facebounds.dispatch import MainThreadExecutor
from facebounds.face_detector import FaceDetector, OnFaceDetectionResultListener
from facebounds.frame import LensFacing
from facebounds.image import rotate_upright
from facebounds.overlay import FaceBoundsOverlay

_QUIT_KEYS = {ord("q"), 27}


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Face Bounds: live face detection preview",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--source",
        type=str,
        help="Input source: '0' for webcam or path to a video file.",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--confidence",
        type=float,
        help="Detection confidence threshold (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=["cpu", "cuda"],
        help="Compute backend preference. Overrides config.",
    )
    parser.add_argument(
        "--lens",
        type=str,
        choices=["front", "back"],
        help="Lens facing of the camera. Front streams are mirrored. Overrides config.",
    )
    parser.add_argument(
        "--rotation",
        type=int,
        choices=[0, 90, 180, 270],
        help="Clockwise rotation that brings frames upright. Overrides config.",
    )
    parser.add_argument(
        "--min-face-size",
        type=float,
        help="Smallest face to report, as a fraction of image width. Overrides config.",
    )
    parser.add_argument(
        "--no-tracking",
        action="store_true",
        help="Disable cross-frame tracking ids.",
    )

    return parser.parse_args()


def apply_cli_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a copy of ``config`` with command-line values applied."""
    input_changes = {}
    if args.source is not None:
        input_changes["source"] = args.source
    if args.lens is not None:
        input_changes["lens_facing"] = args.lens
    if args.rotation is not None:
        input_changes["rotation"] = args.rotation

    detector_changes = {}
    if args.min_face_size is not None:
        detector_changes["min_face_size"] = args.min_face_size
    if args.no_tracking:
        detector_changes["tracking_enabled"] = False

    config = dataclasses.replace(
        config,
        input=dataclasses.replace(config.input, **input_changes),
        detector=dataclasses.replace(config.detector, **detector_changes),
    )
    if args.confidence is not None:
        config = dataclasses.replace(
            config,
            detection=dataclasses.replace(config.detection, confidence_threshold=args.confidence),
        )
    if args.backend is not None:
        config = dataclasses.replace(
            config, model=dataclasses.replace(config.model, backend=args.backend)
        )

    _validate(config)
    return config


class _LoggingListener(OnFaceDetectionResultListener):
    """Counts successful detections so the loop can report progress."""

    def __init__(self) -> None:
        self.detections = 0
        self.failures = 0

    def on_success(self, faces) -> None:
        self.detections += 1

    def on_failure(self, exception: Exception) -> None:
        self.failures += 1


def _preview_image(image, rotation: int, lens_facing: LensFacing, size):
    """Return the camera image as the user should see it."""
    preview = rotate_upright(image, rotation)
    if lens_facing == LensFacing.FRONT:
        preview = cv2.flip(preview, 1)
    if (preview.shape[1], preview.shape[0]) != size:
        preview = cv2.resize(preview, size)
    return preview


def main() -> int:
    """Main execution loop."""
    args = parse_args()

    # 1. Load Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = apply_cli_overrides(load_config(args.config), args)
        logger.info("Configuration active for this run.")
    except Exception as e:
        logger.error("Configuration error: %s", e)
        return 1

    lens_facing = LensFacing(config.input.lens_facing)

    # 2. Initialize Components
    try:
        source = FrameSource(
            config.input.source,
            lens_facing=lens_facing,
            rotation=config.input.rotation,
            resize_width=config.input.resize_width,
        )
        ui = MainThreadExecutor()
        overlay = FaceBoundsOverlay(
            config.overlay.width or 1, config.overlay.height or 1, config.overlay
        )
        listener = _LoggingListener()
        detector = FaceDetector(overlay, ui_executor=ui, listener=listener, config=config)

    except (FileNotFoundError, ValueError, RuntimeError) as e:
        logger.error("Initialization failed: %s", e)
        return 1
    except Exception as e:
        logger.exception("Unexpected initialization error: %s", e)
        return 1

    # 3. Preview Loop
    logger.info("Starting preview. Press 'q' or ESC to quit.")

    frame_count = 0
    start_time = time.perf_counter()
    detector.start()

    try:
        for frame in source:
            frame_count += 1

            # Follow the upright frame size unless the overlay size is pinned
            eff_w, eff_h = frame.effective_size
            overlay.resize(config.overlay.width or eff_w, config.overlay.height or eff_h)

            detector.process(frame)
            ui.run_pending()

            if frame_count % 30 == 0:
                logger.info(
                    "Processed %d frames, %d detections delivered...",
                    frame_count, listener.detections,
                )

            preview = _preview_image(
                frame.data, frame.rotation, lens_facing, (overlay.width, overlay.height)
            )
            if overlay.show(preview) in _QUIT_KEYS:
                logger.info("Stopping loop per user request.")
                break

    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    except Exception as e:
        logger.exception("Runtime error during processing: %s", e)
        return 1
    finally:
        # 4. Cleanup
        elapsed = time.perf_counter() - start_time
        fps = frame_count / elapsed if elapsed > 0 else 0.0

        detector.close()
        source.release()
        cv2.destroyAllWindows()

        logger.info(
            "Preview finished. Frames: %d. Detections: %d. Failures: %d. Avg FPS: %.2f.",
            frame_count, listener.detections, listener.failures, fps,
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
