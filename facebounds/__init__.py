"""
Face Bounds: live face detection for camera previews.

Public API:
    - FaceDetector: admits one frame at a time into a detector backend and
      publishes screen-space faces to an overlay.
    - FaceBoundsOverlay: OpenCV overlay that draws the published faces.
    - MainThreadExecutor: UI scheduling context the results are delivered on.
    - map_bounds: detector space to overlay space transform.
    - Frame, LensFacing, ImageFormat, DetectionCandidate, FaceBounds: data types.

Usage:
    from facebounds import FaceDetector, FaceBoundsOverlay, MainThreadExecutor

    ui = MainThreadExecutor()
    overlay = FaceBoundsOverlay(1280, 720)
    with FaceDetector(overlay, ui_executor=ui) as detector:
        detector.process(frame)
        ui.run_pending()
"""

from facebounds.bounds_mapper import map_bounds
from facebounds.detection import DetectionCandidate, FaceBounds
from facebounds.dispatch import MainThreadExecutor
from facebounds.errors import (
    ConfigurationError,
    DetectionBackendError,
    FaceDetectionError,
)
from facebounds.face_detector import FaceDetector, OnFaceDetectionResultListener
from facebounds.frame import Frame, ImageFormat, LensFacing
from facebounds.overlay import FaceBoundsOverlay

__all__ = [
    "ConfigurationError",
    "DetectionBackendError",
    "DetectionCandidate",
    "FaceBounds",
    "FaceBoundsOverlay",
    "FaceDetectionError",
    "FaceDetector",
    "Frame",
    "ImageFormat",
    "LensFacing",
    "MainThreadExecutor",
    "OnFaceDetectionResultListener",
    "map_bounds",
]
