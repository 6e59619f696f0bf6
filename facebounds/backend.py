"""
Face detection backends.

A backend turns an upright InputImage into a list of DetectionCandidate
objects, asynchronously. FaceDetector only relies on the
FaceDetectionBackend protocol, so any engine returning a
concurrent.futures.Future can be plugged in.

OpenCVFaceBackend runs the SSD-ResNet10 Caffe model through cv2.dnn on
a private single-thread executor.

Hard-coded:
    - SSD output tensor layout: [1, 1, N, 7] where each row is
      [batch_id, class_id, confidence, x1, y1, x2, y2] with
      coordinates normalized to [0, 1].
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional, Protocol

import numpy as np

from facebounds.config import DetectionConfig, DetectorOptions, ModelConfig
from facebounds.detection import DetectionCandidate
from facebounds.errors import DetectionBackendError
from facebounds.image import InputImage, to_blob
from facebounds.model_loader import load_model
from facebounds.tracker import IoUTracker

logger = logging.getLogger(__name__)


class FaceDetectionBackend(Protocol):
    """Capability required from a face detection engine."""

    def process(self, image: InputImage) -> "Future[List[DetectionCandidate]]":
        """Start detection. The future completes exactly once."""
        ...

    def reset(self) -> None:
        """Forget cross-frame state such as tracking identities."""
        ...

    def close(self) -> None:
        """Release engine resources."""
        ...


def parse_ssd_output(
    network_output: np.ndarray,
    image_width: int,
    image_height: int,
    confidence_threshold: float,
    min_face_size: float = 0.0,
) -> List[DetectionCandidate]:
    """Parse raw SSD output into untracked candidates.

    Args:
        network_output: Raw output from net.forward(), shape (1, 1, N, 7).
        image_width: Upright image width in pixels.
        image_height: Upright image height in pixels.
        confidence_threshold: Minimum confidence to accept a detection.
        min_face_size: Minimum face width as a fraction of image width.

    Returns:
        Candidates sorted by confidence (descending), tracking_id None.
    """
    candidates: List[DetectionCandidate] = []
    min_width = min_face_size * image_width

    for row in network_output[0, 0]:
        confidence = float(row[2])
        if confidence < confidence_threshold:
            continue

        # Un-normalize and clamp to the image
        left = min(max(float(row[3]) * image_width, 0.0), image_width - 1.0)
        top = min(max(float(row[4]) * image_height, 0.0), image_height - 1.0)
        right = min(max(float(row[5]) * image_width, 0.0), image_width - 1.0)
        bottom = min(max(float(row[6]) * image_height, 0.0), image_height - 1.0)

        if right <= left or bottom <= top:
            continue
        if right - left < min_width:
            continue

        candidates.append(DetectionCandidate(
            tracking_id=None,
            left=left, top=top, right=right, bottom=bottom,
            confidence=confidence,
        ))

    candidates.sort(key=lambda c: c.confidence, reverse=True)
    return candidates


class OpenCVFaceBackend:
    """SSD-ResNet10 face detector via OpenCV DNN.

    Usage:
        backend = OpenCVFaceBackend(config.detector, config.model, config.detection)
        future = backend.process(InputImage.from_frame(frame))
        candidates = future.result()
        backend.close()

    Inference runs on one private worker thread, so the network is never
    used concurrently and process() returns immediately.
    """

    def __init__(
        self,
        options: Optional[DetectorOptions] = None,
        model_config: Optional[ModelConfig] = None,
        detection_config: Optional[DetectionConfig] = None,
        net=None,
    ) -> None:
        """Load the model and prepare the inference thread.

        Args:
            options: Detector options (mode, min face size, tracking).
            model_config: Model files and blob parameters.
            detection_config: Thresholds for detection and tracking.
            net: Preloaded cv2.dnn.Net. Loaded from model_config when None.

        Raises:
            FileNotFoundError: If model files are missing.
            RuntimeError: If the requested compute backend is unavailable.
        """
        self._options = options or DetectorOptions()
        self._model_config = model_config or ModelConfig()
        self._detection_config = detection_config or DetectionConfig()
        self._net = net if net is not None else load_model(self._model_config)

        width, height = self._model_config.input_size
        if self._options.performance_mode == "fast":
            self._input_size = (max(1, width // 2), max(1, height // 2))
        else:
            self._input_size = (width, height)

        self._tracker: Optional[IoUTracker] = None
        if self._options.tracking_enabled:
            self._tracker = IoUTracker(
                iou_threshold=self._detection_config.tracking_iou_threshold,
                max_age=self._detection_config.tracking_max_age,
            )

        for name in ("landmark_mode", "classification_mode"):
            if getattr(self._options, name) != "none":
                logger.info(
                    "%s=%s is not supported by the OpenCV backend; ignoring.",
                    name, getattr(self._options, name),
                )

        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="opencv-face-backend"
        )
        logger.info(
            "OpenCV face backend ready (mode=%s, min_face_size=%.2f, tracking=%s)",
            self._options.performance_mode,
            self._options.min_face_size,
            self._options.tracking_enabled,
        )

    def process(self, image: InputImage) -> "Future[List[DetectionCandidate]]":
        """Schedule detection of ``image`` and return its future.

        The future fails with DetectionBackendError if inference raises,
        or if the backend has been closed.
        """
        try:
            return self._executor.submit(self._run, image)
        except RuntimeError as e:
            future: Future = Future()
            future.set_exception(DetectionBackendError(f"Backend is closed: {e}"))
            return future

    def reset(self) -> None:
        """Retire every tracked face. Ordered after inference already queued."""
        if self._tracker is None:
            return
        try:
            self._executor.submit(self._tracker.reset)
        except RuntimeError:
            logger.debug("Tracker reset skipped: backend is closed")

    def close(self) -> None:
        """Stop the inference thread after queued work finishes."""
        self._executor.shutdown(wait=False)

    def _run(self, image: InputImage) -> List[DetectionCandidate]:
        try:
            blob = to_blob(image.pixels, self._model_config, self._input_size)
            self._net.setInput(blob)
            output = self._net.forward()
            candidates = parse_ssd_output(
                network_output=output,
                image_width=image.width,
                image_height=image.height,
                confidence_threshold=self._detection_config.confidence_threshold,
                min_face_size=self._options.min_face_size,
            )
        except Exception as e:
            raise DetectionBackendError(f"Face inference failed: {e}") from e

        if self._tracker is None:
            return candidates

        ids = self._tracker.update(
            [(c.left, c.top, c.right, c.bottom) for c in candidates]
        )
        return [
            DetectionCandidate(
                tracking_id=track_id,
                left=c.left, top=c.top, right=c.right, bottom=c.bottom,
                confidence=c.confidence,
            )
            for c, track_id in zip(candidates, ids)
        ]
