"""
FaceDetector: feeds camera frames to a detector backend and publishes
the faces it finds to an overlay.

This module is the intended programmatic entry point of the library.

Public contract:
    FaceDetector.start() / stop()     bracket the overlay's time on screen
    FaceDetector.process(frame)       never blocks, returns nothing

Behavior:
    - At most one frame is in flight. Frames submitted while a detection
      is running are dropped silently.
    - Frames without pixel data are ignored silently.
    - Results and failures are delivered on the UI executor only.
    - Every accepted frame releases the busy flag exactly once, before
      anything is delivered, whichever way the detection ends.

Non-goals:
    - No queuing or batching of frames.
    - No retries.
"""

import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from typing import List, Optional, Protocol

from facebounds.backend import FaceDetectionBackend, OpenCVFaceBackend
from facebounds.bounds_mapper import map_all
from facebounds.config import AppConfig, load_config
from facebounds.detection import DetectionCandidate, FaceBounds
from facebounds.dispatch import MainThreadExecutor
from facebounds.errors import (
    ConfigurationError,
    DetectionBackendError,
    FaceDetectionError,
)
from facebounds.frame import Frame
from facebounds.image import InputImage

logger = logging.getLogger(__name__)


class FaceBoundsSink(Protocol):
    """What the detector needs from an overlay."""

    width: int
    height: int

    def update_faces(self, faces: List[FaceBounds]) -> None:
        ...


class OnFaceDetectionResultListener:
    """Receives detection outcomes on the UI thread. Both hooks default to no-ops."""

    def on_success(self, faces: List[FaceBounds]) -> None:
        pass

    def on_failure(self, exception: Exception) -> None:
        pass


class FaceDetector:
    """Single-slot face detection pipeline in front of an overlay.

    Usage:
        ui = MainThreadExecutor()
        detector = FaceDetector(overlay, ui_executor=ui)
        detector.start()                  # overlay is on screen
        for frame in source:
            detector.process(frame)
            ui.run_pending()
        detector.stop()                   # overlay left the screen

    Results go to ``overlay.update_faces`` and then to the listener's
    ``on_success``, in the same UI task. Failures go to the listener's
    ``on_failure`` and are logged.
    """

    def __init__(
        self,
        overlay: FaceBoundsSink,
        backend: Optional[FaceDetectionBackend] = None,
        ui_executor: Optional[MainThreadExecutor] = None,
        listener: Optional[OnFaceDetectionResultListener] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        """Create the detector.

        Args:
            overlay: Receives screen-space faces on the UI thread.
            backend: Detection engine. Built from ``config`` when None.
            ui_executor: UI scheduling context. A new one bound to the
                         calling thread is created when None.
            listener: Optional result listener.
            config: Used only to build the default backend.

        Raises:
            FileNotFoundError: If the default backend's model files are missing.
            ValueError: If configuration values are invalid.
        """
        if backend is None:
            config = config or load_config()
            backend = OpenCVFaceBackend(config.detector, config.model, config.detection)

        self._overlay = overlay
        self._backend = backend
        self._ui = ui_executor or MainThreadExecutor()
        self._listener = listener

        self._lock = threading.Lock()
        # Guarded by _lock
        self._is_processing = False
        self._executor: Optional[ThreadPoolExecutor] = None
        self._session = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Create the background detection thread. No-op if already started."""
        with self._lock:
            if self._executor is not None:
                return
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="face-detection"
            )
            self._session += 1
            session = self._session
        # Faces tracked in an earlier session must not lend their ids to new ones
        self._backend.reset()
        logger.debug("Face detection started (session=%d)", session)

    def stop(self) -> None:
        """Stop accepting frames. In-flight results are discarded when they land."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False)
            logger.debug("Face detection stopped")

    def close(self) -> None:
        """Stop and release the backend."""
        self.stop()
        self._backend.close()

    def __enter__(self) -> "FaceDetector":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set_listener(self, listener: Optional[OnFaceDetectionResultListener]) -> None:
        """Replace the result listener. None removes it."""
        self._listener = listener

    @property
    def is_processing(self) -> bool:
        """True while a frame is being detected."""
        with self._lock:
            return self._is_processing

    def process(self, frame: Frame) -> None:
        """Submit a frame for detection, or drop it if one is in flight.

        Never blocks. When the detector has not been started, a
        ConfigurationError is logged and sent to the listener.
        """
        error: Optional[FaceDetectionError] = None

        with self._lock:
            if self._is_processing:
                return
            self._is_processing = True

            if self._executor is None:
                error = ConfigurationError(
                    "Cannot run face detection. Make sure the face bounds "
                    "overlay is attached to the current window."
                )
            else:
                try:
                    self._executor.submit(self._detect_faces, frame, self._session)
                except RuntimeError as e:
                    error = ConfigurationError(f"Face detection thread is shut down: {e}")

            if error is not None:
                self._is_processing = False

        if error is not None:
            self._on_error(error)

    # ------------------------------------------------------------------
    # Background thread
    # ------------------------------------------------------------------

    def _detect_faces(self, frame: Frame, session: int) -> None:
        if frame.data is None:
            self._release()
            return

        try:
            image = InputImage.from_frame(frame)
            future = self._backend.process(image)
        except Exception as e:
            self._release()
            self._on_error(_as_backend_error(e), session)
            return

        future.add_done_callback(
            lambda f: self._on_detection_complete(f, frame, session)
        )

    def _on_detection_complete(self, future: Future, frame: Frame, session: int) -> None:
        # Runs on whatever thread completed the future
        self._release()

        try:
            candidates = future.result()
        except CancelledError:
            self._on_error(DetectionBackendError("Face detection was cancelled."), session)
            return
        except Exception as e:
            self._on_error(_as_backend_error(e), session)
            return

        self._ui.execute(self._deliver_faces, candidates, frame, session)

    def _release(self) -> None:
        with self._lock:
            self._is_processing = False

    def _is_current(self, session: int) -> bool:
        with self._lock:
            return self._executor is not None and session == self._session

    # ------------------------------------------------------------------
    # UI thread
    # ------------------------------------------------------------------

    def _deliver_faces(
        self,
        candidates: List[DetectionCandidate],
        frame: Frame,
        session: int,
    ) -> None:
        if not self._is_current(session):
            logger.debug("Discarding %d faces from a stopped session", len(candidates))
            return

        faces = map_all(candidates, frame, self._overlay.width, self._overlay.height)
        self._overlay.update_faces(faces)

        listener = self._listener
        if listener is not None:
            listener.on_success(faces)

    def _on_error(self, exception: Exception, session: Optional[int] = None) -> None:
        if session is not None and not self._is_current(session):
            logger.debug("Ignoring failure from a stopped session: %s", exception)
            return
        logger.error("An error occurred while running a face detection", exc_info=exception)
        self._ui.execute(self._deliver_failure, exception)

    def _deliver_failure(self, exception: Exception) -> None:
        listener = self._listener
        if listener is not None:
            listener.on_failure(exception)


def _as_backend_error(exception: Exception) -> FaceDetectionError:
    if isinstance(exception, FaceDetectionError):
        return exception
    error = DetectionBackendError(str(exception) or type(exception).__name__)
    error.__cause__ = exception
    return error
