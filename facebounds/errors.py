"""
Exceptions raised or reported by the face detection pipeline.
"""


class FaceDetectionError(Exception):
    """Base class for every error reported by the face detector."""


class ConfigurationError(FaceDetectionError, RuntimeError):
    """Face detection was requested before the detector was started.

    Fatal to the submitted frame only; a later frame may succeed once
    the overlay is attached and the detector started.
    """


class DetectionBackendError(FaceDetectionError):
    """The detector backend failed to process an image."""
