"""
Frame value passed from a camera source into the face detector.

A Frame is read-only to the detector: it is borrowed for the duration
of a single detection request and never retained afterwards.

Non-goals:
    - No decoding or rotation of the pixel buffer (see image.py).
    - No camera access.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import numpy as np

# Rotations (clockwise degrees) a frame may carry.
VALID_ROTATIONS = (0, 90, 180, 270)


class LensFacing(str, Enum):
    """Which camera produced the frame. Front-facing streams are mirrored."""

    FRONT = "front"
    BACK = "back"


class ImageFormat(str, Enum):
    """Pixel encoding of Frame.data."""

    BGR = "bgr"
    RGB = "rgb"
    GRAY8 = "gray8"
    NV21 = "nv21"
    YV12 = "yv12"
    JPEG = "jpeg"


PixelData = Union[bytes, bytearray, memoryview, np.ndarray]


@dataclass(frozen=True)
class Frame:
    """One unit of camera imagery with orientation and lens metadata.

    Attributes:
        data: Pixel buffer, or None when the source had nothing to offer.
              A frame without data is silently ignored by the detector.
        width: Width of the buffer as produced by the sensor.
        height: Height of the buffer as produced by the sensor.
        rotation: Clockwise rotation needed to display the buffer upright.
                  One of 0, 90, 180, 270.
        lens_facing: Front or back camera.
        format: Encoding of ``data``.
    """

    data: Optional[PixelData]
    width: int
    height: int
    rotation: int = 0
    lens_facing: LensFacing = LensFacing.BACK
    format: ImageFormat = ImageFormat.BGR

    @property
    def is_rotated(self) -> bool:
        """True when the upright image has width and height swapped."""
        return self.rotation in (90, 270)

    @property
    def effective_size(self):
        """(width, height) of the frame once rotated upright."""
        if self.is_rotated:
            return self.height, self.width
        return self.width, self.height
