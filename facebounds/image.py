"""
Image preparation for the detector backend.

Responsibility:
    Decode a Frame's pixel buffer into an upright BGR image, and convert
    that image into a 4D DNN-compatible input blob using
    cv2.dnn.blobFromImage.

Non-goals:
    - No frame acquisition or I/O.
    - No inference or coordinate mapping.

Hard-coded:
    - Decoded images are always BGR (mandated by the Caffe model).
    - Rotation is clockwise: a frame with rotation=90 is turned 90 degrees
      clockwise to become upright.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from facebounds.config import ModelConfig
from facebounds.errors import DetectionBackendError
from facebounds.frame import Frame, ImageFormat

_ROTATE_CODES = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


@dataclass(frozen=True)
class InputImage:
    """An upright BGR image ready for a detector backend.

    Attributes:
        pixels: BGR numpy array (H, W, 3), already rotated upright.
    """

    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @classmethod
    def from_frame(cls, frame: Frame) -> "InputImage":
        """Decode and rotate a frame's pixel buffer.

        Raises:
            DetectionBackendError: If the frame has no data, or the buffer
                does not match the declared size and format.
        """
        if frame.data is None:
            raise DetectionBackendError("Frame has no pixel data.")

        try:
            bgr = _decode(frame)
        except (ValueError, cv2.error) as e:
            raise DetectionBackendError(
                f"Could not decode {frame.format.value} frame of size "
                f"{frame.width}x{frame.height}: {e}"
            ) from e

        return cls(pixels=rotate_upright(bgr, frame.rotation))


def _as_uint8(data) -> np.ndarray:
    if isinstance(data, np.ndarray):
        return np.ascontiguousarray(data, dtype=np.uint8)
    return np.frombuffer(data, dtype=np.uint8)


def _decode(frame: Frame) -> np.ndarray:
    """Convert the raw buffer of ``frame`` into a BGR (H, W, 3) array."""
    w, h = frame.width, frame.height
    buf = _as_uint8(frame.data)

    if frame.format == ImageFormat.JPEG:
        image = cv2.imdecode(buf.reshape(-1), cv2.IMREAD_COLOR)
        if image is None:
            raise ValueError("JPEG payload could not be decoded")
        return image

    if frame.format == ImageFormat.BGR:
        return buf.reshape(h, w, 3)

    if frame.format == ImageFormat.RGB:
        return cv2.cvtColor(buf.reshape(h, w, 3), cv2.COLOR_RGB2BGR)

    if frame.format == ImageFormat.GRAY8:
        return cv2.cvtColor(buf.reshape(h, w), cv2.COLOR_GRAY2BGR)

    if frame.format == ImageFormat.NV21:
        return cv2.cvtColor(buf.reshape(h * 3 // 2, w), cv2.COLOR_YUV2BGR_NV21)

    if frame.format == ImageFormat.YV12:
        return cv2.cvtColor(buf.reshape(h * 3 // 2, w), cv2.COLOR_YUV2BGR_YV12)

    raise ValueError(f"Unsupported image format: {frame.format}")


def rotate_upright(image: np.ndarray, rotation: int) -> np.ndarray:
    """Rotate ``image`` clockwise by ``rotation`` degrees (0/90/180/270)."""
    if rotation == 0:
        return image
    return cv2.rotate(image, _ROTATE_CODES[rotation])


def to_blob(
    image: np.ndarray,
    config: ModelConfig,
    input_size: Optional[Tuple[int, int]] = None,
) -> np.ndarray:
    """Convert an upright BGR image into a DNN input blob.

    Args:
        image: Input image as a BGR numpy array (H, W, 3).
        config: ModelConfig providing input_size, scale_factor, and mean_values.
        input_size: Optional (width, height) overriding config.input_size.

    Returns:
        A 4D numpy array of shape (1, 3, H, W) with dtype float32,
        ready to be passed to net.setInput().

    Raises:
        ValueError: If the image is empty.
    """
    if image is None or image.size == 0:
        raise ValueError(
            "Cannot build a blob from an empty image. "
            "Ensure the camera is providing valid frames."
        )

    return cv2.dnn.blobFromImage(
        image=image,
        scalefactor=config.scale_factor,
        size=input_size or config.input_size,
        mean=config.mean_values,
        swapRB=False,   # Hard-coded: input is BGR, model expects BGR
        crop=False,
    )
