"""
Frame source for the command-line preview.

Responsibility:
    Read BGR frames from a webcam or a video file with cv2.VideoCapture
    and wrap them as Frame values tagged with the configured lens facing
    and rotation.

Robustness:
    - Validates the source at initialization time.
    - A webcam that fails 30 reads in a row is given up on.
    - Releases the capture handle on release().
"""

import logging
import os
from typing import Iterator, Optional, Union

import cv2
import numpy as np

from facebounds.frame import Frame, ImageFormat, LensFacing

logger = logging.getLogger(__name__)

_MAX_CONSECUTIVE_FAILURES = 30


class FrameSource:
    """Iterates Frame values from a webcam index or a video file.

    Usage:
        source = FrameSource("0", lens_facing=LensFacing.FRONT)
        for frame in source:
            detector.process(frame)
        source.release()
    """

    def __init__(
        self,
        source: Union[str, int],
        lens_facing: LensFacing = LensFacing.BACK,
        rotation: int = 0,
        resize_width: Optional[int] = None,
    ) -> None:
        """Open the capture.

        Raises:
            FileNotFoundError: If a file source does not exist.
            RuntimeError: If the capture cannot be opened.
        """
        source_str = str(source).strip()
        self._lens_facing = lens_facing
        self._rotation = rotation
        self._resize_width = resize_width

        if source_str.isdigit():
            self._is_live = True
            target: Union[str, int] = int(source_str)
        elif os.path.isfile(source_str):
            self._is_live = False
            target = source_str
        else:
            raise FileNotFoundError(
                f"Input source not found: '{source_str}'. "
                f"Provide a video file path or a webcam device index."
            )

        self._cap: Optional[cv2.VideoCapture] = cv2.VideoCapture(target)
        if not self._cap.isOpened():
            raise RuntimeError(
                f"Failed to open {'webcam device' if self._is_live else 'video file'} "
                f"'{source_str}'."
            )
        logger.info("FrameSource opened: %s (lens=%s, rotation=%d)",
                    source_str, lens_facing.value, rotation)

    def __iter__(self) -> Iterator[Frame]:
        failures = 0
        while self._cap is not None:
            ok, image = self._cap.read()
            if not ok or image is None:
                if not self._is_live:
                    logger.info("End of video reached.")
                    return
                failures += 1
                if failures >= _MAX_CONSECUTIVE_FAILURES:
                    logger.error(
                        "Webcam produced %d consecutive failed reads. Giving up.",
                        failures,
                    )
                    return
                continue

            failures = 0
            yield self.wrap(self._maybe_resize(image))

    def wrap(self, image: np.ndarray) -> Frame:
        """Wrap a BGR image as a Frame with this source's metadata."""
        height, width = image.shape[:2]
        return Frame(
            data=image,
            width=width,
            height=height,
            rotation=self._rotation,
            lens_facing=self._lens_facing,
            format=ImageFormat.BGR,
        )

    def _maybe_resize(self, image: np.ndarray) -> np.ndarray:
        if self._resize_width is None:
            return image
        h, w = image.shape[:2]
        if w <= self._resize_width:
            return image
        new_h = int(h * self._resize_width / w)
        return cv2.resize(image, (self._resize_width, new_h), interpolation=cv2.INTER_AREA)

    def release(self) -> None:
        """Release the capture handle."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.debug("VideoCapture released.")
