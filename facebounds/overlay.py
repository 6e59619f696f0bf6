"""
Overlay that shows detected faces on top of the camera preview.

Responsibility:
    Hold the current set of screen-space faces and draw them onto a
    preview image. update_faces() replaces the whole set on every call.

Not thread-safe: call only from the UI thread (FaceDetector guarantees
this by routing updates through its MainThreadExecutor).
"""

from typing import List, Optional

import cv2
import numpy as np

from facebounds.config import OverlayConfig
from facebounds.detection import FaceBounds

# Hard-coded rendering constants (cosmetic internals, not user-facing)
_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_SCALE = 0.5
_FONT_THICKNESS = 1
_LABEL_PADDING = 4


class FaceBoundsOverlay:
    """Screen-space face boxes for one preview surface.

    Attributes:
        width: Overlay width in pixels.
        height: Overlay height in pixels.
    """

    def __init__(
        self,
        width: int,
        height: int,
        config: Optional[OverlayConfig] = None,
    ) -> None:
        self.width = width
        self.height = height
        self._config = config or OverlayConfig()
        self._faces: List[FaceBounds] = []

    @property
    def faces(self) -> List[FaceBounds]:
        """The faces currently displayed."""
        return list(self._faces)

    def update_faces(self, faces: List[FaceBounds]) -> None:
        """Replace the displayed faces."""
        self._faces = list(faces)

    def clear(self) -> None:
        self._faces = []

    def resize(self, width: int, height: int) -> None:
        """Change the overlay size. Takes effect from the next detection."""
        self.width = width
        self.height = height

    def draw(self, image: np.ndarray) -> np.ndarray:
        """Draw the current faces onto a copy of ``image``.

        ``image`` is expected to be the preview as the user sees it: upright,
        already mirrored for a front camera, and sized width x height.
        """
        annotated = image.copy()
        color = self._config.box_color

        for face in self._faces:
            x1, y1, x2, y2 = face.as_int_rect()
            cv2.rectangle(annotated, (x1, y1), (x2, y2),
                          color=color, thickness=self._config.thickness)

            if not self._config.show_tracking_id or face.tracking_id is None:
                continue

            label = f"#{face.tracking_id}"
            (text_w, text_h), _ = cv2.getTextSize(
                label, _FONT, _FONT_SCALE, _FONT_THICKNESS
            )

            # Above the box, or below if too close to the top edge
            label_y = y1 - _LABEL_PADDING
            if label_y - text_h - _LABEL_PADDING < 0:
                label_y = y2 + text_h + _LABEL_PADDING

            cv2.rectangle(
                annotated,
                (x1, label_y - text_h - _LABEL_PADDING),
                (x1 + text_w + _LABEL_PADDING, label_y + _LABEL_PADDING),
                color=color,
                thickness=cv2.FILLED,
            )
            cv2.putText(
                annotated, label,
                (x1 + _LABEL_PADDING // 2, label_y),
                _FONT, _FONT_SCALE, (0, 0, 0), _FONT_THICKNESS, cv2.LINE_AA,
            )

        return annotated

    def show(self, image: np.ndarray, window_name: str = "Face Bounds") -> int:
        """Show the annotated preview and return the pressed key, or 255 if none."""
        cv2.imshow(window_name, self.draw(image))
        return cv2.waitKey(1) & 0xFF
