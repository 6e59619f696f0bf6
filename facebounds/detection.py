"""
Detection data transfer objects.

DetectionCandidate is what a detector backend reports, in the pixel
space of the upright source image. FaceBounds is what the overlay
receives, in overlay (screen) space. Both are frozen and carry no
behavior beyond data access.

Non-goals:
    - No rendering logic.
    - No coordinate transformation methods (that belongs in bounds_mapper).
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class DetectionCandidate:
    """A single face reported by a detector backend.

    Attributes:
        tracking_id: Identity kept stable across frames for the same face,
                     or None when tracking is disabled or unassigned.
        left, top, right, bottom: Bounding rectangle in source-image pixels,
                     top-left origin, y growing downward.
        confidence: Detection confidence score in [0.0, 1.0].
    """

    tracking_id: Optional[int]
    left: float
    top: float
    right: float
    bottom: float
    confidence: float = 1.0


@dataclass(frozen=True, slots=True)
class FaceBounds:
    """A face located in overlay space.

    Attributes:
        tracking_id: Identity copied unchanged from the DetectionCandidate.
        left, top, right, bottom: Rectangle in overlay pixels.
    """

    tracking_id: Optional[int]
    left: float
    top: float
    right: float
    bottom: float

    def as_int_rect(self):
        """Return (x1, y1, x2, y2) rounded to integer pixels for drawing."""
        return (
            int(round(self.left)),
            int(round(self.top)),
            int(round(self.right)),
            int(round(self.bottom)),
        )
