"""
Mapping of detector output into overlay space.

Responsibility:
    Convert a DetectionCandidate, expressed in the upright source image
    of a Frame, into a FaceBounds expressed in the overlay's pixel space.

Hard-coded:
    - Frames rotated by 90 or 270 degrees have width and height swapped.
    - Front-lens frames are mirrored horizontally; vertical coordinates
      are only ever scaled.
    - X and Y are scaled independently. The overlay is expected to match
      the frame's aspect ratio upstream, so non-uniform scale is allowed.

Callers must not pass frames with zero width or height.
"""

from typing import Iterable, List

from facebounds.detection import DetectionCandidate, FaceBounds
from facebounds.frame import Frame, LensFacing


def map_bounds(
    candidate: DetectionCandidate,
    frame: Frame,
    overlay_width: float,
    overlay_height: float,
) -> FaceBounds:
    """Map one detected face from source-image space to overlay space.

    Args:
        candidate: Face reported by the detector backend.
        frame: The frame the candidate was detected in.
        overlay_width: Overlay width in pixels.
        overlay_height: Overlay height in pixels.

    Returns:
        A FaceBounds carrying the candidate's tracking identity unchanged.
    """
    width, height = frame.effective_size

    scale_x = overlay_width / width
    scale_y = overlay_height / height

    if frame.lens_facing == LensFacing.FRONT:
        left = width - candidate.right
        right = width - candidate.left
    else:
        left = candidate.left
        right = candidate.right

    return FaceBounds(
        tracking_id=candidate.tracking_id,
        left=scale_x * left,
        top=scale_y * candidate.top,
        right=scale_x * right,
        bottom=scale_y * candidate.bottom,
    )


def map_all(
    candidates: Iterable[DetectionCandidate],
    frame: Frame,
    overlay_width: float,
    overlay_height: float,
) -> List[FaceBounds]:
    """Map every candidate of one detection result, preserving order."""
    return [
        map_bounds(candidate, frame, overlay_width, overlay_height)
        for candidate in candidates
    ]
