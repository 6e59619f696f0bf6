"""
Tests for the detector-to-overlay coordinate mapping.
"""

import pytest

from facebounds.bounds_mapper import map_all, map_bounds
from facebounds.detection import DetectionCandidate
from facebounds.frame import Frame, LensFacing


def _frame(width, height, rotation=0, lens=LensFacing.BACK):
    return Frame(data=None, width=width, height=height,
                 rotation=rotation, lens_facing=lens)


def _rect(bounds):
    return (bounds.left, bounds.top, bounds.right, bounds.bottom)


def test_rotated_front_lens_is_mirrored():
    """Portrait sensor rotated 90°, front lens, overlay at unit scale."""
    frame = _frame(1080, 1920, rotation=90, lens=LensFacing.FRONT)
    candidate = DetectionCandidate(tracking_id=4, left=100, top=200, right=300, bottom=400)

    bounds = map_bounds(candidate, frame, 1920, 1080)

    assert _rect(bounds) == pytest.approx((1620, 200, 1820, 400))


def test_rotated_back_lens_passes_through():
    frame = _frame(1080, 1920, rotation=90, lens=LensFacing.BACK)
    candidate = DetectionCandidate(tracking_id=4, left=100, top=200, right=300, bottom=400)

    bounds = map_bounds(candidate, frame, 1920, 1080)

    assert _rect(bounds) == pytest.approx((100, 200, 300, 400))


def test_upright_frame_scaled_to_overlay():
    frame = _frame(640, 480, rotation=0)
    candidate = DetectionCandidate(tracking_id=None, left=10, top=10, right=20, bottom=20)

    bounds = map_bounds(candidate, frame, 1280, 960)

    assert _rect(bounds) == pytest.approx((20, 20, 40, 40))


def test_non_uniform_scale_is_applied_per_axis():
    frame = _frame(100, 100)
    candidate = DetectionCandidate(tracking_id=1, left=10, top=10, right=20, bottom=20)

    bounds = map_bounds(candidate, frame, 300, 50)

    assert _rect(bounds) == pytest.approx((30, 5, 60, 10))


@pytest.mark.parametrize("rotation", [90, 270])
def test_quarter_turns_swap_axes(rotation):
    """Scale factors use the swapped frame size."""
    frame = _frame(480, 640, rotation=rotation)
    candidate = DetectionCandidate(tracking_id=1, left=0, top=0, right=640, bottom=480)

    bounds = map_bounds(candidate, frame, 1280, 960)

    assert _rect(bounds) == pytest.approx((0, 0, 1280, 960))


def test_half_turn_keeps_axes():
    frame = _frame(640, 480, rotation=180, lens=LensFacing.FRONT)
    candidate = DetectionCandidate(tracking_id=1, left=0, top=0, right=100, bottom=50)

    bounds = map_bounds(candidate, frame, 640, 480)

    assert _rect(bounds) == pytest.approx((540, 0, 640, 50))


def test_vertical_never_mirrored():
    frame = _frame(200, 100, lens=LensFacing.FRONT)
    candidate = DetectionCandidate(tracking_id=1, left=0, top=10, right=50, bottom=30)

    bounds = map_bounds(candidate, frame, 200, 100)

    assert (bounds.top, bounds.bottom) == (10, 30)


@pytest.mark.parametrize("tracking_id", [None, 0, 42])
def test_tracking_identity_preserved(tracking_id):
    frame = _frame(640, 480, lens=LensFacing.FRONT)
    candidate = DetectionCandidate(tracking_id=tracking_id, left=1, top=2, right=3, bottom=4)

    assert map_bounds(candidate, frame, 320, 240).tracking_id == tracking_id


def test_map_all_preserves_order():
    frame = _frame(100, 100)
    candidates = [
        DetectionCandidate(tracking_id=i, left=i, top=i, right=i + 1, bottom=i + 1)
        for i in range(3)
    ]

    mapped = map_all(candidates, frame, 100, 100)

    assert [b.tracking_id for b in mapped] == [0, 1, 2]
