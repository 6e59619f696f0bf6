"""
Tests for the IoU tracker.
"""

from facebounds.tracker import IoUTracker, _iou


def test_iou_basic():
    assert _iou((0, 0, 10, 10), (0, 0, 10, 10)) == 1.0
    assert _iou((0, 0, 10, 10), (20, 20, 30, 30)) == 0.0
    assert _iou((0, 0, 10, 10), (5, 0, 15, 10)) == 50 / 150


def test_ids_stable_for_overlapping_boxes():
    tracker = IoUTracker(iou_threshold=0.3)

    first = tracker.update([(0, 0, 10, 10), (100, 100, 120, 120)])
    second = tracker.update([(101, 101, 121, 121), (1, 1, 11, 11)])

    assert len(set(first)) == 2
    assert second == [first[1], first[0]]


def test_new_face_gets_new_id():
    tracker = IoUTracker()
    (a,) = tracker.update([(0, 0, 10, 10)])
    ids = tracker.update([(0, 0, 10, 10), (50, 50, 60, 60)])

    assert ids[0] == a
    assert ids[1] not in (a,)


def test_tracks_retired_after_max_age():
    tracker = IoUTracker(max_age=1)
    (a,) = tracker.update([(0, 0, 10, 10)])

    tracker.update([])
    assert len(tracker) == 1
    tracker.update([])
    assert len(tracker) == 0

    (b,) = tracker.update([(0, 0, 10, 10)])
    assert b != a


def test_reset_does_not_reuse_ids():
    tracker = IoUTracker()
    (a,) = tracker.update([(0, 0, 10, 10)])
    tracker.reset()
    (b,) = tracker.update([(0, 0, 10, 10)])
    assert b != a
