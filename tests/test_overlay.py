"""
Tests for the OpenCV overlay.
"""

import numpy as np

from facebounds.config import OverlayConfig
from facebounds.detection import FaceBounds
from facebounds.overlay import FaceBoundsOverlay


def test_update_replaces_faces():
    overlay = FaceBoundsOverlay(100, 100)
    overlay.update_faces([FaceBounds(1, 0, 0, 10, 10), FaceBounds(2, 20, 20, 30, 30)])
    overlay.update_faces([FaceBounds(3, 5, 5, 15, 15)])

    assert [f.tracking_id for f in overlay.faces] == [3]


def test_faces_is_a_copy():
    overlay = FaceBoundsOverlay(100, 100)
    source = [FaceBounds(1, 0, 0, 10, 10)]
    overlay.update_faces(source)
    source.clear()
    overlay.faces.clear()

    assert len(overlay.faces) == 1


def test_draw_leaves_input_untouched():
    overlay = FaceBoundsOverlay(64, 64, OverlayConfig(box_color=(0, 0, 255), thickness=1))
    overlay.update_faces([FaceBounds(None, 10, 10, 40, 40)])
    image = np.zeros((64, 64, 3), dtype=np.uint8)

    annotated = overlay.draw(image)

    assert image.sum() == 0
    assert tuple(annotated[10, 10]) == (0, 0, 255)
    assert tuple(annotated[25, 25]) == (0, 0, 0)


def test_draw_labels_tracking_id():
    overlay = FaceBoundsOverlay(200, 200)
    overlay.update_faces([FaceBounds(7, 50, 50, 150, 150)])
    image = np.zeros((200, 200, 3), dtype=np.uint8)

    with_label = overlay.draw(image)
    no_label = FaceBoundsOverlay(200, 200, OverlayConfig(show_tracking_id=False))
    no_label.update_faces(overlay.faces)

    # Label background is drawn just above the box
    assert with_label[:50].sum() > 0
    assert no_label.draw(image)[:48].sum() == 0


def test_resize_and_clear():
    overlay = FaceBoundsOverlay(10, 10)
    overlay.update_faces([FaceBounds(1, 0, 0, 1, 1)])
    overlay.resize(320, 240)
    overlay.clear()

    assert (overlay.width, overlay.height) == (320, 240)
    assert overlay.faces == []
