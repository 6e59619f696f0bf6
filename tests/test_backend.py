"""
Tests for the OpenCV face detection backend.
"""

import numpy as np
import pytest

from facebounds.backend import OpenCVFaceBackend, parse_ssd_output
from facebounds.config import DetectionConfig, DetectorOptions, ModelConfig
from facebounds.errors import DetectionBackendError
from facebounds.frame import Frame
from facebounds.image import InputImage
from facebounds.model_loader import model_files_present


class FakeNet:
    """Stands in for cv2.dnn.Net, replaying a fixed SSD tensor."""

    def __init__(self, output=None, error=None):
        self.output = output
        self.error = error
        self.blobs = []

    def setInput(self, blob):
        self.blobs.append(blob)

    def forward(self):
        if self.error is not None:
            raise self.error
        return self.output


def _tensor(*rows):
    return np.array([[list(rows)]], dtype=np.float32)


def _image(width=640, height=480):
    return InputImage(pixels=np.zeros((height, width, 3), dtype=np.uint8))


def test_parse_valid_detection():
    """Test parsing a valid detection tensor."""
    tensor = _tensor([0, 1, 0.95, 0.0, 0.0, 0.5, 0.5])

    (candidate,) = parse_ssd_output(tensor, 640, 480, confidence_threshold=0.5)

    assert candidate.confidence == pytest.approx(0.95, abs=1e-5)
    assert candidate.tracking_id is None
    assert (candidate.left, candidate.top) == (0.0, 0.0)
    assert candidate.right == pytest.approx(320.0)
    assert candidate.bottom == pytest.approx(240.0)


def test_parse_confidence_filtering():
    tensor = _tensor([0, 1, 0.4, 0.0, 0.0, 0.5, 0.5])
    assert parse_ssd_output(tensor, 640, 480, confidence_threshold=0.5) == []


def test_parse_clamping():
    tensor = _tensor([0, 1, 0.9, -0.1, -0.1, 1.2, 1.2])

    (candidate,) = parse_ssd_output(tensor, 100, 100, confidence_threshold=0.5)

    assert (candidate.left, candidate.top) == (0.0, 0.0)
    assert (candidate.right, candidate.bottom) == (99.0, 99.0)


def test_parse_degenerate_box():
    tensor = _tensor([0, 1, 0.9, 0.5, 0.5, 0.4, 0.4])
    assert parse_ssd_output(tensor, 100, 100, confidence_threshold=0.5) == []


def test_parse_min_face_size():
    """Faces narrower than min_face_size * width are dropped."""
    tensor = _tensor(
        [0, 1, 0.9, 0.0, 0.0, 0.1, 0.1],
        [0, 1, 0.8, 0.5, 0.5, 0.8, 0.8],
    )

    candidates = parse_ssd_output(tensor, 100, 100, 0.5, min_face_size=0.15)

    assert len(candidates) == 1
    assert candidates[0].confidence == pytest.approx(0.8)


def test_parse_sorted_by_confidence():
    tensor = _tensor(
        [0, 1, 0.6, 0.0, 0.0, 0.5, 0.5],
        [0, 1, 0.9, 0.5, 0.5, 1.0, 1.0],
    )
    confidences = [c.confidence for c in parse_ssd_output(tensor, 100, 100, 0.5)]
    assert confidences == sorted(confidences, reverse=True)


def test_backend_assigns_tracking_ids():
    net = FakeNet(_tensor([0, 1, 0.9, 0.1, 0.1, 0.5, 0.5]))
    backend = OpenCVFaceBackend(net=net)
    try:
        first = backend.process(_image()).result(timeout=5)
        second = backend.process(_image()).result(timeout=5)
    finally:
        backend.close()

    assert first[0].tracking_id is not None
    assert second[0].tracking_id == first[0].tracking_id
    assert net.blobs[0].shape == (1, 3, 300, 300)


def test_backend_without_tracking():
    net = FakeNet(_tensor([0, 1, 0.9, 0.1, 0.1, 0.5, 0.5]))
    backend = OpenCVFaceBackend(DetectorOptions(tracking_enabled=False), net=net)
    try:
        (candidate,) = backend.process(_image()).result(timeout=5)
    finally:
        backend.close()

    assert candidate.tracking_id is None


def test_fast_mode_halves_input_size():
    net = FakeNet(_tensor([0, 1, 0.1, 0.1, 0.1, 0.5, 0.5]))
    backend = OpenCVFaceBackend(
        DetectorOptions(performance_mode="fast"),
        ModelConfig(input_size=(300, 300)),
        net=net,
    )
    try:
        assert backend.process(_image()).result(timeout=5) == []
    finally:
        backend.close()

    assert net.blobs[0].shape == (1, 3, 150, 150)


def test_inference_failure_is_wrapped():
    backend = OpenCVFaceBackend(net=FakeNet(error=RuntimeError("cuda fell over")))
    try:
        future = backend.process(_image())
        with pytest.raises(DetectionBackendError, match="cuda fell over"):
            future.result(timeout=5)
    finally:
        backend.close()


def test_closed_backend_fails_future():
    backend = OpenCVFaceBackend(net=FakeNet(_tensor([0, 1, 0.9, 0, 0, 1, 1])))
    backend.close()

    with pytest.raises(DetectionBackendError, match="closed"):
        backend.process(_image()).result(timeout=5)


def test_missing_model_files_fail_fast(tmp_path):
    config = ModelConfig(
        prototxt_path=str(tmp_path / "missing.prototxt"),
        weights_path=str(tmp_path / "missing.caffemodel"),
    )
    with pytest.raises(FileNotFoundError, match="prototxt"):
        OpenCVFaceBackend(model_config=config)


@pytest.mark.skipif(not model_files_present(ModelConfig()), reason="Model files not found")
def test_backend_integration_smoke():
    """Smoke test: the real model loads and runs on a blank rotated frame."""
    backend = OpenCVFaceBackend(detection_config=DetectionConfig(confidence_threshold=0.5))
    frame = Frame(data=np.zeros((480, 640, 3), dtype=np.uint8),
                  width=640, height=480, rotation=90)
    try:
        candidates = backend.process(InputImage.from_frame(frame)).result(timeout=30)
    finally:
        backend.close()

    assert isinstance(candidates, list)


def test_reset_retires_tracking_ids():
    """After reset() the same face is reported under a fresh id."""
    net = FakeNet(_tensor([0, 1, 0.9, 0.1, 0.1, 0.5, 0.5]))
    backend = OpenCVFaceBackend(net=net)
    try:
        (before,) = backend.process(_image()).result(timeout=5)
        backend.reset()
        (after,) = backend.process(_image()).result(timeout=5)
    finally:
        backend.close()

    assert after.tracking_id != before.tracking_id


def test_reset_without_tracking_or_after_close_is_harmless():
    untracked = OpenCVFaceBackend(DetectorOptions(tracking_enabled=False), net=FakeNet())
    untracked.reset()
    untracked.close()

    closed = OpenCVFaceBackend(net=FakeNet())
    closed.close()
    closed.reset()


def test_default_options_log_no_unsupported_modes(caplog):
    """Default options only ask for what the OpenCV backend provides."""
    caplog.set_level("DEBUG", logger="facebounds.backend")
    backend = OpenCVFaceBackend(net=FakeNet())
    backend.close()

    assert "not supported" not in caplog.text


def test_unsupported_modes_are_logged(caplog):
    caplog.set_level("INFO", logger="facebounds.backend")
    backend = OpenCVFaceBackend(DetectorOptions(landmark_mode="all"), net=FakeNet())
    backend.close()

    assert "landmark_mode=all is not supported" in caplog.text
