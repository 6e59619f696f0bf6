"""
Model loading for the OpenCV face detection backend.

Responsibility:
    Locate the SSD-ResNet10 Caffe files, read them into a cv2.dnn.Net and
    select the compute target.

Failure behavior:
    - Missing model files raise FileNotFoundError naming the path.
    - A CUDA request on an OpenCV build without CUDA raises RuntimeError.
"""

import logging
from pathlib import Path
from typing import Tuple

import cv2

from facebounds.config import ModelConfig, get_project_root

logger = logging.getLogger(__name__)

_TARGETS = {
    "cpu": (cv2.dnn.DNN_BACKEND_OPENCV, cv2.dnn.DNN_TARGET_CPU),
    "cuda": (cv2.dnn.DNN_BACKEND_CUDA, cv2.dnn.DNN_TARGET_CUDA),
}


def resolve_model_paths(config: ModelConfig) -> Tuple[Path, Path]:
    """Return absolute (prototxt, weights) paths, relative ones anchored at the project root."""
    root = get_project_root()
    paths = []
    for raw in (config.prototxt_path, config.weights_path):
        path = Path(raw)
        paths.append(path if path.is_absolute() else root / path)
    return paths[0], paths[1]


def model_files_present(config: ModelConfig) -> bool:
    """True when both model files exist on disk."""
    return all(p.is_file() for p in resolve_model_paths(config))


def load_model(config: ModelConfig) -> cv2.dnn.Net:
    """Load and configure the SSD face detection network.

    Raises:
        FileNotFoundError: If prototxt or weights file does not exist.
        RuntimeError: If the requested compute backend is unavailable.
    """
    prototxt, weights = resolve_model_paths(config)

    for label, key, path in (
        ("prototxt", "model.prototxt_path", prototxt),
        ("weights", "model.weights_path", weights),
    ):
        if not path.is_file():
            raise FileNotFoundError(
                f"Face model {label} not found.\n"
                f"  Expected: {path}\n"
                f"  Place the file there or update '{key}' in your config."
            )

    logger.info("Loading face model: prototxt=%s, weights=%s", prototxt, weights)
    net = cv2.dnn.readNetFromCaffe(str(prototxt), str(weights))

    backend_id, target_id = _TARGETS[config.backend]
    try:
        net.setPreferableBackend(backend_id)
        net.setPreferableTarget(target_id)
    except cv2.error as e:
        raise RuntimeError(
            f"Compute backend '{config.backend}' is unavailable in this "
            f"OpenCV build.\n  OpenCV error: {e}"
        ) from e

    logger.info("Face model ready on %s.", config.backend)
    return net
