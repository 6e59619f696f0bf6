"""
Configuration management for the face bounds pipeline.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The system MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - No detection logic, I/O, or model loading belongs here.

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: facebounds/config.py → repo root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelConfig:
    """Model-related configuration.

    Attributes:
        prototxt_path: Path to the .prototxt network definition (relative to project root).
        weights_path: Path to the .caffemodel weights file (relative to project root).
        backend: Compute backend, 'cpu' or 'cuda'.
        input_size: Spatial dimensions (width, height) for the DNN input blob.
        mean_values: Per-channel mean subtraction values (BGR order).
        scale_factor: Pixel value scale factor applied during blob creation.
    """

    prototxt_path: str = "models/deploy.prototxt"
    weights_path: str = "models/res10_300x300_ssd_iter_140000.caffemodel"
    backend: str = "cpu"
    input_size: Tuple[int, int] = (300, 300)
    mean_values: Tuple[float, float, float] = (104.0, 177.0, 123.0)
    scale_factor: float = 1.0


@dataclass(frozen=True)
class DetectorOptions:
    """Options handed to the detector backend at construction.

    Attributes:
        performance_mode: 'fast' or 'accurate'.
        landmark_mode: 'none' or 'all'.
        classification_mode: 'none' or 'all'.
        min_face_size: Smallest face to report, as a fraction of the
                       upright image width.
        tracking_enabled: Whether faces keep a tracking id across frames.
    """

    performance_mode: str = "accurate"
    landmark_mode: str = "none"
    classification_mode: str = "none"
    min_face_size: float = 0.15
    tracking_enabled: bool = True


@dataclass(frozen=True)
class DetectionConfig:
    """Detection thresholds.

    Attributes:
        confidence_threshold: Minimum confidence to accept a detection.
        tracking_iou_threshold: Minimum IoU for a face to keep its tracking id.
        tracking_max_age: Frames a face may go unseen before its id is retired.
    """

    confidence_threshold: float = 0.5
    tracking_iou_threshold: float = 0.3
    tracking_max_age: int = 5


@dataclass(frozen=True)
class InputConfig:
    """Camera source configuration.

    Attributes:
        source: Integer device index (as string) or video file path.
        lens_facing: 'front' or 'back'. Front streams are mirrored in the overlay.
        rotation: Clockwise rotation to bring frames upright: 0, 90, 180 or 270.
        resize_width: Optional width to downscale frames before detection.
                      None means no resizing.
    """

    source: str = "0"
    lens_facing: str = "front"
    rotation: int = 0
    resize_width: Optional[int] = None


@dataclass(frozen=True)
class OverlayConfig:
    """Overlay rendering parameters.

    Attributes:
        width: Overlay width in pixels. None follows the upright frame width.
        height: Overlay height in pixels. None follows the upright frame height.
        box_color: BGR color tuple for bounding boxes.
        thickness: Line thickness in pixels.
        show_tracking_id: Whether to render the tracking id label.
    """

    width: Optional[int] = None
    height: Optional[int] = None
    box_color: Tuple[int, int, int] = (0, 255, 0)
    thickness: int = 2
    show_tracking_id: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    model: ModelConfig = field(default_factory=ModelConfig)
    detector: DetectorOptions = field(default_factory=DetectorOptions)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    input: InputConfig = field(default_factory=InputConfig)
    overlay: OverlayConfig = field(default_factory=OverlayConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_BACKENDS = {"cpu", "cuda"}
_VALID_PERFORMANCE_MODES = {"fast", "accurate"}
_VALID_LANDMARK_MODES = {"none", "all"}
_VALID_CLASSIFICATION_MODES = {"none", "all"}
_VALID_LENS_FACING = {"front", "back"}
_VALID_ROTATIONS = {0, 90, 180, 270}


def _validate(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    if config.model.backend not in _VALID_BACKENDS:
        raise ValueError(
            f"Invalid model.backend: '{config.model.backend}'. "
            f"Must be one of {_VALID_BACKENDS}."
        )

    if config.detector.performance_mode not in _VALID_PERFORMANCE_MODES:
        raise ValueError(
            f"Invalid detector.performance_mode: '{config.detector.performance_mode}'. "
            f"Must be one of {_VALID_PERFORMANCE_MODES}."
        )

    if config.detector.landmark_mode not in _VALID_LANDMARK_MODES:
        raise ValueError(
            f"Invalid detector.landmark_mode: '{config.detector.landmark_mode}'. "
            f"Must be one of {_VALID_LANDMARK_MODES}."
        )

    if config.detector.classification_mode not in _VALID_CLASSIFICATION_MODES:
        raise ValueError(
            f"Invalid detector.classification_mode: "
            f"'{config.detector.classification_mode}'. "
            f"Must be one of {_VALID_CLASSIFICATION_MODES}."
        )

    if not (0.0 <= config.detector.min_face_size <= 1.0):
        raise ValueError(
            f"detector.min_face_size must be in [0.0, 1.0], "
            f"got {config.detector.min_face_size}."
        )

    if not (0.0 <= config.detection.confidence_threshold <= 1.0):
        raise ValueError(
            f"detection.confidence_threshold must be in [0.0, 1.0], "
            f"got {config.detection.confidence_threshold}."
        )

    if not (0.0 <= config.detection.tracking_iou_threshold <= 1.0):
        raise ValueError(
            f"detection.tracking_iou_threshold must be in [0.0, 1.0], "
            f"got {config.detection.tracking_iou_threshold}."
        )

    if config.detection.tracking_max_age < 0:
        raise ValueError(
            f"detection.tracking_max_age must be non-negative, "
            f"got {config.detection.tracking_max_age}."
        )

    if len(config.model.input_size) != 2:
        raise ValueError(
            f"model.input_size must be a (width, height) tuple, "
            f"got {config.model.input_size}."
        )

    if any(d <= 0 for d in config.model.input_size):
        raise ValueError(
            f"model.input_size dimensions must be positive, "
            f"got {config.model.input_size}."
        )

    if config.model.scale_factor <= 0:
        raise ValueError(
            f"model.scale_factor must be positive, "
            f"got {config.model.scale_factor}."
        )

    if config.input.lens_facing not in _VALID_LENS_FACING:
        raise ValueError(
            f"Invalid input.lens_facing: '{config.input.lens_facing}'. "
            f"Must be one of {_VALID_LENS_FACING}."
        )

    if config.input.rotation not in _VALID_ROTATIONS:
        raise ValueError(
            f"input.rotation must be one of {sorted(_VALID_ROTATIONS)}, "
            f"got {config.input.rotation}."
        )

    if config.input.resize_width is not None and config.input.resize_width <= 0:
        raise ValueError(
            f"input.resize_width must be positive or None, "
            f"got {config.input.resize_width}."
        )

    for name in ("width", "height"):
        value = getattr(config.overlay, name)
        if value is not None and value <= 0:
            raise ValueError(
                f"overlay.{name} must be positive or None, got {value}."
            )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_tuple(value, expected_len: int, cast_type=float):
    """Convert a list from YAML into a tuple of the expected type and length."""
    if isinstance(value, (list, tuple)):
        if len(value) != expected_len:
            raise ValueError(
                f"Expected {expected_len} values, got {len(value)}: {value}"
            )
        return tuple(cast_type(v) for v in value)
    return value


def _parse_bool(value) -> bool:
    """Accept YAML booleans as well as strings coming from the environment."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _optional_int(value) -> Optional[int]:
    return int(value) if value is not None else None


def _build_model_config(raw: dict) -> ModelConfig:
    """Build ModelConfig from a raw YAML dict."""
    kwargs = {}
    if "prototxt_path" in raw:
        kwargs["prototxt_path"] = str(raw["prototxt_path"])
    if "weights_path" in raw:
        kwargs["weights_path"] = str(raw["weights_path"])
    if "backend" in raw:
        kwargs["backend"] = str(raw["backend"]).lower()
    if "input_size" in raw:
        kwargs["input_size"] = _parse_tuple(raw["input_size"], 2, int)
    if "mean_values" in raw:
        kwargs["mean_values"] = _parse_tuple(raw["mean_values"], 3, float)
    if "scale_factor" in raw:
        kwargs["scale_factor"] = float(raw["scale_factor"])
    return ModelConfig(**kwargs)


def _build_detector_options(raw: dict) -> DetectorOptions:
    """Build DetectorOptions from a raw YAML dict."""
    kwargs = {}
    for key in ("performance_mode", "landmark_mode", "classification_mode"):
        if key in raw:
            kwargs[key] = str(raw[key]).lower()
    if "min_face_size" in raw:
        kwargs["min_face_size"] = float(raw["min_face_size"])
    if "tracking_enabled" in raw:
        kwargs["tracking_enabled"] = _parse_bool(raw["tracking_enabled"])
    return DetectorOptions(**kwargs)


def _build_detection_config(raw: dict) -> DetectionConfig:
    """Build DetectionConfig from a raw YAML dict."""
    kwargs = {}
    if "confidence_threshold" in raw:
        kwargs["confidence_threshold"] = float(raw["confidence_threshold"])
    if "tracking_iou_threshold" in raw:
        kwargs["tracking_iou_threshold"] = float(raw["tracking_iou_threshold"])
    if "tracking_max_age" in raw:
        kwargs["tracking_max_age"] = int(raw["tracking_max_age"])
    return DetectionConfig(**kwargs)


def _build_input_config(raw: dict) -> InputConfig:
    """Build InputConfig from a raw YAML dict."""
    kwargs = {}
    if "source" in raw:
        kwargs["source"] = str(raw["source"])
    if "lens_facing" in raw:
        kwargs["lens_facing"] = str(raw["lens_facing"]).lower()
    if "rotation" in raw:
        kwargs["rotation"] = int(raw["rotation"])
    if "resize_width" in raw:
        kwargs["resize_width"] = _optional_int(raw["resize_width"])
    return InputConfig(**kwargs)


def _build_overlay_config(raw: dict) -> OverlayConfig:
    """Build OverlayConfig from a raw YAML dict."""
    kwargs = {}
    if "width" in raw:
        kwargs["width"] = _optional_int(raw["width"])
    if "height" in raw:
        kwargs["height"] = _optional_int(raw["height"])
    if "box_color" in raw:
        kwargs["box_color"] = _parse_tuple(raw["box_color"], 3, int)
    if "thickness" in raw:
        kwargs["thickness"] = int(raw["thickness"])
    if "show_tracking_id" in raw:
        kwargs["show_tracking_id"] = _parse_bool(raw["show_tracking_id"])
    return OverlayConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "FACE_BOUNDS_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        FACE_BOUNDS_MODEL_BACKEND=cuda
        FACE_BOUNDS_DETECTOR_MIN_FACE_SIZE=0.2
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_BACKEND": ("model", "backend"),
        f"{_ENV_PREFIX}MODEL_SCALE_FACTOR": ("model", "scale_factor"),
        f"{_ENV_PREFIX}DETECTOR_PERFORMANCE_MODE": ("detector", "performance_mode"),
        f"{_ENV_PREFIX}DETECTOR_MIN_FACE_SIZE": ("detector", "min_face_size"),
        f"{_ENV_PREFIX}DETECTOR_TRACKING_ENABLED": ("detector", "tracking_enabled"),
        f"{_ENV_PREFIX}DETECTION_CONFIDENCE_THRESHOLD": ("detection", "confidence_threshold"),
        f"{_ENV_PREFIX}INPUT_SOURCE": ("input", "source"),
        f"{_ENV_PREFIX}INPUT_LENS_FACING": ("input", "lens_facing"),
        f"{_ENV_PREFIX}INPUT_ROTATION": ("input", "rotation"),
        f"{_ENV_PREFIX}INPUT_RESIZE_WIDTH": ("input", "resize_width"),
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            raw.setdefault(section, {})[key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration.

    Precedence (highest → lowest):
        Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the system runs entirely on defaults.

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_absolute():
            resolved = _PROJECT_ROOT / resolved

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    config = AppConfig(
        model=_build_model_config(raw.get("model", {})),
        detector=_build_detector_options(raw.get("detector", {})),
        detection=_build_detection_config(raw.get("detection", {})),
        input=_build_input_config(raw.get("input", {})),
        overlay=_build_overlay_config(raw.get("overlay", {})),
    )

    _validate(config)

    logger.debug("Configuration loaded: %s", config)
    return config
