"""
Configuration management for the detection system.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The system MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - No detection logic, I/O beyond reading the YAML file, or model loading
      belongs here.

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple, Union

import yaml

from nudenet.detection import Mode

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: nudenet/config.py → project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Label file shipped inside the package, so it survives a regular install
DEFAULT_CLASSES_PATH = str(Path(__file__).resolve().parent / "data" / "classes")


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


def resolve_path(path: Union[str, Path]) -> Path:
    """Resolve a configured path against the project root if relative."""
    resolved = Path(path)
    if not resolved.is_absolute():
        resolved = _PROJECT_ROOT / resolved
    return resolved


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelConfig:
    """Model-related configuration.

    Attributes:
        model_path: Path to the serialized ONNX graph (relative to project root).
        classes_path: Path to the newline-delimited class-label file. Defaults
            to the copy shipped in the package.
        providers: ONNX Runtime execution providers, in priority order.
    """

    model_path: str = "models/detector.onnx"
    classes_path: str = DEFAULT_CLASSES_PATH
    providers: Tuple[str, ...] = ("CPUExecutionProvider",)


@dataclass(frozen=True)
class DetectionConfig:
    """Detection defaults applied when a call does not override them.

    Attributes:
        mode: Size policy for resizing ('fast' or 'accurate').
        min_prob: Minimum class score for an anchor to become a candidate.
        iou_threshold: IoU above which same-label boxes are suppressed.
    """

    mode: Mode = Mode.FAST
    min_prob: float = 0.25
    iou_threshold: float = 0.45


@dataclass(frozen=True)
class InputConfig:
    """Input source configuration for the CLI.

    Attributes:
        source: Image file or directory of images. None means not set.
        recursive: Whether to descend into subdirectories of a directory source.
    """

    source: Optional[str] = None
    recursive: bool = False


@dataclass(frozen=True)
class OutputConfig:
    """Output behavior configuration.

    Attributes:
        mode: Output mode(s). Supports multiple comma-separated values:
              'print', 'save_image', 'save_json', 'save_csv'.
              Example: "print,save_json"
        save_path: Directory where output artifacts are written.
    """

    mode: str = "print"
    save_path: str = "output/"


@dataclass(frozen=True)
class VisualizationConfig:
    """Visualization rendering parameters.

    Attributes:
        box_color: BGR color tuple for bounding boxes.
        thickness: Line thickness in pixels.
        show_confidence: Whether to render the confidence score next to the label.
    """

    box_color: Tuple[int, int, int] = (0, 0, 255)
    thickness: int = 2
    show_confidence: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_OUTPUT_MODES = {"print", "save_image", "save_json", "save_csv"}


def _validate(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    if not config.model.providers:
        raise ValueError("model.providers must name at least one execution provider.")

    if not isinstance(config.detection.mode, Mode):
        raise ValueError(
            f"Invalid detection.mode: '{config.detection.mode}'. "
            f"Must be one of {[m.value for m in Mode]}."
        )

    modes = set(m.strip() for m in config.output.mode.split(","))
    invalid_modes = modes - _VALID_OUTPUT_MODES
    if invalid_modes:
        raise ValueError(
            f"Invalid output.mode(s): {invalid_modes}. "
            f"Valid modes: {_VALID_OUTPUT_MODES}. "
            f"Use comma-separated values for multiple outputs."
        )

    if not (0.0 <= config.detection.min_prob <= 1.0):
        raise ValueError(
            f"detection.min_prob must be in [0.0, 1.0], "
            f"got {config.detection.min_prob}."
        )

    if not (0.0 <= config.detection.iou_threshold <= 1.0):
        raise ValueError(
            f"detection.iou_threshold must be in [0.0, 1.0], "
            f"got {config.detection.iou_threshold}."
        )

    if config.visualization.thickness <= 0:
        raise ValueError(
            f"visualization.thickness must be positive, "
            f"got {config.visualization.thickness}."
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
    """Interpret YAML booleans and env-var strings alike."""
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _build_model_config(raw: dict) -> ModelConfig:
    """Build ModelConfig from a raw YAML dict."""
    kwargs = {}
    if "model_path" in raw:
        kwargs["model_path"] = str(raw["model_path"])
    if "classes_path" in raw:
        kwargs["classes_path"] = str(raw["classes_path"])
    if "providers" in raw:
        providers = raw["providers"]
        if isinstance(providers, str):
            providers = [p.strip() for p in providers.split(",") if p.strip()]
        kwargs["providers"] = tuple(str(p) for p in providers)
    return ModelConfig(**kwargs)


def _build_detection_config(raw: dict) -> DetectionConfig:
    """Build DetectionConfig from a raw YAML dict."""
    kwargs = {}
    if "mode" in raw:
        kwargs["mode"] = Mode.parse(str(raw["mode"]))
    if "min_prob" in raw:
        kwargs["min_prob"] = float(raw["min_prob"])
    if "iou_threshold" in raw:
        kwargs["iou_threshold"] = float(raw["iou_threshold"])
    return DetectionConfig(**kwargs)


def _build_input_config(raw: dict) -> InputConfig:
    """Build InputConfig from a raw YAML dict."""
    kwargs = {}
    if "source" in raw:
        val = raw["source"]
        kwargs["source"] = str(val) if val is not None else None
    if "recursive" in raw:
        kwargs["recursive"] = _parse_bool(raw["recursive"])
    return InputConfig(**kwargs)


def _build_output_config(raw: dict) -> OutputConfig:
    """Build OutputConfig from a raw YAML dict."""
    kwargs = {}
    if "mode" in raw:
        kwargs["mode"] = str(raw["mode"]).lower()
    if "save_path" in raw:
        kwargs["save_path"] = str(raw["save_path"])
    return OutputConfig(**kwargs)


def _build_visualization_config(raw: dict) -> VisualizationConfig:
    """Build VisualizationConfig from a raw YAML dict."""
    kwargs = {}
    if "box_color" in raw:
        kwargs["box_color"] = _parse_tuple(raw["box_color"], 3, int)
    if "thickness" in raw:
        kwargs["thickness"] = int(raw["thickness"])
    if "show_confidence" in raw:
        kwargs["show_confidence"] = _parse_bool(raw["show_confidence"])
    return VisualizationConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "NUDENET_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        NUDENET_MODEL_PATH=/opt/models/detector.onnx
        NUDENET_DETECTION_MIN_PROB=0.4
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_PATH": ("model", "model_path"),
        f"{_ENV_PREFIX}MODEL_CLASSES_PATH": ("model", "classes_path"),
        f"{_ENV_PREFIX}MODEL_PROVIDERS": ("model", "providers"),
        f"{_ENV_PREFIX}DETECTION_MODE": ("detection", "mode"),
        f"{_ENV_PREFIX}DETECTION_MIN_PROB": ("detection", "min_prob"),
        f"{_ENV_PREFIX}DETECTION_IOU_THRESHOLD": ("detection", "iou_threshold"),
        f"{_ENV_PREFIX}INPUT_SOURCE": ("input", "source"),
        f"{_ENV_PREFIX}OUTPUT_MODE": ("output", "mode"),
        f"{_ENV_PREFIX}OUTPUT_SAVE_PATH": ("output", "save_path"),
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
                     the system runs entirely on defaults (safe for
                     programmatic usage).

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
        resolved = resolve_path(config_path)

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

    # --- Build typed configs ---
    config = AppConfig(
        model=_build_model_config(raw.get("model", {})),
        detection=_build_detection_config(raw.get("detection", {})),
        input=_build_input_config(raw.get("input", {})),
        output=_build_output_config(raw.get("output", {})),
        visualization=_build_visualization_config(raw.get("visualization", {})),
    )

    # --- Validate ---
    _validate(config)

    logger.debug("Configuration loaded: %s", config)
    return config
