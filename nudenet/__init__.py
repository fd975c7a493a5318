"""
NudeNet: labeled region detection for images using an ONNX model.

Public API:
    - detect_from_path / detect_from_bytes: One-call detection with the
      process-wide default Detector.
    - Detector: Configurable entry point for detection.
    - Detection: Data transfer object for one labeled region.
    - DetectionLabel, Mode: The closed label and size-policy enumerations.
    - The error types raised by the pipeline.

All other modules in this package are internal implementation details
and should not be imported directly by consumers.

Usage:
    import nudenet

    for det in nudenet.detect_from_path("photo.jpg"):
        print(det.label.value, det.score, det.box)
"""

from nudenet.detection import Detection, DetectionLabel, Mode
from nudenet.detector import Detector, detect_from_bytes, detect_from_path
from nudenet.exceptions import (
    ConfigLoadError,
    DecodeError,
    InferenceError,
    InvalidImageError,
    ModelLoadError,
    NudeNetError,
)

__version__ = "0.1.0"

__all__ = [
    "Detector",
    "Detection",
    "DetectionLabel",
    "Mode",
    "detect_from_path",
    "detect_from_bytes",
    "NudeNetError",
    "DecodeError",
    "InvalidImageError",
    "ModelLoadError",
    "ConfigLoadError",
    "InferenceError",
]
