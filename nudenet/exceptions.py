"""
Error taxonomy for the detection pipeline.

Every failure surfaces synchronously to the caller of the detection entry
point as one of the types below. None of them are retried internally.

Image errors also derive from ValueError, load and inference errors from
RuntimeError, so code written against builtin exception types keeps working.
"""


class NudeNetError(Exception):
    """Base exception for all detection pipeline errors."""


class DecodeError(NudeNetError, ValueError):
    """Raised when image bytes or an image file cannot be decoded."""


class InvalidImageError(NudeNetError, ValueError):
    """Raised when a decoded image has zero width/height or a bad layout."""


class ModelLoadError(NudeNetError, RuntimeError):
    """Raised when the model file is missing or cannot be parsed."""


class ConfigLoadError(NudeNetError, RuntimeError):
    """Raised when the class-label file is missing or does not match the model."""


class InferenceError(NudeNetError, RuntimeError):
    """Raised when the inference engine fails during a forward pass."""
