"""
Detector: the public API for region detection.

This module is the ONLY intended programmatic entry point for consumers
of the library. All other modules are internal.

Public contract:
    Detector.detect(image_source, mode=None, min_prob=None) -> list[Detection]
    detect_from_path(path, mode=None, min_prob=None) -> list[Detection]
    detect_from_bytes(data, mode=None, min_prob=None) -> list[Detection]

Each call runs Preprocessing → Inference → Decoding → Suppression with no
retries; any failure aborts the call with the originating error. The only
state that outlives a call is the per-worker session cache and the
process-wide class registry, both initialized lazily on first use.

Thread-safety:
    Detector instances may be shared across threads. Every thread runs
    inference on its own session.

Non-goals:
    - No batching of several images per forward pass.
    - No visualization or output writing.
    - No timeouts or cancellation.
"""

import logging
import time
from functools import partial
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from nudenet.class_registry import ClassRegistry, LazyOnce, get_registry
from nudenet.config import AppConfig, load_config, resolve_path
from nudenet.decoder import decode
from nudenet.detection import Detection, Mode
from nudenet.exceptions import InferenceError
from nudenet.model_loader import load_session
from nudenet.nms import suppress
from nudenet.preprocessor import decode_image, load_image, preprocess
from nudenet.session_cache import SessionCache

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, bytearray, memoryview, np.ndarray]


class Detector:
    """YOLO-style ONNX detector with per-thread sessions.

    Usage:
        detector = Detector()                         # Uses safe defaults
        detector = Detector(config=my_config)         # Custom config
        detections = detector.detect("photo.jpg")     # Path
        detections = detector.detect(jpeg_bytes)      # Encoded bytes
        detections = detector.detect(rgb_array)       # Decoded RGB array

    Nothing is loaded in the constructor. The model is loaded the first time
    each thread calls detect(); the class file the first time any thread does.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        session_cache: Optional[SessionCache] = None,
        registry: Optional[ClassRegistry] = None,
    ) -> None:
        """Initialize the detector.

        Args:
            config: Application configuration. If None, safe defaults
                    are used (no config file required).
            session_cache: Per-worker session cache. Defaults to one that
                           loads config.model with ONNX Runtime.
            registry: Class registry. Defaults to the process-wide registry
                      for config.model.classes_path.
        """
        if config is None:
            config = load_config()

        self._config = config
        if session_cache is None:
            session_cache = SessionCache(partial(load_session, config.model))
        if registry is None:
            registry = get_registry(resolve_path(config.model.classes_path))

        self._sessions = session_cache
        self._registry = registry

        logger.debug(
            "Detector initialized (model=%s, mode=%s, min_prob=%.2f)",
            config.model.model_path,
            config.detection.mode.value,
            config.detection.min_prob,
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def detect(
        self,
        image_source: ImageSource,
        mode: Optional[Union[Mode, str]] = None,
        min_prob: Optional[float] = None,
    ) -> List[Detection]:
        """Detect labeled regions in one image.

        Args:
            image_source: A file path, encoded image bytes, or an RGB uint8
                          array of shape (H, W, 3).
            mode: 'fast' or 'accurate'. Defaults to detection.mode from config.
            min_prob: Minimum class score. Defaults to detection.min_prob.

        Returns:
            Detections in original image coordinates, highest score first.
            An empty list is a valid result.

        Raises:
            DecodeError: If the image cannot be read or decoded.
            InvalidImageError: If the image has zero width or height.
            ModelLoadError: If this thread's session cannot be created.
            ConfigLoadError: If the class file is missing or does not match the model.
            InferenceError: If the forward pass fails.
            ValueError: If mode is not a known mode.
        """
        mode = self._config.detection.mode if mode is None else Mode.parse(mode)
        if min_prob is None:
            min_prob = self._config.detection.min_prob

        # Preprocessing
        started = time.perf_counter()
        image = self._load(image_source)
        tensor, scale = preprocess(image, mode)
        preprocessed = time.perf_counter()

        # Inference
        handle = self._sessions.get_session()
        output = handle.run(tensor)
        inferred = time.perf_counter()

        # Decoding
        self._check_output(output)
        candidates = decode(output, self._registry.labels(), scale, min_prob)

        # Suppression
        detections = suppress(candidates, self._config.detection.iou_threshold)
        finished = time.perf_counter()

        logger.debug(
            "Detection done (mode=%s, scale=%.4f, candidates=%d, kept=%d): "
            "preprocess=%.1fms inference=%.1fms postprocess=%.1fms",
            mode.value, scale, len(candidates), len(detections),
            (preprocessed - started) * 1000,
            (inferred - preprocessed) * 1000,
            (finished - inferred) * 1000,
        )

        return detections

    def detect_from_path(
        self,
        path: Union[str, Path],
        mode: Optional[Union[Mode, str]] = None,
        min_prob: Optional[float] = None,
    ) -> List[Detection]:
        """Detect labeled regions in an image file."""
        return self.detect(Path(path), mode=mode, min_prob=min_prob)

    def detect_from_bytes(
        self,
        data: Union[bytes, bytearray, memoryview],
        mode: Optional[Union[Mode, str]] = None,
        min_prob: Optional[float] = None,
    ) -> List[Detection]:
        """Detect labeled regions in encoded image bytes (JPEG, PNG, ...)."""
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(
                f"Expected bytes-like image data, got {type(data).__name__}."
            )
        return self.detect(data, mode=mode, min_prob=min_prob)

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    @property
    def sessions(self) -> SessionCache:
        """Return the per-worker session cache."""
        return self._sessions

    @property
    def registry(self) -> ClassRegistry:
        """Return the class registry."""
        return self._registry

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    @staticmethod
    def _load(image_source: ImageSource) -> np.ndarray:
        """Turn any supported image source into an RGB array."""
        if isinstance(image_source, np.ndarray):
            return image_source
        if isinstance(image_source, (bytes, bytearray, memoryview)):
            return decode_image(image_source)
        if isinstance(image_source, (str, Path)):
            return load_image(image_source)

        raise TypeError(
            f"Unsupported image source type: {type(image_source).__name__}. "
            f"Pass a path, encoded bytes, or an RGB numpy array."
        )

    def _check_output(self, output: np.ndarray) -> None:
        """Validate the raw output layout against the class registry.

        Raises:
            InferenceError: If the output is not shaped (1, 4 + C, N).
            ConfigLoadError: If C differs from the number of known classes.
        """
        if output.ndim != 3 or output.shape[0] != 1:
            raise InferenceError(
                f"Unexpected model output shape {output.shape}; "
                f"expected (1, 4 + C, N)."
            )
        self._registry.check_channels(output.shape[1])


# ---------------------------------------------------------------------------
# Module-level convenience API
# ---------------------------------------------------------------------------

_default_detector: LazyOnce[Detector] = LazyOnce(Detector)


def get_default_detector() -> Detector:
    """Return the process-wide Detector built from default configuration."""
    return _default_detector.get()


def detect_from_path(
    path: Union[str, Path],
    mode: Union[Mode, str] = Mode.FAST,
    min_prob: Optional[float] = None,
) -> List[Detection]:
    """Detect labeled regions in an image file using the default detector.

    Example:
        for det in detect_from_path("photo.jpg", mode="accurate", min_prob=0.5):
            print(det.label.value, det.score, det.box)
    """
    return get_default_detector().detect_from_path(path, mode=mode, min_prob=min_prob)


def detect_from_bytes(
    data: Union[bytes, bytearray, memoryview],
    mode: Union[Mode, str] = Mode.FAST,
    min_prob: Optional[float] = None,
) -> List[Detection]:
    """Detect labeled regions in encoded image bytes using the default detector."""
    return get_default_detector().detect_from_bytes(data, mode=mode, min_prob=min_prob)
