"""
Preprocessing for the detection pipeline.

Responsibility:
    Decode an image (file path or encoded bytes) into an RGB pixel array,
    resize it uniformly under the mode's size policy, and convert it into
    the planar, normalized float32 tensor the model expects. The scale
    factor used is returned alongside so boxes can be mapped back to the
    original image later.

Non-goals:
    - No inference or coordinate mapping.
    - No batch axis: the inference step adds it as a view.
    - No padding: the resize is uniform and the model accepts any H, W.

Hard-coded:
    - Output channel order is RGB (OpenCV decodes to BGR, converted here).
    - Normalization is a plain division by 255.0 (no mean subtraction).
"""

import math
from pathlib import Path
from typing import Dict, Tuple, Union

import cv2
import numpy as np

from nudenet.detection import Mode
from nudenet.exceptions import DecodeError, InvalidImageError

# (min_side, max_side) per mode
_SIZE_POLICY: Dict[Mode, Tuple[int, int]] = {
    Mode.FAST: (320, 320),
    Mode.ACCURATE: (800, 1333),
}


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def load_image(path: Union[str, Path]) -> np.ndarray:
    """Read an image file into an RGB uint8 array of shape (H, W, 3).

    Raises:
        DecodeError: If the file does not exist or cannot be decoded.
    """
    path = Path(path)
    if not path.is_file():
        raise DecodeError(f"Image file not found: {path}")

    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise DecodeError(f"Unable to decode image file: {path}")

    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def decode_image(data: Union[bytes, bytearray, memoryview]) -> np.ndarray:
    """Decode compressed image bytes (JPEG, PNG, ...) into an RGB array.

    Raises:
        DecodeError: If the buffer is empty or not a decodable image.
    """
    buffer = np.frombuffer(data, dtype=np.uint8)
    if buffer.size == 0:
        raise DecodeError("Cannot decode an empty image buffer.")

    try:
        image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise DecodeError(f"Unable to decode image buffer: {e}") from e

    if image is None:
        raise DecodeError(
            f"Unable to decode image buffer ({buffer.size} bytes). "
            f"Data is corrupt or in an unsupported format."
        )

    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


# ---------------------------------------------------------------------------
# Resize policy
# ---------------------------------------------------------------------------

def compute_scale(width: int, height: int, mode: Mode) -> float:
    """Return the uniform scale factor for an image of the given size.

    The shorter side is scaled to the mode's min_side, unless that would push
    the longer side beyond max_side, in which case the longer side is capped.

    Raises:
        InvalidImageError: If width or height is not positive.
    """
    if width <= 0 or height <= 0:
        raise InvalidImageError(
            f"Image dimensions must be positive, got {width}x{height}."
        )

    min_side, max_side = _SIZE_POLICY[Mode.parse(mode)]

    scale = min_side / min(width, height)
    largest_side = max(width, height)
    if largest_side * scale > max_side:
        scale = min(scale, max_side / largest_side)

    return scale


def resize_image(image: np.ndarray, scale: float) -> np.ndarray:
    """Resize by one factor on both axes using bilinear interpolation.

    Target sizes round half away from zero and never drop below 1 pixel.
    """
    h, w = image.shape[:2]
    new_w = max(1, int(math.floor(w * scale + 0.5)))
    new_h = max(1, int(math.floor(h * scale + 0.5)))

    if (new_w, new_h) == (w, h):
        return image

    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LINEAR)


def to_planar(image: np.ndarray) -> np.ndarray:
    """Convert an interleaved (H, W, C) image into a (C, H, W) float32 tensor in [0, 1]."""
    tensor = np.ascontiguousarray(image.transpose(2, 0, 1), dtype=np.float32)
    tensor /= 255.0
    return tensor


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def preprocess(image: np.ndarray, mode: Union[Mode, str] = Mode.FAST) -> Tuple[np.ndarray, float]:
    """Convert a decoded RGB image into the model input tensor.

    Args:
        image: RGB uint8 array of shape (H, W, 3).
        mode: Size policy ('fast' or 'accurate').

    Returns:
        (tensor, scale): a float32 array of shape (3, H', W') with values in
        [0, 1], and the scale factor applied to the original dimensions.

    Raises:
        InvalidImageError: If the image is empty, not a 3-channel array,
                           or not uint8.
    """
    if not isinstance(image, np.ndarray):
        raise InvalidImageError(
            f"Expected image to be a numpy ndarray, got {type(image).__name__}."
        )

    if image.ndim != 3 or image.shape[2] != 3:
        raise InvalidImageError(
            f"Expected image shape (H, W, 3), got {image.shape}."
        )

    if image.dtype != np.uint8:
        raise InvalidImageError(
            f"Expected image dtype uint8, got {image.dtype}."
        )

    h, w = image.shape[:2]
    scale = compute_scale(w, h, Mode.parse(mode))

    resized = resize_image(image, scale)
    return to_planar(resized), scale
