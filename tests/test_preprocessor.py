"""
Tests for the preprocessing module.
"""

import cv2
import numpy as np
import pytest

from nudenet.detection import Mode
from nudenet.exceptions import DecodeError, InvalidImageError
from nudenet.preprocessor import (
    compute_scale,
    decode_image,
    load_image,
    preprocess,
    to_planar,
)


def test_compute_scale_fast_clamps_longer_side():
    """1000x500 in fast mode: 320/500 = 0.64 would give 640 wide, so it is capped."""
    scale = compute_scale(1000, 500, Mode.FAST)
    assert scale == pytest.approx(0.32)


def test_compute_scale_accurate():
    """Shorter side goes to 800 unless the longer side would pass 1333."""
    assert compute_scale(1000, 800, Mode.ACCURATE) == pytest.approx(1.0)
    assert compute_scale(1000, 500, Mode.ACCURATE) == pytest.approx(1333 / 1000)


def test_compute_scale_upscales_small_images():
    """Small square images are scaled up to the min side."""
    assert compute_scale(160, 160, Mode.FAST) == pytest.approx(2.0)


def test_compute_scale_rejects_zero_dimension():
    with pytest.raises(InvalidImageError):
        compute_scale(0, 100, Mode.FAST)


@pytest.mark.parametrize("mode, max_side", [(Mode.FAST, 320), (Mode.ACCURATE, 1333)])
@pytest.mark.parametrize("h, w", [(500, 1000), (1000, 500), (37, 999), (640, 640), (3000, 41)])
def test_preprocess_longer_side_is_capped(mode, max_side, h, w):
    """The resized longer side never exceeds the mode's max side."""
    image = np.zeros((h, w, 3), dtype=np.uint8)
    tensor, _ = preprocess(image, mode)
    assert max(tensor.shape[1:]) <= max_side


def test_preprocess_output_layout():
    """Tensor is planar float32 without a batch axis."""
    image = np.zeros((500, 1000, 3), dtype=np.uint8)
    tensor, scale = preprocess(image, "fast")

    assert tensor.shape == (3, 160, 320)
    assert tensor.dtype == np.float32
    assert tensor.flags["C_CONTIGUOUS"]
    assert scale == pytest.approx(0.32)


def test_preprocess_normalizes_per_channel():
    """Interleaved RGB values end up in separate planes, divided by 255."""
    image = np.zeros((320, 320, 3), dtype=np.uint8)
    image[..., 0] = 255
    image[..., 2] = 51

    tensor, scale = preprocess(image, Mode.FAST)

    assert scale == pytest.approx(1.0)
    assert np.allclose(tensor[0], 1.0)
    assert np.allclose(tensor[1], 0.0)
    assert np.allclose(tensor[2], 0.2)


def test_to_planar_orders_channels():
    """HWC → CHW keeps every pixel value at its (y, x) position."""
    image = np.arange(2 * 3 * 3, dtype=np.uint8).reshape(2, 3, 3)
    tensor = to_planar(image)

    assert tensor.shape == (3, 2, 3)
    for c in range(3):
        assert np.allclose(tensor[c] * 255.0, image[:, :, c])


def test_preprocess_preserves_aspect_ratio():
    image = np.zeros((300, 900, 3), dtype=np.uint8)
    tensor, _ = preprocess(image, Mode.ACCURATE)
    _, h, w = tensor.shape
    assert w / h == pytest.approx(3.0, rel=0.01)


def test_preprocess_zero_sized_image():
    with pytest.raises(InvalidImageError):
        preprocess(np.zeros((0, 10, 3), dtype=np.uint8), Mode.FAST)


def test_preprocess_rejects_grayscale():
    with pytest.raises(InvalidImageError):
        preprocess(np.zeros((10, 10), dtype=np.uint8), Mode.FAST)


@pytest.mark.parametrize("dtype", [np.float32, np.float64, np.uint16])
def test_preprocess_rejects_non_uint8(dtype):
    """Only 8-bit pixels map into [0, 1] after division by 255."""
    with pytest.raises(InvalidImageError, match="uint8"):
        preprocess(np.full((10, 10, 3), 300, dtype=dtype), Mode.FAST)


def test_preprocess_rejects_unknown_mode():
    with pytest.raises(ValueError):
        preprocess(np.zeros((10, 10, 3), dtype=np.uint8), "slow")


def test_decode_image_returns_rgb():
    """OpenCV decodes BGR; the decoder hands back RGB."""
    bgr = np.zeros((8, 8, 3), dtype=np.uint8)
    bgr[..., 0] = 255  # blue
    ok, encoded = cv2.imencode(".png", bgr)
    assert ok

    rgb = decode_image(encoded.tobytes())

    assert rgb.shape == (8, 8, 3)
    assert np.all(rgb[..., 2] == 255)
    assert np.all(rgb[..., 0] == 0)


def test_decode_image_rejects_garbage():
    with pytest.raises(DecodeError):
        decode_image(b"definitely not an image")


def test_decode_image_rejects_empty():
    with pytest.raises(DecodeError):
        decode_image(b"")


def test_load_image_missing_file(tmp_path):
    with pytest.raises(DecodeError, match="not found"):
        load_image(tmp_path / "missing.jpg")


def test_load_image_reads_file(tmp_path):
    path = tmp_path / "red.png"
    bgr = np.zeros((4, 6, 3), dtype=np.uint8)
    bgr[..., 2] = 200
    cv2.imwrite(str(path), bgr)

    rgb = load_image(path)

    assert rgb.shape == (4, 6, 3)
    assert np.all(rgb[..., 0] == 200)


def test_load_image_corrupt_file(tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"\xff\xd8\xff garbage")
    with pytest.raises(DecodeError):
        load_image(path)
