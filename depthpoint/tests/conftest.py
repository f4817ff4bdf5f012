"""Shared fixtures: encoded test images."""

from io import BytesIO

import numpy as np
import pytest
from PIL import Image


def encode_png(arr: np.ndarray) -> bytes:
    buf = BytesIO()
    Image.fromarray(arr).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def depth_png():
    """4x4 grayscale depth map as PNG bytes, values 0..240 in raster order."""
    arr = (np.arange(16, dtype=np.uint8) * 16).reshape(4, 4)
    return encode_png(arr)


@pytest.fixture
def color_png():
    """4x4 RGB image as PNG bytes, every pixel (200, 100, 50)."""
    return encode_png(np.tile(np.array([200, 100, 50], dtype=np.uint8), (4, 4, 1)))


@pytest.fixture
def wrong_size_png():
    return encode_png(np.zeros((10, 10, 3), dtype=np.uint8))
