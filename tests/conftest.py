from __future__ import annotations

from io import BytesIO

import numpy as np
import pytest
from PIL import Image


def _encode(array: np.ndarray, fmt: str = "PNG") -> bytes:
    buf = BytesIO()
    Image.fromarray(np.asarray(array, dtype=np.uint8)).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def encode_image():
    """Encode a uint8 array (HxW gray or HxWx3 RGB) as image bytes."""
    return _encode


@pytest.fixture
def gradient_png() -> bytes:
    # 200x200 horizontal gradient
    row = np.linspace(0, 255, 200).astype(np.uint8)
    return _encode(np.tile(row, (200, 1)))


@pytest.fixture
def checker_png() -> bytes:
    yy, xx = np.mgrid[0:200, 0:200]
    board = (((yy // 20) + (xx // 20)) % 2 * 255).astype(np.uint8)
    return _encode(board)


@pytest.fixture
def not_an_image() -> bytes:
    return b"this is definitely not an image file"
