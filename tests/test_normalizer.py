import io

import numpy as np
import pytest

from fingerauth.config import MatcherConfig
from fingerauth.errors import DecodeError, ImageReadError
from fingerauth.normalizer import ImageNormalizer


@pytest.fixture
def normalizer():
    return ImageNormalizer(MatcherConfig(canonical_width=200, canonical_height=200))


def test_grid_has_canonical_length(normalizer, gradient_png):
    grid = normalizer.normalize(gradient_png)
    assert grid.dtype == np.uint8
    assert grid.shape == (200 * 200,)


def test_normalize_is_deterministic(normalizer, checker_png):
    first = normalizer.normalize(checker_png)
    second = normalizer.normalize(checker_png)
    assert np.array_equal(first, second)


def test_grid_is_read_only(normalizer, gradient_png):
    grid = normalizer.normalize(gradient_png)
    with pytest.raises(ValueError):
        grid[0] = 1


def test_any_size_and_channels_are_stretched(encode_image):
    normalizer = ImageNormalizer(MatcherConfig(canonical_width=30, canonical_height=20))
    rgb = np.zeros((57, 113, 3), dtype=np.uint8)
    rgb[..., 0] = 200
    grid = normalizer.normalize(encode_image(rgb))
    assert grid.shape == (30 * 20,)
    # pure red converts to a single uniform luminance value
    assert int(grid.max()) - int(grid.min()) <= 1


def test_same_size_gray_image_is_unchanged(encode_image):
    normalizer = ImageNormalizer(MatcherConfig(canonical_width=4, canonical_height=2))
    pixels = np.array([[0, 10, 20, 30], [40, 50, 60, 255]], dtype=np.uint8)
    grid = normalizer.normalize(encode_image(pixels))
    assert grid.tolist() == [0, 10, 20, 30, 40, 50, 60, 255]


def test_other_formats_decode(normalizer, encode_image):
    pixels = np.full((64, 64), 128, dtype=np.uint8)
    grid = normalizer.normalize(encode_image(pixels, fmt="BMP"))
    assert grid.shape == (200 * 200,)
    assert abs(int(grid.min()) - 128) <= 1 and abs(int(grid.max()) - 128) <= 1


def test_reads_paths_and_file_objects(normalizer, gradient_png, tmp_path):
    path = tmp_path / "finger.png"
    path.write_bytes(gradient_png)
    from_bytes = normalizer.normalize(gradient_png)
    assert np.array_equal(normalizer.normalize(path), from_bytes)
    assert np.array_equal(normalizer.normalize(str(path)), from_bytes)
    assert np.array_equal(normalizer.normalize(io.BytesIO(gradient_png)), from_bytes)


def test_garbage_bytes_raise_decode_error(normalizer, not_an_image):
    with pytest.raises(DecodeError) as exc_info:
        normalizer.normalize(not_an_image)
    assert exc_info.value.kind == "DecodeError"


def test_empty_bytes_raise_decode_error(normalizer):
    with pytest.raises(DecodeError):
        normalizer.normalize(b"")


def test_missing_file_raises_read_error(normalizer, tmp_path):
    with pytest.raises(ImageReadError) as exc_info:
        normalizer.normalize(tmp_path / "missing.png")
    assert isinstance(exc_info.value, OSError)


def test_unsupported_source_type(normalizer):
    with pytest.raises(TypeError):
        normalizer.normalize(12345)


def test_closed_file_object_raises_read_error(normalizer, gradient_png):
    handle = io.BytesIO(gradient_png)
    handle.close()
    with pytest.raises(ImageReadError):
        normalizer.normalize(handle)


def test_text_file_object_raises_read_error(normalizer):
    with pytest.raises(ImageReadError):
        normalizer.normalize(io.StringIO("not bytes"))
