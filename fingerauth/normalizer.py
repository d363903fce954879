"""
Image Normalization Service using Pillow

This module turns an encoded image into the fixed-size grayscale grid the
matcher compares:
- Reading bytes from memory, a path or a file object
- Decoding any format Pillow supports
- Luminance conversion and resize to the canonical size
"""
import os
import numpy as np
from PIL import Image, UnidentifiedImageError
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Optional, Union
import logging

from fingerauth.config import MatcherConfig
from fingerauth.errors import DecodeError, ImageReadError

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, memoryview, str, os.PathLike, BinaryIO]


class ImageNormalizer:
    """
    Converts arbitrary images into NormalizedGrids.

    A grid is a read-only, flat ``uint8`` array of
    ``canonical_width * canonical_height`` luminance samples. Aspect ratio is
    not preserved; every image is stretched to the canonical size.
    """

    def __init__(self, config: Optional[MatcherConfig] = None):
        self.config = config or MatcherConfig()

    def read_bytes(self, image: ImageSource) -> bytes:
        """
        Get the raw encoded bytes of an image source.

        Raises:
            ImageReadError: If the source cannot be read
        """
        if isinstance(image, (bytes, bytearray, memoryview)):
            return bytes(image)

        if not isinstance(image, (str, os.PathLike)) and not hasattr(image, "read"):
            raise TypeError(f"Unsupported image source type: {type(image).__name__}")

        try:
            if isinstance(image, (str, os.PathLike)):
                data = Path(image).read_bytes()
            else:
                data = image.read()
        except (OSError, ValueError) as e:
            # closed file objects raise ValueError
            raise ImageReadError(f"Failed to read image: {e}") from e

        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise ImageReadError(f"Image source returned {type(data).__name__}, expected bytes")
        return bytes(data)

    def normalize(self, image: ImageSource) -> np.ndarray:
        """
        Normalize an image into a comparable grid.

        Steps:
        1. Read encoded bytes from the source
        2. Decode and convert to single channel luminance
        3. Resize to the canonical size (Lanczos)
        4. Flatten to a uint8 vector

        Args:
            image: Encoded image bytes, a file path or a binary file object

        Returns:
            Read-only uint8 array of length width * height

        Raises:
            ImageReadError: If the image cannot be read from its source
            DecodeError: If the bytes are not a supported image format
        """
        data = self.read_bytes(image)

        try:
            with Image.open(BytesIO(data)) as img:
                gray = img.convert("L")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise DecodeError(f"Failed to decode image: {e}") from e

        if gray.size != self.config.canonical_size:
            logger.debug(f"Image resized from {gray.size} to {self.config.canonical_size}")
            gray = gray.resize(self.config.canonical_size, Image.Resampling.LANCZOS)

        grid = np.array(gray, dtype=np.uint8).reshape(-1)
        grid.setflags(write=False)
        return grid
