"""
Pixel buffer decoding
Turns image bytes, paths or arrays into a read-only brightness grid
"""

import os
import logging
from pathlib import Path

import cv2
import numpy as np

from .errors import UnreadableImageError

logger = logging.getLogger(__name__)


def to_byte_range(samples) -> np.ndarray:
    """
    Scale raw samples to float64 on the 0-255 scale

    16-bit images are divided down; floating-point images with no sample
    above 1.0 are treated as normalized [0, 1] data.

    Raises:
        UnreadableImageError: for non-numeric or complex dtypes
    """
    array = np.asarray(samples)
    if array.dtype == np.bool_:
        return array.astype(np.float64) * 255.0
    if not (np.issubdtype(array.dtype, np.integer) or np.issubdtype(array.dtype, np.floating)):
        raise UnreadableImageError(f"Unsupported pixel dtype: {array.dtype}")

    if array.dtype == np.uint16:
        return array / 257.0
    if np.issubdtype(array.dtype, np.floating):
        array = array.astype(np.float64)
        if array.size and np.nanmax(array) <= 1.0:
            array = array * 255.0
        return array
    return array.astype(np.float64)


class PixelBuffer:
    """
    Read-only grid of brightness samples in [0, 255]

    Color inputs are reduced to the mean of their first three channels;
    gray+alpha inputs use the gray channel; alpha is always ignored.
    """

    def __init__(self, samples):
        array = to_byte_range(samples)
        if array.ndim == 3:
            if array.shape[2] <= 2:
                array = array[:, :, 0]
            else:
                array = array[:, :, :3].mean(axis=2)
        elif array.ndim != 2:
            raise UnreadableImageError(f"Unsupported pixel array shape: {array.shape}")

        if array.size == 0:
            raise UnreadableImageError("Image has no pixels")

        self._brightness = np.clip(array, 0, 255)
        self._brightness.setflags(write=False)

    @property
    def width(self) -> int:
        return self._brightness.shape[1]

    @property
    def height(self) -> int:
        return self._brightness.shape[0]

    @property
    def brightness_array(self) -> np.ndarray:
        """Read-only (height, width) float array"""
        return self._brightness

    def brightness(self, x: int, y: int) -> float:
        return float(self._brightness[y, x])

    def region_mean(self, x0: int, y0: int, x1: int, y1: int) -> float:
        """Mean brightness over [x0, x1) x [y0, y1)"""
        return float(self._brightness[y0:y1, x0:x1].mean())

    @classmethod
    def from_array(cls, array) -> 'PixelBuffer':
        return cls(array)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'PixelBuffer':
        if not data:
            raise UnreadableImageError("Image data is empty")
        encoded = np.frombuffer(data, dtype=np.uint8)
        image = cv2.imdecode(encoded, cv2.IMREAD_UNCHANGED)
        if image is None:
            raise UnreadableImageError("Could not decode image data")
        return cls(image)

    @classmethod
    def from_path(cls, image_path) -> 'PixelBuffer':
        image_path = str(image_path)
        if not os.path.exists(image_path):
            raise UnreadableImageError(f"Image not found: {image_path}")
        image = cv2.imread(image_path, cv2.IMREAD_UNCHANGED)
        if image is None:
            raise UnreadableImageError(f"Could not read image: {image_path}")
        return cls(image)


def load_pixel_buffer(image) -> PixelBuffer:
    """
    Decode any supported image input

    Args:
        image: PixelBuffer, numpy array, raw bytes, or a file path

    Returns:
        PixelBuffer
    """
    if isinstance(image, PixelBuffer):
        return image
    if isinstance(image, np.ndarray):
        buffer = PixelBuffer.from_array(image)
    elif isinstance(image, (bytes, bytearray, memoryview)):
        buffer = PixelBuffer.from_bytes(bytes(image))
    elif isinstance(image, (str, Path)):
        buffer = PixelBuffer.from_path(image)
    else:
        raise UnreadableImageError(f"Unsupported image input: {type(image).__name__}")

    logger.info(f"Decoded pixel buffer {buffer.width}x{buffer.height}")
    return buffer
