"""
Image preprocessing before OCR
Cleans up phone photos of labels, bills and prescriptions
"""

import os
import logging
from pathlib import Path

import cv2
import numpy as np

from .config import PREPROCESSING
from .errors import UnreadableImageError
from .pixel_buffer import to_byte_range

logger = logging.getLogger(__name__)


def read_color_image(image):
    """
    Decode bytes, a path or an array into a BGR/grayscale numpy array

    Raises:
        UnreadableImageError: if the input cannot be decoded
    """
    if isinstance(image, np.ndarray):
        decoded = image
    elif isinstance(image, (bytes, bytearray, memoryview)):
        decoded = cv2.imdecode(np.frombuffer(bytes(image), dtype=np.uint8), cv2.IMREAD_COLOR)
    elif isinstance(image, (str, Path)):
        if not os.path.exists(str(image)):
            raise UnreadableImageError(f"Image not found: {image}")
        decoded = cv2.imread(str(image), cv2.IMREAD_COLOR)
    else:
        raise UnreadableImageError(f"Unsupported image input: {type(image).__name__}")

    if decoded is None or decoded.size == 0:
        raise UnreadableImageError("Could not decode image")

    # OpenCV filters below expect 8-bit BGR or grayscale
    if decoded.dtype != np.uint8:
        decoded = np.clip(np.rint(to_byte_range(decoded)), 0, 255).astype(np.uint8)
    if decoded.ndim == 3:
        channels = decoded.shape[2]
        if channels <= 2:
            decoded = np.ascontiguousarray(decoded[:, :, 0])  # gray or gray+alpha
        elif channels == 4:
            decoded = cv2.cvtColor(decoded, cv2.COLOR_BGRA2BGR)
    return decoded


class ImagePreprocessor:
    """Preprocess document photos for better OCR accuracy"""

    def __init__(self, config=None):
        self.config = dict(PREPROCESSING)
        self.config.update(config or {})

    def preprocess(self, image):
        """
        Run the enabled preprocessing steps

        Args:
            image: Raw bytes, a file path or a numpy array

        Returns:
            preprocessed_image: Numpy array ready for OCR
        """
        image = read_color_image(image)
        logger.info(f"Original image shape: {image.shape}")

        image = self.resize_image(image, self.config['resize_width'])
        if self.config['denoise']:
            image = self.denoise(image)
        if self.config['contrast_enhancement']:
            image = self.enhance_contrast(image)
        if self.config['deskew']:
            image = self.deskew(image)
        if self.config['adaptive_threshold']:
            image = self.adaptive_threshold(image)

        logger.info(f"Preprocessed image shape: {image.shape}")
        return image

    def resize_image(self, image, target_width=2000):
        """Downscale oversized camera captures"""
        height, width = image.shape[:2]
        if width > target_width:
            scale = target_width / width
            new_height = int(height * scale)
            image = cv2.resize(image, (target_width, new_height), interpolation=cv2.INTER_AREA)
            logger.info(f"Resized image to {target_width}x{new_height}")
        return image

    def denoise(self, image):
        """Remove sensor noise using Non-Local Means Denoising"""
        if len(image.shape) == 3:
            denoised = cv2.fastNlMeansDenoisingColored(image, None, 10, 10, 7, 21)
        else:
            denoised = cv2.fastNlMeansDenoising(image, None, 10, 7, 21)
        logger.info("Applied denoising")
        return denoised

    def enhance_contrast(self, image):
        """CLAHE on the lightness channel; helps glossy labels and faded receipts"""
        if len(image.shape) == 3:
            lab = cv2.cvtColor(image, cv2.COLOR_BGR2LAB)
            l, a, b = cv2.split(lab)
        else:
            l = image

        clahe = cv2.createCLAHE(clipLimit=3.0, tileGridSize=(8, 8))
        l = clahe.apply(l)

        if len(image.shape) == 3:
            enhanced = cv2.cvtColor(cv2.merge([l, a, b]), cv2.COLOR_LAB2BGR)
        else:
            enhanced = l

        logger.info("Enhanced contrast with CLAHE")
        return enhanced

    def deskew(self, image):
        """Straighten documents photographed at an angle"""
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if len(image.shape) == 3 else image

        edges = cv2.Canny(gray, 50, 150, apertureSize=3)
        lines = cv2.HoughLines(edges, 1, np.pi / 180, 200)

        if lines is None or len(lines) == 0:
            return image

        angles = [np.degrees(theta) - 90 for _, theta in lines[:, 0]]
        median_angle = float(np.median(angles))

        # Ignore tiny tilts and near-vertical artefacts
        if abs(median_angle) <= 0.5 or abs(median_angle) >= 45:
            return image

        (h, w) = image.shape[:2]
        matrix = cv2.getRotationMatrix2D((w // 2, h // 2), median_angle, 1.0)
        rotated = cv2.warpAffine(image, matrix, (w, h),
                                 flags=cv2.INTER_CUBIC,
                                 borderMode=cv2.BORDER_REPLICATE)
        logger.info(f"Deskewed image by {median_angle:.2f} degrees")
        return rotated

    def adaptive_threshold(self, image):
        """Binarize for text separation under uneven lighting"""
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if len(image.shape) == 3 else image
        blurred = cv2.GaussianBlur(gray, (5, 5), 0)

        threshold = cv2.adaptiveThreshold(
            blurred,
            255,
            cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
            cv2.THRESH_BINARY,
            11,  # Block size
            2    # C constant
        )
        logger.info("Applied adaptive thresholding")
        return threshold
