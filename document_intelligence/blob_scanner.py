"""
Blob scanning for pill counting
Grid-samples a pixel buffer and flags windows whose center is much brighter
than their surround, which approximates a lit, convex pill on a flat background.

This is a brightness heuristic, not connected components or a Hough transform:
touching pills are under-counted and specular highlights can be over-counted.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

from .config import BLOB_DETECTION
from .errors import ScanCancelled
from .models import Region
from .pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlobScanConfig:
    min_pill_size: int = BLOB_DETECTION['min_pill_size']
    stride: int = BLOB_DETECTION['stride']
    circular_contrast: float = BLOB_DETECTION['circular_contrast']
    detection_contrast: float = BLOB_DETECTION['detection_contrast']

    def __post_init__(self) -> None:
        if self.min_pill_size < 3:
            raise ValueError("min_pill_size must be at least 3 pixels")
        if self.stride < 1:
            raise ValueError("stride must be a positive number of pixels")
        if self.circular_contrast < 0 or self.detection_contrast < 0:
            raise ValueError("contrast thresholds must be non-negative")


class BlobScanner:
    """Window-by-window pill-likeness classifier"""

    def __init__(self, config: Optional[BlobScanConfig] = None):
        self.config = config or BlobScanConfig()

    def evaluate(self, buffer: PixelBuffer, x: int, y: int) -> Region:
        """Compute brightness statistics for the window at (x, y)"""
        size = self.config.min_pill_size
        brightness = buffer.region_mean(x, y, x + size, y + size)

        # Middle third of the window on both axes
        lo, hi = size // 3, (2 * size) // 3
        center_brightness = buffer.region_mean(x + lo, y + lo, x + hi, y + hi)

        contrast = abs(center_brightness - brightness)
        is_circular = (
            contrast > self.config.circular_contrast
            and center_brightness > brightness
        )
        return Region(
            x=x,
            y=y,
            size=size,
            brightness=brightness,
            center_brightness=center_brightness,
            contrast=contrast,
            is_circular=is_circular,
        )

    def is_candidate(self, region: Region) -> bool:
        return region.is_circular and region.contrast > self.config.detection_contrast

    def scan(self, buffer: PixelBuffer, cancel_event=None) -> Iterator[Region]:
        """
        Yield candidate regions in row-major scan order

        Args:
            buffer: Decoded image
            cancel_event: Optional threading.Event checked once per row

        Raises:
            ScanCancelled: if cancel_event is set during the scan
        """
        size = self.config.min_pill_size
        stride = self.config.stride

        for y in range(0, buffer.height - size + 1, stride):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"Blob scan cancelled at row {y}")
                raise ScanCancelled(f"Scan cancelled at row {y}")
            for x in range(0, buffer.width - size + 1, stride):
                region = self.evaluate(buffer, x, y)
                if self.is_candidate(region):
                    yield region

    def find_candidates(self, buffer: PixelBuffer, cancel_event=None) -> List[Region]:
        candidates = list(self.scan(buffer, cancel_event=cancel_event))
        logger.info(f"🔍 Blob scan found {len(candidates)} candidate regions")
        return candidates
