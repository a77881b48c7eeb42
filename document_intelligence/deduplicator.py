"""
Region deduplication
Merges detections that land in the same coarse grid neighbourhood
"""

import logging
from typing import Iterable, Iterator, List

from .models import Region

logger = logging.getLogger(__name__)


class DetectionSet:
    """
    Accepted regions for one image

    A region is rejected when an accepted region lies closer than
    `min_pill_size` on both axes. This is a grid-proximity merge, not a
    circle-overlap test: adjacent pills can be merged and diagonally
    offset ones kept apart.
    """

    def __init__(self, min_pill_size: int):
        self.min_pill_size = min_pill_size
        self._regions: List[Region] = []

    def overlaps(self, region: Region) -> bool:
        return any(
            abs(region.x - kept.x) < self.min_pill_size
            and abs(region.y - kept.y) < self.min_pill_size
            for kept in self._regions
        )

    def add(self, region: Region) -> bool:
        """Accept the region unless it overlaps one already accepted"""
        if self.overlaps(region):
            return False
        self._regions.append(region)
        return True

    def clear(self):
        self._regions = []

    def __len__(self) -> int:
        return len(self._regions)

    def __iter__(self) -> Iterator[Region]:
        return iter(self._regions)


def deduplicate(regions: Iterable[Region], min_pill_size: int) -> DetectionSet:
    detections = DetectionSet(min_pill_size)
    merged = 0
    for region in regions:
        if not detections.add(region):
            merged += 1
    logger.info(f"Kept {len(detections)} regions, merged {merged} overlapping")
    return detections
