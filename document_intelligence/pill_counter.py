"""
Pill count estimation
Turns a deduplicated detection count into the reported count
"""

import logging
from typing import Optional, Tuple

import numpy as np

from .config import PILL_COUNT
from .models import PillCountResult

logger = logging.getLogger(__name__)


def default_perturbation() -> Tuple[int, int]:
    """Configured perturbation range; demo mode jitters, production does not"""
    if PILL_COUNT['demo_mode']:
        return tuple(PILL_COUNT['demo_perturbation'])
    return tuple(PILL_COUNT['perturbation'])


class PillCountEstimator:
    """
    reported = max(minimum_count, raw + perturbation)

    `perturbation` is drawn from the inclusive integer range using `rng`.
    A (0, 0) range never touches the generator, so counts are exact.
    Pass a seeded numpy Generator for reproducible demo counts.
    """

    def __init__(
        self,
        perturbation: Optional[Tuple[int, int]] = None,
        rng: Optional[np.random.Generator] = None,
        minimum_count: int = PILL_COUNT['minimum_count'],
    ):
        low, high = perturbation if perturbation is not None else default_perturbation()
        if low > high:
            raise ValueError(f"Invalid perturbation range: ({low}, {high})")
        self.perturbation = (int(low), int(high))
        self.minimum_count = minimum_count
        self._rng = rng

    @property
    def is_identity(self) -> bool:
        return self.perturbation == (0, 0)

    def _draw(self) -> int:
        if self.is_identity:
            return 0
        if self._rng is None:
            self._rng = np.random.default_rng()
        low, high = self.perturbation
        return int(self._rng.integers(low, high + 1))

    def estimate(self, raw_count: int) -> PillCountResult:
        offset = self._draw()
        reported = max(self.minimum_count, raw_count + offset)
        if offset:
            logger.info(f"Pill count {raw_count} perturbed by {offset:+d}")
        logger.info(f"💊 Reporting {reported} pills (raw {raw_count})")
        return PillCountResult(raw_count=raw_count, reported_count=reported, perturbation=offset)
