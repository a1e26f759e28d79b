"""Adaptive relevance cutoff for a search run.

The cutoff aims at roughly ``target`` candidates above it while staying
inside ``[floor, ceiling]``.  It is recorded on the run for display; it does
not decide which candidates are shortlisted.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from prior_art_novelty.infrastructure.config import ThresholdConfig

logger = logging.getLogger(__name__)

_DEFAULT_THRESHOLD = ThresholdConfig()


def select_threshold(
    scores: Sequence[int],
    target: int | None = None,
    config: ThresholdConfig = _DEFAULT_THRESHOLD,
) -> int:
    """Choose the relevance cutoff for *scores* (percentages in ``[0, 100]``).

    With more than ``target * raise_factor`` scores at or above ``start`` the
    cutoff rises to the ``target``-th best score; with fewer than
    ``target * lower_factor`` it falls towards the ``lower_quantile`` score.
    Empty input yields ``floor``.
    """
    if target is None:
        target = config.target
    if len(scores) == 0:
        return config.floor

    ordered = np.sort(np.asarray(scores, dtype=float))[::-1]
    n = len(ordered)
    high = int(np.count_nonzero(ordered >= config.start))

    threshold = float(config.start)
    if high > target * config.raise_factor:
        threshold = max(float(config.start), ordered[min(target - 1, n - 1)])
    elif high < target * config.lower_factor:
        pivot = ordered[math.floor(n * config.lower_quantile)] or config.floor
        threshold = max(float(config.floor), min(float(config.start), pivot))

    result = int(max(config.floor, min(config.ceiling, threshold)))
    logger.debug(
        "Threshold %d%% from %d scores (%d at or above %d%%)",
        result, n, high, config.start,
    )
    return result
