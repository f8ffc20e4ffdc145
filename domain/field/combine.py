"""Combination algebra for overlapping sensor influences.

Shared by every strategy. ``combine`` reduces a list of scalars at one point;
``combine_stack`` reduces a stack of per-sensor influence grids along the
sensor axis with the same policy.

Policies:
    add      min(1, sum)
    max      maximum element
    overlay  1 - prod(1 - v)   (probabilistic OR)

Unknown modes behave as ``max``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray

from domain.field.value_objects import CombineMode

logger = logging.getLogger(__name__)


def _resolve_mode(mode: CombineMode | str) -> CombineMode:
    try:
        return CombineMode(mode)
    except ValueError:
        logger.debug("Unknown combine mode %r, falling back to max", mode)
        return CombineMode.MAX


def combine(values: Sequence[float], mode: CombineMode | str) -> float:
    """Reduce per-sensor influences at one point to a single scalar.

    Args:
        values: Influence values (typically the positive ones only)
        mode: Combination policy

    Returns:
        Combined value; 0.0 for empty input
    """
    if len(values) == 0:
        return 0.0

    resolved = _resolve_mode(mode)
    if resolved is CombineMode.ADD:
        return min(1.0, float(sum(values)))
    if resolved is CombineMode.OVERLAY:
        remaining = 1.0
        for v in values:
            remaining *= 1.0 - v
        return 1.0 - remaining
    return float(max(values))


def combine_stack(
    stack: NDArray[np.float64], mode: CombineMode | str
) -> NDArray[np.float64]:
    """Reduce a (n_sensors, ...) stack of influences along axis 0.

    Non-positive entries are treated as absent, matching ``combine`` fed with
    positive influences only. An empty stack yields zeros.
    """
    if stack.shape[0] == 0:
        return np.zeros(stack.shape[1:], dtype=np.float64)

    positive = np.where(stack > 0.0, stack, 0.0)
    resolved = _resolve_mode(mode)
    if resolved is CombineMode.ADD:
        return np.minimum(1.0, positive.sum(axis=0))
    if resolved is CombineMode.OVERLAY:
        return 1.0 - np.prod(1.0 - positive, axis=0)
    return positive.max(axis=0)
