"""Vectorised distance helpers.

All functions take sample points as an array of shape (..., 3) and return an
array of the leading shape, so the same code serves a single point and a
whole raster of sample points.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


def point_distance(
    points: NDArray[np.float64], origin: NDArray[np.float64]
) -> NDArray[np.float64]:
    """Euclidean distance from every point to ``origin``."""
    return np.linalg.norm(points - origin, axis=-1)


def point_to_segment_distance(
    points: NDArray[np.float64],
    segment_start: NDArray[np.float64],
    segment_end: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Distance from every point to the closed segment [start, end].

    Projects onto the infinite line through the endpoints, clamps the
    projection parameter to [0, 1] and measures to the clamped point.
    Coincident endpoints degrade to point-to-point distance.
    """
    segment = segment_end - segment_start
    offsets = points - segment_start
    length_sq = float(np.dot(segment, segment))
    if length_sq == 0.0:
        return np.linalg.norm(offsets, axis=-1)

    t = np.clip((offsets @ segment) / length_sq, 0.0, 1.0)
    projection = segment_start + np.expand_dims(t, axis=-1) * segment
    return np.linalg.norm(points - projection, axis=-1)
