"""Influence strategies.

A strategy turns one sensor into a scalar field in [0, 1] over sample
points. The variant set is closed (StrategyKind): ``InfluenceStrategy``
dispatches on its kind, and only the battery variant carries state, its
effective-intensity cache filled by ``update``.

Signal mode:
    linear falloff ``max(0, 1 - d/r) * intensity``, raised by link corridors
    towards enabled neighbours, then dampened by attenuation points.
    Distances are measured from ``sensor.anchor`` (surface anchor or
    position).

Battery mode:
    quadratic falloff ``effective * (1 - (d/r)^2)`` where ``effective`` comes
    from diffusing charge over the link graph (see diffusion.py). Distances
    are measured from the sensor position.
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import ArrayLike, NDArray

from domain.field.combine import combine
from domain.field.diffusion import diffuse_battery
from domain.field.errors import UnknownStrategyError
from domain.field.geometry import point_distance, point_to_segment_distance
from domain.field.value_objects import CombineMode, StrategyKind
from domain.network.entities import Sensor
from domain.network.store import NetworkSnapshot
from shared.defaults import LINK_RADIUS_FACTOR

logger = logging.getLogger(__name__)


def _as_points(points: ArrayLike) -> NDArray[np.float64]:
    arr = np.asarray(points, dtype=np.float64)
    if arr.shape[-1:] != (3,):
        raise ValueError(f"Sample points must have shape (..., 3), got {arr.shape}")
    return arr


# ---------------------------------------------------------------------------
# Signal variant
# ---------------------------------------------------------------------------
def signal_influence(
    sensor: Sensor, points: NDArray[np.float64], snapshot: NetworkSnapshot
) -> NDArray[np.float64]:
    """Signal-strength influence of ``sensor`` at every sample point."""
    shape = points.shape[:-1]
    if not sensor.enabled or sensor.intensity == 0:
        return np.zeros(shape, dtype=np.float64)

    origin = sensor.anchor.as_array()
    distance = point_distance(points, origin)
    influence = np.maximum(0.0, 1.0 - distance / sensor.radius) * sensor.intensity

    if snapshot.links:
        link_influence = np.zeros(shape, dtype=np.float64)
        for link in snapshot.links_of(sensor.id):
            other = snapshot.sensor(link.other(sensor.id))
            if other is None or not other.enabled or other.intensity <= 0:
                continue

            corridor = max(sensor.radius, other.radius) * LINK_RADIUS_FACTOR
            end = other.anchor.as_array()
            seg_dist = point_to_segment_distance(points, origin, end)
            avg_intensity = (sensor.intensity + other.intensity) * 0.5
            candidate = np.where(
                seg_dist < corridor,
                np.maximum(0.0, 1.0 - seg_dist / corridor) * avg_intensity * link.weight,
                0.0,
            )
            link_influence = np.maximum(link_influence, candidate)

        influence = np.maximum(influence, link_influence)

    for att in snapshot.attenuators:
        att_dist = point_distance(points, att.position.as_array())
        amount = 1.0 - (1.0 - att.factor) * (1.0 - att_dist / att.radius)
        influence = np.where(att_dist < att.radius, influence * amount, influence)

    return influence


# ---------------------------------------------------------------------------
# Battery variant
# ---------------------------------------------------------------------------
def battery_influence(
    sensor: Sensor, points: NDArray[np.float64], effective: dict[str, float]
) -> NDArray[np.float64]:
    """Battery-charge influence of ``sensor`` at every sample point."""
    shape = points.shape[:-1]
    if not sensor.enabled:
        return np.zeros(shape, dtype=np.float64)

    distance = point_distance(points, sensor.position.as_array())
    charge = effective.get(sensor.id, sensor.intensity)
    ratio = distance / sensor.radius
    return np.where(distance > sensor.radius, 0.0, charge * (1.0 - ratio * ratio))


# ---------------------------------------------------------------------------
# Strategy
# ---------------------------------------------------------------------------
class InfluenceStrategy:
    """One of the closed set of influence strategies.

    Not thread-safe: the battery cache is mutated by ``update`` without
    locking; callers serialise access (one render loop).
    """

    def __init__(self, kind: StrategyKind = StrategyKind.SIGNAL) -> None:
        self.kind = StrategyKind(kind)
        self._effective: dict[str, float] = {}

    @classmethod
    def from_name(cls, name: str | StrategyKind) -> "InfluenceStrategy":
        """Build a fresh strategy from its name.

        Raises:
            UnknownStrategyError: If name is not "signal" or "battery"
        """
        try:
            kind = StrategyKind(name)
        except ValueError as e:
            raise UnknownStrategyError(str(name)) from e
        return cls(kind)

    @property
    def name(self) -> str:
        return self.kind.value

    def __repr__(self) -> str:
        return f"InfluenceStrategy({self.kind.value!r})"

    def update(self, snapshot: NetworkSnapshot) -> None:
        """Per-pass pre-computation; runs diffusion in battery mode only."""
        if self.kind is StrategyKind.SIGNAL:
            return
        result = diffuse_battery(snapshot)
        self._effective = result.values
        logger.debug(
            "Battery diffusion: %d sensors, %d sweeps, converged=%s",
            len(result.values),
            result.iterations,
            result.converged,
        )

    def reset(self) -> None:
        """Discard any strategy-local cache."""
        self._effective = {}

    def influence_field(
        self, sensor: Sensor, points: ArrayLike, snapshot: NetworkSnapshot
    ) -> NDArray[np.float64]:
        """Vectorised influence of ``sensor`` over points of shape (..., 3)."""
        pts = _as_points(points)
        if self.kind is StrategyKind.BATTERY:
            return battery_influence(sensor, pts, self._effective)
        return signal_influence(sensor, pts, snapshot)

    def compute_influence(
        self, sensor: Sensor, point: ArrayLike, snapshot: NetworkSnapshot
    ) -> float:
        """Influence of ``sensor`` at a single point, in [0, 1]."""
        pts = _as_points(point)
        if pts.ndim != 1:
            raise ValueError(f"Expected a single point of shape (3,), got {pts.shape}")
        return float(self.influence_field(sensor, pts, snapshot))

    def combine(self, values: list[float], mode: CombineMode | str) -> float:
        return combine(values, mode)
