"""Coverage Field Bounded Context - Rasterizer.

Maps an arbitrary 3D bounding region onto a square 2D grid and fills every
cell with the combined influence of all enabled sensors.

Dominant-axis flattening:
    The three extents are sorted descending (stable, ties keep x, y, z
    order). The largest becomes the horizontal ``u`` axis, the second the
    vertical ``v`` axis, and the smallest is collapsed to its midpoint. This
    suits thin/planar regions (floor slabs, walls); it is not a volumetric
    sampler.

Grid layout:
    ``grid[y, x]`` with ``u = x / (res - 1)`` and ``v = y / (res - 1)``;
    ``v`` is flipped to ``1 - v`` when the texture's v axis runs upward.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field

from domain.field.combine import combine_stack
from domain.field.errors import InvalidResolutionError
from domain.field.strategies import InfluenceStrategy
from domain.field.value_objects import AXIS_NAMES, CombineMode, RegionBounds
from domain.network.entities import Sensor
from domain.network.store import NetworkSnapshot
from shared.defaults import MIN_TEXTURE_SIZE

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Axis selection
# ---------------------------------------------------------------------------
class AxisPlan(BaseModel):
    """Which world axes feed the raster's u and v directions (Value Object)."""

    u_axis: int = Field(ge=0, le=2)
    v_axis: int = Field(ge=0, le=2)
    flat_axis: int = Field(ge=0, le=2)

    model_config = ConfigDict(frozen=True)

    def names(self) -> tuple[str, str, str]:
        return (
            AXIS_NAMES[self.u_axis],
            AXIS_NAMES[self.v_axis],
            AXIS_NAMES[self.flat_axis],
        )


def plan_axes(bounds: RegionBounds) -> AxisPlan:
    """Pick u/v axes by descending extent; the shortest axis is flattened."""
    extents = bounds.extents()
    order = sorted(range(3), key=lambda i: -extents[i])
    return AxisPlan(u_axis=order[0], v_axis=order[1], flat_axis=order[2])


def sample_points(
    bounds: RegionBounds, resolution: int, v_flipped: bool = False
) -> NDArray[np.float64]:
    """World-space sample point of every cell, shape (res, res, 3).

    Raises:
        InvalidResolutionError: If resolution < MIN_TEXTURE_SIZE
    """
    if resolution < MIN_TEXTURE_SIZE:
        raise InvalidResolutionError(resolution, MIN_TEXTURE_SIZE)

    plan = plan_axes(bounds)
    lo = bounds.minimum.as_array()
    hi = bounds.maximum.as_array()
    size = hi - lo

    steps = np.arange(resolution, dtype=np.float64) / (resolution - 1)
    u = steps
    v = 1.0 - steps if v_flipped else steps

    points = np.empty((resolution, resolution, 3), dtype=np.float64)
    points[:, :, plan.u_axis] = lo[plan.u_axis] + u[np.newaxis, :] * size[plan.u_axis]
    points[:, :, plan.v_axis] = lo[plan.v_axis] + v[:, np.newaxis] * size[plan.v_axis]
    points[:, :, plan.flat_axis] = (lo[plan.flat_axis] + hi[plan.flat_axis]) / 2
    return points


# ---------------------------------------------------------------------------
# Rasterization
# ---------------------------------------------------------------------------
def all_sources_zero(
    snapshot: NetworkSnapshot, sensors: Sequence[Sensor] | None = None
) -> bool:
    """True if there is at least one enabled sensor and all have intensity 0.

    ``sensors`` narrows the check to an explicit set (e.g. one surface's
    sensors); it defaults to every enabled sensor in the snapshot.

    Looks at raw intensity only, not at computed influence: a zero-intensity
    sensor lifted by a link corridor still counts as zero here.
    """
    enabled = snapshot.enabled_sensors() if sensors is None else sensors
    return bool(enabled) and all(s.intensity == 0 for s in enabled)


def rasterize(
    bounds: RegionBounds,
    resolution: int,
    strategy: InfluenceStrategy,
    snapshot: NetworkSnapshot,
    combine_mode: CombineMode | str = CombineMode.MAX,
    zero_force_red: bool = True,
    v_flipped: bool = False,
    sensors: Sequence[Sensor] | None = None,
) -> NDArray[np.float64]:
    """Produce a (resolution, resolution) grid of combined influence.

    Runs ``strategy.update`` exactly once for the pass, then evaluates every
    enabled sensor (or only ``sensors`` when given) over the whole sample
    grid. The full snapshot stays the context, so links and attenuators
    outside the evaluated set still apply.

    Args:
        bounds: Target region to flatten
        resolution: Cells per side (>= 2)
        strategy: Active influence strategy
        snapshot: Sensors, links and attenuators for this pass
        combine_mode: Reduction policy for overlapping sensors
        zero_force_red: Force 0 everywhere when every enabled sensor is at 0
        v_flipped: Sample the v axis top-down
        sensors: Sensors to evaluate; defaults to every enabled sensor

    Returns:
        float64 grid indexed [y, x]
    """
    points = sample_points(bounds, resolution, v_flipped)
    strategy.update(snapshot)

    enabled = snapshot.enabled_sensors() if sensors is None else list(sensors)
    if zero_force_red and all_sources_zero(snapshot, enabled):
        return np.zeros((resolution, resolution), dtype=np.float64)

    if not enabled:
        logger.debug("Rasterizing with no enabled sensors")
        return np.zeros((resolution, resolution), dtype=np.float64)

    stack = np.stack([strategy.influence_field(s, points, snapshot) for s in enabled])
    grid = combine_stack(stack, combine_mode)
    logger.debug(
        "Rasterized %dx%d grid (%s, %d sensors, axes u/v/flat=%s)",
        resolution,
        resolution,
        strategy.name,
        len(enabled),
        "/".join(plan_axes(bounds).names()),
    )
    return grid


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------
class RasterStats(BaseModel):
    """Summary of one rasterized grid (Value Object)."""

    max_value: float
    nonzero_cells: int = Field(ge=0)
    total_cells: int = Field(gt=0)

    model_config = ConfigDict(frozen=True)

    @property
    def coverage_pct(self) -> float:
        """Share of cells with non-zero coverage, 0 to 100."""
        return self.nonzero_cells / self.total_cells * 100.0


def coverage_stats(grid: NDArray[np.float64]) -> RasterStats:
    return RasterStats(
        max_value=float(grid.max()) if grid.size else 0.0,
        nonzero_cells=int(np.count_nonzero(grid > 0.0)),
        total_cells=int(grid.size),
    )
