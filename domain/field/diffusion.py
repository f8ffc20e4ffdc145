"""Battery-mode diffusion solver.

Iterative relaxation of sensor charge across link edges, independent of any
spatial sample point. Each sweep replaces an enabled sensor's value with the
average of its own raw intensity and its enabled neighbours' most recent
values; propagation therefore compounds across sweeps.

The scheme is a weakly converging, unnormalised diffusion. Hitting the
iteration cap is best effort, not an error.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from domain.network.store import NetworkSnapshot
from shared.defaults import DIFFUSION_MAX_ITERATIONS, DIFFUSION_TOLERANCE

logger = logging.getLogger(__name__)


class DiffusionResult(BaseModel):
    """Outcome of one relaxation run (Value Object).

    Attributes:
        values: Effective intensity per sensor id (disabled sensors -> 0)
        iterations: Number of sweeps performed (0 when there are no links)
        converged: True if the last sweep changed no value by >= tolerance
    """

    values: dict[str, float]
    iterations: int
    converged: bool

    model_config = ConfigDict(frozen=True)


def _neighbours(snapshot: NetworkSnapshot) -> dict[str, list[str]]:
    # One entry per link: a duplicated edge counts twice in the average.
    adjacency: dict[str, list[str]] = {sid: [] for sid in snapshot.sensors}
    for link in snapshot.links:
        if link.sensor_a in adjacency:
            adjacency[link.sensor_a].append(link.sensor_b)
        if link.sensor_b in adjacency and link.sensor_b != link.sensor_a:
            adjacency[link.sensor_b].append(link.sensor_a)
    return adjacency


def diffuse_battery(
    snapshot: NetworkSnapshot,
    max_iterations: int = DIFFUSION_MAX_ITERATIONS,
    tolerance: float = DIFFUSION_TOLERANCE,
) -> DiffusionResult:
    """Relax sensor charge over the link graph.

    Args:
        snapshot: Sensors and links to relax over
        max_iterations: Sweep cap
        tolerance: Early exit once the largest change in a sweep drops below it

    Returns:
        DiffusionResult with the effective intensity of every sensor
    """
    current: dict[str, float] = {
        sid: (s.intensity if s.enabled else 0.0) for sid, s in snapshot.sensors.items()
    }

    if not snapshot.links:
        return DiffusionResult(values=dict(current), iterations=0, converged=True)

    adjacency = _neighbours(snapshot)
    iterations = 0
    converged = False

    for _ in range(max_iterations):
        iterations += 1
        max_change = 0.0
        updated: dict[str, float] = {}

        for sid, sensor in snapshot.sensors.items():
            if not sensor.enabled:
                updated[sid] = 0.0
                continue

            total = sensor.intensity
            count = 1
            for nid in adjacency[sid]:
                neighbour = snapshot.sensors.get(nid)
                if neighbour is not None and neighbour.enabled:
                    total += current.get(nid, 0.0)
                    count += 1

            value = total / count
            max_change = max(max_change, abs(value - current[sid]))
            updated[sid] = value

        current.update(updated)

        if max_change < tolerance:
            converged = True
            break

    if not converged:
        logger.debug(
            "Battery diffusion stopped after %d sweeps without converging", iterations
        )
    return DiffusionResult(values=dict(current), iterations=iterations, converged=converged)
