"""Sensor Network Bounded Context - Entity Store.

Holds sensors, links and attenuation points keyed by identifier. Pure data:
CRUD plus invariant enforcement, no field computation.

Error policy:
    - update/remove of an unknown id is a no-op (returns None / False)
    - construction or patch that violates an entity invariant raises
      InvalidSensorError / InvalidAttenuatorError
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from domain.network.entities import AttenuationPoint, Link, Sensor
from domain.network.errors import InvalidAttenuatorError, InvalidSensorError
from domain.network.value_objects import Point3D
from shared.defaults import DEFAULT_LINK_WEIGHT

logger = logging.getLogger(__name__)


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ())) or "value"
    return f"{loc}: {err.get('msg', 'invalid')}"


# ---------------------------------------------------------------------------
# Snapshot handed to strategies
# ---------------------------------------------------------------------------
class NetworkSnapshot(BaseModel):
    """Read-only view of the network for one evaluation pass (Value Object).

    Sensors are kept in insertion order and indexed by id so that link
    endpoints can be resolved with a single dict lookup per link.
    """

    sensors: dict[str, Sensor]
    links: tuple[Link, ...] = ()
    attenuators: tuple[AttenuationPoint, ...] = ()

    model_config = ConfigDict(frozen=True)

    def sensor(self, sensor_id: str) -> Sensor | None:
        return self.sensors.get(sensor_id)

    def enabled_sensors(self) -> list[Sensor]:
        return [s for s in self.sensors.values() if s.enabled]

    def enabled_on_surface(self, surface_id: str) -> list[Sensor]:
        """Enabled sensors attached to ``surface_id``."""
        return [s for s in self.enabled_sensors() if s.attached_surface == surface_id]

    def links_of(self, sensor_id: str) -> list[Link]:
        return [link for link in self.links if link.touches(sensor_id)]


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------
class SensorNetwork:
    """Mutable collection of sensors, links and attenuators."""

    def __init__(self) -> None:
        self._sensors: dict[str, Sensor] = {}
        self._links: dict[str, Link] = {}
        self._attenuators: dict[str, AttenuationPoint] = {}

    # -- sensors ------------------------------------------------------------
    def add_sensor(
        self,
        sensor_id: str,
        position: Point3D | tuple[float, float, float],
        *,
        radius: float,
        intensity: float | None = None,
        attached_surface: str | None = None,
        surface_anchor: Point3D | tuple[float, float, float] | None = None,
    ) -> Sensor:
        """Create (or replace) a sensor.

        Raises:
            InvalidSensorError: If radius <= 0 or the position is malformed
        """
        fields: dict[str, Any] = {
            "id": sensor_id,
            "position": position,
            "radius": radius,
            "attached_surface": attached_surface,
            "surface_anchor": surface_anchor,
        }
        if intensity is not None:
            fields["intensity"] = intensity
        try:
            sensor = Sensor.model_validate(fields)
        except ValidationError as e:
            raise InvalidSensorError(sensor_id, _first_error(e)) from e

        self._sensors[sensor_id] = sensor
        return sensor

    def update_sensor(self, sensor_id: str, **patch: Any) -> Sensor | None:
        """Apply a partial patch; unknown ids are ignored.

        Raises:
            InvalidSensorError: If the patched sensor violates an invariant
        """
        sensor = self._sensors.get(sensor_id)
        if sensor is None:
            logger.debug("update_sensor: unknown sensor %s", sensor_id)
            return None
        if "id" in patch and patch["id"] != sensor_id:
            raise InvalidSensorError(sensor_id, "id cannot be patched")

        merged = {**sensor.model_dump(), **patch}
        try:
            updated = Sensor.model_validate(merged)
        except ValidationError as e:
            raise InvalidSensorError(sensor_id, _first_error(e)) from e

        self._sensors[sensor_id] = updated
        return updated

    def remove_sensor(self, sensor_id: str) -> list[str]:
        """Remove a sensor and every link that references it.

        Returns:
            Identifiers of the links removed by the cascade.
        """
        if self._sensors.pop(sensor_id, None) is None:
            logger.debug("remove_sensor: unknown sensor %s", sensor_id)
        cascaded = [lid for lid, link in self._links.items() if link.touches(sensor_id)]
        for lid in cascaded:
            del self._links[lid]
        return cascaded

    def get_sensor(self, sensor_id: str) -> Sensor | None:
        return self._sensors.get(sensor_id)

    def sensors(self) -> tuple[Sensor, ...]:
        return tuple(self._sensors.values())

    # -- links --------------------------------------------------------------
    def add_link(
        self, sensor_a: str, sensor_b: str, weight: float = DEFAULT_LINK_WEIGHT
    ) -> Link:
        """Create (or replace) the link ``"{a}-{b}"``; endpoints are not checked."""
        link = Link.between(sensor_a, sensor_b, weight)
        self._links[link.id] = link
        return link

    def remove_link(self, link_id: str) -> bool:
        removed = self._links.pop(link_id, None) is not None
        if not removed:
            logger.debug("remove_link: unknown link %s", link_id)
        return removed

    def clear_links(self) -> int:
        count = len(self._links)
        self._links.clear()
        return count

    def get_link(self, link_id: str) -> Link | None:
        return self._links.get(link_id)

    def links(self) -> tuple[Link, ...]:
        return tuple(self._links.values())

    # -- attenuators --------------------------------------------------------
    def add_attenuator(
        self,
        attenuator_id: str,
        position: Point3D | tuple[float, float, float],
        factor: float,
        radius: float,
    ) -> AttenuationPoint:
        """Create (or replace) an attenuation point.

        Raises:
            InvalidAttenuatorError: If radius <= 0 or the position is malformed
        """
        try:
            att = AttenuationPoint.model_validate(
                {
                    "id": attenuator_id,
                    "position": position,
                    "factor": factor,
                    "radius": radius,
                }
            )
        except ValidationError as e:
            raise InvalidAttenuatorError(attenuator_id, _first_error(e)) from e

        self._attenuators[attenuator_id] = att
        return att

    def update_attenuator(
        self, attenuator_id: str, **patch: Any
    ) -> AttenuationPoint | None:
        att = self._attenuators.get(attenuator_id)
        if att is None:
            logger.debug("update_attenuator: unknown attenuator %s", attenuator_id)
            return None
        if "id" in patch and patch["id"] != attenuator_id:
            raise InvalidAttenuatorError(attenuator_id, "id cannot be patched")

        merged = {**att.model_dump(), **patch}
        try:
            updated = AttenuationPoint.model_validate(merged)
        except ValidationError as e:
            raise InvalidAttenuatorError(attenuator_id, _first_error(e)) from e

        self._attenuators[attenuator_id] = updated
        return updated

    def remove_attenuator(self, attenuator_id: str) -> bool:
        removed = self._attenuators.pop(attenuator_id, None) is not None
        if not removed:
            logger.debug("remove_attenuator: unknown attenuator %s", attenuator_id)
        return removed

    def get_attenuator(self, attenuator_id: str) -> AttenuationPoint | None:
        return self._attenuators.get(attenuator_id)

    def attenuators(self) -> tuple[AttenuationPoint, ...]:
        return tuple(self._attenuators.values())

    # -- bulk ---------------------------------------------------------------
    def snapshot(self) -> NetworkSnapshot:
        """Freeze the current collections for one evaluation pass."""
        return NetworkSnapshot(
            sensors=dict(self._sensors),
            links=tuple(self._links.values()),
            attenuators=tuple(self._attenuators.values()),
        )

    def clear(self) -> None:
        self._sensors.clear()
        self._links.clear()
        self._attenuators.clear()
