"""Sensor Network Bounded Context - Entities.

Sensors, links and attenuation points are identified by a stable string id.
Instances are immutable: a patch produces a new, fully validated instance
which replaces the old one in the store.

Strategy-agnostic: ``Sensor.intensity`` is a generic [0, 1] scalar whose
meaning (signal strength or battery charge) is decided by the active
influence strategy, not by the entity.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.network.value_objects import Point3D
from shared.defaults import (
    DEFAULT_LINK_WEIGHT,
    DEFAULT_SENSOR_INTENSITY,
    DEFAULT_SENSOR_RADIUS,
)


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def link_id(sensor_a: str, sensor_b: str) -> str:
    """Derive the link identifier from the ordered endpoint pair."""
    return f"{sensor_a}-{sensor_b}"


# ---------------------------------------------------------------------------
# Sensor
# ---------------------------------------------------------------------------
class Sensor(BaseModel):
    """Point source contributing a distance-weighted scalar (Entity).

    Invariants:
        S-1: radius > 0 (rejected otherwise - falloff divides by radius)
        S-2: intensity in [0, 1] (out-of-range input is clamped)

    ``attached_surface`` is a non-owning identifier of the external surface
    the sensor was placed on; the surface controls its own lifetime.
    ``surface_anchor``, when set, is the point on that surface the signal
    field radiates from (the marker itself may float above the surface).
    """

    id: str = Field(min_length=1)
    position: Point3D
    intensity: float = DEFAULT_SENSOR_INTENSITY
    radius: float = Field(default=DEFAULT_SENSOR_RADIUS, gt=0)
    enabled: bool = True
    attached_surface: str | None = None
    surface_anchor: Point3D | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("intensity")
    @classmethod
    def clamp_intensity(cls, value: float) -> float:
        return _clamp_unit(value)

    @property
    def anchor(self) -> Point3D:
        """Evaluation origin: the surface anchor if set, else the position."""
        return self.surface_anchor if self.surface_anchor is not None else self.position


# ---------------------------------------------------------------------------
# Link
# ---------------------------------------------------------------------------
class Link(BaseModel):
    """Weighted edge between two sensors (Entity).

    Endpoints are weak references: existence is checked by lookup at
    evaluation time, never at construction. ``weight`` is a plain multiplier
    and is not clamped.
    """

    id: str
    sensor_a: str
    sensor_b: str
    weight: float = DEFAULT_LINK_WEIGHT

    model_config = ConfigDict(frozen=True)

    @classmethod
    def between(
        cls, sensor_a: str, sensor_b: str, weight: float = DEFAULT_LINK_WEIGHT
    ) -> "Link":
        return cls(
            id=link_id(sensor_a, sensor_b),
            sensor_a=sensor_a,
            sensor_b=sensor_b,
            weight=weight,
        )

    def touches(self, sensor_id: str) -> bool:
        return sensor_id in (self.sensor_a, self.sensor_b)

    def other(self, sensor_id: str) -> str | None:
        """Return the opposite endpoint, or None if the link does not touch sensor_id."""
        if self.sensor_a == sensor_id:
            return self.sensor_b
        if self.sensor_b == sensor_id:
            return self.sensor_a
        return None


# ---------------------------------------------------------------------------
# AttenuationPoint
# ---------------------------------------------------------------------------
class AttenuationPoint(BaseModel):
    """Localized zone multiplicatively dampening influence (Entity).

    Invariants:
        A-1: radius > 0 (rejected otherwise)
        A-2: factor in [0, 1], 1 = no attenuation, 0 = full block (clamped)
    """

    id: str = Field(min_length=1)
    position: Point3D
    factor: float
    radius: float = Field(gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("factor")
    @classmethod
    def clamp_factor(cls, value: float) -> float:
        return _clamp_unit(value)
