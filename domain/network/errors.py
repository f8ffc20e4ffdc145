"""Sensor Network Bounded Context - Error Hierarchy.

Custom exceptions raised at the mutation boundary of the entity store.
Lookups of unknown identifiers are NOT errors (they are silent no-ops);
only entities that would break the falloff formulas are rejected.
"""

from __future__ import annotations


class NetworkError(Exception):
    """Base error for sensor network operations."""


class InvalidSensorError(NetworkError, ValueError):
    """Sensor parameters are invalid (e.g. non-positive radius).

    Attributes:
        sensor_id: Identifier of the rejected sensor
    """

    def __init__(self, sensor_id: str, reason: str) -> None:
        self.sensor_id = sensor_id
        self.reason = reason
        super().__init__(f"Invalid sensor {sensor_id!r}: {reason}")


class InvalidAttenuatorError(NetworkError, ValueError):
    """Attenuation point parameters are invalid (e.g. non-positive radius).

    Attributes:
        attenuator_id: Identifier of the rejected attenuator
    """

    def __init__(self, attenuator_id: str, reason: str) -> None:
        self.attenuator_id = attenuator_id
        self.reason = reason
        super().__init__(f"Invalid attenuator {attenuator_id!r}: {reason}")
