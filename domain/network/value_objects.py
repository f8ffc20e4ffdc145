"""Sensor Network Bounded Context - Value Objects.

Immutable geometric primitives shared by sensors, attenuators and the field
rasterizer. All validation occurs at construction time via Pydantic.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, model_validator


class Point3D(BaseModel):
    """Position in scene world space (Value Object).

    Accepts either keyword coordinates or any 3-element sequence, so callers
    can write ``Point3D.model_validate((1, 2, 3))`` or pass a plain tuple
    wherever a Point3D field is expected.

    Invariants:
        P3-1: x, y, z are finite
    """

    x: float
    y: float
    z: float

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def coerce_sequence(cls, data: Any) -> Any:
        if isinstance(data, np.ndarray):
            data = data.tolist()
        if isinstance(data, Sequence) and not isinstance(data, (str, bytes)):
            if len(data) != 3:
                raise ValueError(f"Point3D needs 3 coordinates, got {len(data)}")
            return {"x": data[0], "y": data[1], "z": data[2]}
        return data

    @model_validator(mode="after")
    def validate_finite(self) -> "Point3D":
        if not all(math.isfinite(c) for c in (self.x, self.y, self.z)):
            raise ValueError(f"Point3D coordinates must be finite: {self.as_tuple()}")
        return self

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def as_array(self) -> NDArray[np.float64]:
        """Return coordinates as a float64 array of shape (3,)."""
        return np.array(self.as_tuple(), dtype=np.float64)

    def distance_to(self, other: "Point3D") -> float:
        """Euclidean distance to another point."""
        return math.dist(self.as_tuple(), other.as_tuple())
