"""Coverage Field Bounded Context - Value Objects.

Immutable configuration and geometry for the rasterizer. All validation
occurs at construction time via Pydantic; configuration patches build a new
validated FieldConfig instead of mutating the old one.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from domain.field.errors import InvalidConfigError, InvalidResolutionError
from domain.network.value_objects import Point3D
from shared.defaults import (
    DEFAULT_COLOR_STOPS,
    DEFAULT_SENSOR_RADIUS,
    DEFAULT_TEXTURE_SIZE,
    DEFAULT_THRESHOLDS,
    MIN_TEXTURE_SIZE,
)

AXIS_NAMES = ("x", "y", "z")


class CombineMode(str, Enum):
    """Reduction policy merging several sensors' influence at one point."""

    ADD = "add"
    MAX = "max"
    OVERLAY = "overlay"


class StrategyKind(str, Enum):
    """Closed set of influence strategies."""

    SIGNAL = "signal"
    BATTERY = "battery"


# ---------------------------------------------------------------------------
# RegionBounds
# ---------------------------------------------------------------------------
class RegionBounds(BaseModel):
    """Axis-aligned 3D bounding box of a target surface (Value Object).

    Degenerate extents are allowed (a ground plane has zero height).

    Invariants:
        RB-1: minimum <= maximum on every axis
    """

    minimum: Point3D
    maximum: Point3D

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_ordering(self) -> "RegionBounds":
        for axis in AXIS_NAMES:
            lo, hi = getattr(self.minimum, axis), getattr(self.maximum, axis)
            if lo > hi:
                raise ValueError(f"Invalid {axis} ordering: min={lo} > max={hi}")
        return self

    @classmethod
    def from_center(
        cls, center: Sequence[float], size: Sequence[float]
    ) -> "RegionBounds":
        """Build bounds from a centre point and full extents."""
        half = [s / 2 for s in size]
        return cls(
            minimum=Point3D.model_validate([c - h for c, h in zip(center, half)]),
            maximum=Point3D.model_validate([c + h for c, h in zip(center, half)]),
        )

    def extents(self) -> tuple[float, float, float]:
        """Return (width, height, depth) along x, y, z."""
        return (
            self.maximum.x - self.minimum.x,
            self.maximum.y - self.minimum.y,
            self.maximum.z - self.minimum.z,
        )

    def center(self) -> Point3D:
        return Point3D(
            x=(self.minimum.x + self.maximum.x) / 2,
            y=(self.minimum.y + self.maximum.y) / 2,
            z=(self.minimum.z + self.maximum.z) / 2,
        )

    def union(self, other: "RegionBounds") -> "RegionBounds":
        """Component-wise min/max of two boxes."""
        return RegionBounds(
            minimum=Point3D(
                x=min(self.minimum.x, other.minimum.x),
                y=min(self.minimum.y, other.minimum.y),
                z=min(self.minimum.z, other.minimum.z),
            ),
            maximum=Point3D(
                x=max(self.maximum.x, other.maximum.x),
                y=max(self.maximum.y, other.maximum.y),
                z=max(self.maximum.z, other.maximum.z),
            ),
        )

    @staticmethod
    def union_all(regions: Iterable["RegionBounds"]) -> "RegionBounds | None":
        """Union of every region, or None when there are none."""
        result: RegionBounds | None = None
        for region in regions:
            result = region if result is None else result.union(region)
        return result


# ---------------------------------------------------------------------------
# Colour stops & thresholds
# ---------------------------------------------------------------------------
class ColorStop(BaseModel):
    """Gradient stop: a value in [0, 1] and a ``#rrggbb`` colour."""

    value: float = Field(ge=0, le=1)
    color: str

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def coerce_pair(cls, data: Any) -> Any:
        if isinstance(data, (tuple, list)) and len(data) == 2:
            return {"value": data[0], "color": data[1]}
        return data


class Thresholds(BaseModel):
    """Legend thresholds used to bucket coverage values.

    Invariants:
        TH-1: 0 <= low < mid < high <= 1
    """

    low: float = Field(default=DEFAULT_THRESHOLDS[0], ge=0, le=1)
    mid: float = Field(default=DEFAULT_THRESHOLDS[1], ge=0, le=1)
    high: float = Field(default=DEFAULT_THRESHOLDS[2], ge=0, le=1)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_ordering(self) -> "Thresholds":
        if not (self.low < self.mid < self.high):
            raise ValueError(
                f"Thresholds must satisfy low < mid < high, got "
                f"{self.low}, {self.mid}, {self.high}"
            )
        return self

    def classify(self, value: float) -> str:
        """Bucket a coverage value into "low", "mid", "high" or "full"."""
        if value < self.low:
            return "low"
        if value < self.mid:
            return "mid"
        if value < self.high:
            return "high"
        return "full"


def _default_color_stops() -> tuple[ColorStop, ...]:
    return tuple(ColorStop(value=v, color=c) for v, c in DEFAULT_COLOR_STOPS)


# ---------------------------------------------------------------------------
# FieldConfig
# ---------------------------------------------------------------------------
class FieldConfig(BaseModel):
    """Process-wide engine configuration owned by the field controller."""

    mode: StrategyKind = StrategyKind.SIGNAL
    color_stops: tuple[ColorStop, ...] = Field(default_factory=_default_color_stops)
    default_radius: float = Field(default=DEFAULT_SENSOR_RADIUS, gt=0)
    texture_size: int = Field(default=DEFAULT_TEXTURE_SIZE, ge=MIN_TEXTURE_SIZE)
    combine_mode: CombineMode = CombineMode.MAX
    zero_force_red: bool = True
    uv_v_flipped: bool = True
    thresholds: Thresholds = Field(default_factory=Thresholds)
    visible: bool = True

    model_config = ConfigDict(frozen=True, extra="forbid")

    def patched(self, **patch: Any) -> "FieldConfig":
        """Return a new config with ``patch`` applied.

        Raises:
            InvalidResolutionError: If texture_size < MIN_TEXTURE_SIZE
            InvalidConfigError: For any other invalid field
        """
        merged = {**self.model_dump(), **patch}
        try:
            return FieldConfig.model_validate(merged)
        except ValidationError as e:
            for err in e.errors():
                too_small = err["type"] == "greater_than_equal"
                if err["loc"] == ("texture_size",) and too_small:
                    raise InvalidResolutionError(
                        patch["texture_size"], MIN_TEXTURE_SIZE
                    ) from e
            raise InvalidConfigError(str(e)) from e
