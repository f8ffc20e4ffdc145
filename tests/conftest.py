"""Root pytest configuration for all tests.

Provides a controllable clock for the render throttle and factories for the
common entities, so tests never depend on wall time.
"""

from __future__ import annotations

import pytest

from domain.field.value_objects import RegionBounds
from domain.network.store import SensorNetwork


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def network() -> SensorNetwork:
    return SensorNetwork()


@pytest.fixture
def unit_cube() -> RegionBounds:
    """Unit cube centred at the origin."""
    return RegionBounds.from_center(center=(0, 0, 0), size=(1, 1, 1))
