"""Domain Port(s) for the rendering collaborator.

Defines the interface a texture/canvas adapter must implement to receive
rasterized grids. No concrete rendering here.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol

import numpy as np
from numpy.typing import NDArray

from .value_objects import ColorStop


class HeatmapSink(Protocol):
    """Port for pushing a coverage grid to a display surface.

    Implementations live in infrastructure (e.g., colour-map texture adapter).
    """

    def write(self, grid: NDArray[np.float64]) -> None:
        """Paint a (size, size) grid of values in [0, 1]."""
        ...

    def dispose(self) -> None:
        """Release any resources tied to the current resolution/colours."""
        ...


# Builds a sink for a texture size and colour gradient; called again whenever
# either changes.
SinkFactory = Callable[[int, Sequence[ColorStop]], HeatmapSink]
