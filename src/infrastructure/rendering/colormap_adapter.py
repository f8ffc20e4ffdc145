"""Colour-map texture adapter for the HeatmapSink port.

Turns a coverage grid into an RGBA image by linear interpolation between
colour stops. The resulting ``image`` array is what a display surface
uploads as a texture.

Lifecycle:
1) Build with the current texture size and colour stops
2) ``write(grid)`` for every rendered frame
3) ``dispose()`` when size or colours change; the controller then builds a
   fresh adapter through its sink factory
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray

from domain.field.errors import InvalidColorStopError
from domain.field.value_objects import ColorStop

# Module-level logger (reused across all calls)
logger = logging.getLogger(__name__)

_HEX_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


def hex_to_rgb(color: str) -> tuple[int, int, int]:
    """Parse ``#rrggbb`` (leading # optional); unparseable input maps to black."""
    match = _HEX_RE.match(color)
    if match is None:
        logger.debug("Unparseable colour %r, using black", color)
        return (0, 0, 0)
    return (int(match[1], 16), int(match[2], 16), int(match[3], 16))


class ColorMapTexture:
    """Infrastructure adapter rendering coverage grids to RGBA pixels.

    Parameters
    ----------
    size: int
        Texture width and height in pixels; grids must match it.
    color_stops: Sequence[ColorStop]
        Gradient stops, ordered by value. At least one is required.
    """

    def __init__(self, size: int, color_stops: Sequence[ColorStop]) -> None:
        if not color_stops:
            raise InvalidColorStopError("At least one colour stop is required")
        self.size = size
        self.color_stops = tuple(color_stops)
        self._rgb = [hex_to_rgb(stop.color) for stop in self.color_stops]
        self.image: NDArray[np.uint8] | None = np.zeros((size, size, 4), dtype=np.uint8)
        self.writes = 0

    @property
    def disposed(self) -> bool:
        return self.image is None

    def value_to_color(self, value: float) -> tuple[int, int, int]:
        """Interpolate the gradient at ``value``.

        Uses the first adjacent stop pair bracketing the value; values outside
        every pair fall back to the (first, last) pair.
        """
        stops = self.color_stops
        lower, upper = 0, len(stops) - 1
        for i in range(len(stops) - 1):
            if stops[i].value <= value <= stops[i + 1].value:
                lower, upper = i, i + 1
                break

        denom = (stops[upper].value - stops[lower].value) or 1.0
        t = (value - stops[lower].value) / denom
        lo_rgb, hi_rgb = self._rgb[lower], self._rgb[upper]
        return tuple(  # type: ignore[return-value]
            int(round(lo + (hi - lo) * t)) for lo, hi in zip(lo_rgb, hi_rgb)
        )

    def write(self, grid: NDArray[np.float64]) -> None:
        """Colour-map a (size, size) grid into ``image``.

        Raises:
            RuntimeError: If the texture has been disposed
            ValueError: If the grid shape does not match the texture size
        """
        if self.image is None:
            raise RuntimeError("ColorMapTexture used after dispose()")
        if grid.shape != (self.size, self.size):
            raise ValueError(
                f"Grid shape {grid.shape} does not match texture size {self.size}"
            )

        clamped = np.clip(grid, 0.0, 1.0)
        # Gradients are short; colour each distinct value once.
        values, inverse = np.unique(clamped, return_inverse=True)
        palette = np.array([self.value_to_color(float(v)) for v in values], dtype=np.uint8)
        rgb = palette[inverse.reshape(-1)].reshape(self.size, self.size, 3)

        self.image[:, :, :3] = rgb
        self.image[:, :, 3] = 255
        self.writes += 1

    def dispose(self) -> None:
        self.image = None
        logger.debug("Disposed %dx%d colour-map texture", self.size, self.size)


def build_texture(size: int, color_stops: Sequence[ColorStop]) -> ColorMapTexture:
    """SinkFactory for FieldController."""
    return ColorMapTexture(size, color_stops)
