"""Single source of truth for engine defaults.

These values are read by:
- domain/field/value_objects.py (FieldConfig defaults)
- scripts/render_demo.py (demo scene)
- tests/ (expected defaults)

Location: shared/ (not domain/) so scripts and tests can import the numbers
without pulling in pydantic or numpy.
"""

from __future__ import annotations

# Sensor defaults
DEFAULT_SENSOR_RADIUS: float = 2.5
DEFAULT_SENSOR_INTENSITY: float = 1.0
DEFAULT_LINK_WEIGHT: float = 1.0

# Raster defaults
DEFAULT_TEXTURE_SIZE: int = 128
MIN_TEXTURE_SIZE: int = 2  # u = x / (size - 1) needs at least two samples per axis

# Render throttle: one frame at 60 Hz
RENDER_THROTTLE_S: float = 0.016

# Battery diffusion solver
DIFFUSION_MAX_ITERATIONS: int = 5
DIFFUSION_TOLERANCE: float = 0.001

# Signal link corridor: half of the larger endpoint radius
LINK_RADIUS_FACTOR: float = 0.5

# Colour gradient: red (no coverage) -> yellow -> green (full coverage)
DEFAULT_COLOR_STOPS: list[tuple[float, str]] = [
    (0.0, "#ff0000"),
    (0.5, "#ffff00"),
    (1.0, "#00ff00"),
]

# Legend thresholds (low, mid, high)
DEFAULT_THRESHOLDS: tuple[float, float, float] = (0.2, 0.6, 0.9)
