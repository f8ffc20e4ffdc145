"""Coverage Field Bounded Context - Error Hierarchy.

Raised only at the configuration boundary. Per-frame evaluation never
raises: missing link endpoints, non-converging diffusion and missing regions
all degrade silently.
"""

from __future__ import annotations


class FieldError(Exception):
    """Base error for coverage field operations."""


class InvalidResolutionError(FieldError, ValueError):
    """Grid resolution is too small to rasterize.

    Attributes:
        resolution: The offending resolution
    """

    def __init__(self, resolution: int, minimum: int) -> None:
        self.resolution = resolution
        self.minimum = minimum
        super().__init__(f"Grid resolution must be >= {minimum}, got {resolution}")


class UnknownStrategyError(FieldError, ValueError):
    """Requested strategy name is not one of the known variants."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown influence strategy: {name!r}")


class InvalidConfigError(FieldError, ValueError):
    """Configuration patch failed validation."""


class InvalidColorStopError(FieldError, ValueError):
    """Colour stops cannot be used to build a colour map."""
