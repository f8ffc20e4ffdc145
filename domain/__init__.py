"""Sensor Heatmap Domain Layer.

This package contains the core business logic organized by bounded contexts:
- network: Sensors, links, attenuation points and their store
- field: Influence strategies, combination algebra, diffusion, rasterization
"""

# Imports alphabetized per project style (isort)
from domain import field, network

__all__ = ["field", "network"]
