#!/usr/bin/env python3
"""Render the playground scene in both strategies and print ASCII previews.

The scene is the playground: a 6 x 4 ground plane, four sensors A-D near its
corners linked pairwise into a full mesh, and a wall of ten attenuation
points across x = 0. Useful for eyeballing falloff shapes without a display
surface.

Usage:
    python scripts/render_demo.py

Requirements:
    pip install numpy pydantic
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray

from domain.field.value_objects import FieldConfig, RegionBounds, StrategyKind
from shared.defaults import DEFAULT_COLOR_STOPS
from src.application import FieldController
from src.infrastructure.rendering import build_texture

PREVIEW_SIZE = 32
SENSOR_RADIUS = 4.0
WALL_POINTS = 10
WALL_FACTOR = 0.3
WALL_RADIUS = 0.8
SHADES = " .:-=+*#%@"  # light to dense

SENSOR_POSITIONS = {
    "A": (-2.5, 0.2, -1.5),
    "B": (2.5, 0.2, -1.5),
    "C": (2.5, 0.2, 1.5),
    "D": (-2.5, 0.2, 1.5),
}


def build_scene(mode: StrategyKind) -> FieldController:
    """Playground: ground plane at y=0, sensors and wall slightly above it."""
    controller = FieldController(
        FieldConfig(mode=mode, texture_size=PREVIEW_SIZE, default_radius=SENSOR_RADIUS),
        sink_factory=build_texture,
    )
    controller.attach_region(
        "ground", RegionBounds.from_center(center=(0, 0, 0), size=(6, 0, 4))
    )

    for sensor_id, position in SENSOR_POSITIONS.items():
        controller.add_sensor(sensor_id, position, intensity=1.0)

    ids = list(SENSOR_POSITIONS)
    for i, a in enumerate(ids):
        for b in ids[i + 1 :]:
            controller.add_link(a, b, 1.0)

    for i in range(WALL_POINTS):
        z = -1.5 + 3.0 / (WALL_POINTS - 1) * i
        controller.add_attenuator(f"wall{i}", (0.0, 0.2, z), WALL_FACTOR, WALL_RADIUS)
    return controller


def ascii_preview(grid: NDArray[np.float64]) -> str:
    """One character per cell, denser glyphs for stronger coverage."""
    idx = np.clip((grid * (len(SHADES) - 1)).round().astype(int), 0, len(SHADES) - 1)
    return "\n".join("".join(SHADES[i] for i in row) for row in idx)


def main() -> int:
    """Render both modes.

    Returns:
        0 on success, 1 if a render produced nothing
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("Coverage heatmap demo")
    print(f"Gradient: {', '.join(f'{v:.1f}={c}' for v, c in DEFAULT_COLOR_STOPS)}")
    print("=" * 60)

    for mode in StrategyKind:
        controller = build_scene(mode)
        grid = controller.render()
        if grid is None or controller.last_stats is None:
            print(f"ERROR: {mode.value} render produced no grid")
            return 1

        stats = controller.last_stats
        print(f"\nMode: {mode.value}")
        print(ascii_preview(grid))
        print(
            f"max={stats.max_value:.3f}  nonzero={stats.nonzero_cells}/"
            f"{stats.total_cells}  coverage={stats.coverage_pct:.1f}%"
        )
        controller.dispose()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
