"""Tests for the colour-map texture adapter."""

from __future__ import annotations

import numpy as np
import pytest

from domain.field.errors import InvalidColorStopError
from domain.field.value_objects import ColorStop, FieldConfig, RegionBounds
from src.application import FieldController
from src.infrastructure.rendering import ColorMapTexture, build_texture, hex_to_rgb


@pytest.fixture
def texture() -> ColorMapTexture:
    return build_texture(4, FieldConfig().color_stops)


@pytest.mark.parametrize(
    "color, rgb",
    [
        ("#ff8000", (255, 128, 0)),
        ("00FF7f", (0, 255, 127)),
        ("not-a-colour", (0, 0, 0)),
        ("#fff", (0, 0, 0)),
    ],
)
def test_hex_to_rgb(color, rgb):
    assert hex_to_rgb(color) == rgb


@pytest.mark.parametrize(
    "value, rgb",
    [
        (0.0, (255, 0, 0)),
        (0.25, (255, 128, 0)),
        (0.5, (255, 255, 0)),
        (0.75, (128, 255, 0)),
        (1.0, (0, 255, 0)),
    ],
)
def test_default_gradient(texture, value, rgb):
    assert texture.value_to_color(value) == rgb


def test_single_stop_is_flat():
    flat = ColorMapTexture(2, [ColorStop(value=0.5, color="#123456")])
    assert flat.value_to_color(0.0) == (0x12, 0x34, 0x56)
    assert flat.value_to_color(1.0) == (0x12, 0x34, 0x56)


def test_empty_stops_rejected():
    with pytest.raises(InvalidColorStopError):
        ColorMapTexture(4, [])


def test_write_fills_rgba(texture):
    grid = np.zeros((4, 4))
    grid[0, 0] = 1.0
    grid[3, 3] = 2.0  # clipped to 1

    texture.write(grid)

    assert texture.writes == 1
    assert texture.image.dtype == np.uint8
    assert np.all(texture.image[..., 3] == 255)
    assert texture.image[0, 0, :3].tolist() == [0, 255, 0]
    assert texture.image[3, 3, :3].tolist() == [0, 255, 0]
    assert texture.image[1, 1, :3].tolist() == [255, 0, 0]


def test_write_rejects_mismatched_grid(texture):
    with pytest.raises(ValueError):
        texture.write(np.zeros((3, 3)))


def test_write_after_dispose(texture):
    texture.dispose()
    assert texture.disposed is True
    with pytest.raises(RuntimeError):
        texture.write(np.zeros((4, 4)))


@pytest.mark.integration
def test_controller_renders_into_texture(clock):
    controller = FieldController(
        FieldConfig(texture_size=9), sink_factory=build_texture, clock=clock
    )
    controller.attach_region(
        "floor", RegionBounds.from_center(center=(0, 0, 0), size=(4, 0, 4))
    )
    controller.add_sensor("s", (0, 0, 0), radius=2.0)

    grid = controller.render()

    texture = controller.sink
    assert isinstance(texture, ColorMapTexture)
    assert texture.writes == 1
    # Centre sample sits on the sensor: full coverage is green
    assert grid[4, 4] == pytest.approx(1.0)
    assert texture.image[4, 4, :3].tolist() == [0, 255, 0]
    # Corners are out of range: red
    assert texture.image[0, 0, :3].tolist() == [255, 0, 0]

    controller.set_config(texture_size=5)
    assert texture.disposed is True
    assert controller.sink.size == 5
