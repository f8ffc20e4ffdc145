"""Tests for the FieldController application service.

The render throttle is driven by the ``clock`` fixture (FakeClock) and the
rendering collaborator is a MagicMock sink, so no test depends on wall time
or a display surface.
"""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import numpy as np
import pytest

from domain.field.errors import InvalidResolutionError, UnknownStrategyError
from domain.field.strategies import InfluenceStrategy
from domain.field.value_objects import FieldConfig, RegionBounds, StrategyKind
from domain.network.errors import InvalidAttenuatorError, InvalidSensorError
from src.application import FieldController


def make_controller(clock, **config) -> tuple[FieldController, MagicMock]:
    factory = MagicMock(side_effect=lambda size, stops: MagicMock(name=f"sink{size}"))
    controller = FieldController(
        FieldConfig(texture_size=8, **config), sink_factory=factory, clock=clock
    )
    return controller, factory


@pytest.fixture
def plane() -> RegionBounds:
    return RegionBounds.from_center(center=(0, 0, 0), size=(4, 0, 4))


# ===========================================================================
# CRUD
# ===========================================================================
def test_add_sensor_uses_config_defaults(clock):
    controller, _ = make_controller(clock, default_radius=3.0)
    sensor = controller.add_sensor("s1", (0, 0, 0))
    assert sensor.radius == 3.0
    assert sensor.intensity == 1.0
    assert sensor.enabled is True


def test_add_sensor_rejects_zero_radius(clock):
    controller, _ = make_controller(clock)
    with pytest.raises(InvalidSensorError):
        controller.add_sensor("s1", (0, 0, 0), radius=0.0)


def test_add_attenuator_rejects_zero_radius(clock):
    controller, _ = make_controller(clock)
    with pytest.raises(InvalidAttenuatorError):
        controller.add_attenuator("w", (0, 0, 0), factor=0.5, radius=0.0)


def test_unknown_ids_are_noops(clock):
    controller, _ = make_controller(clock)
    assert controller.update_sensor("ghost", intensity=0.2) is None
    assert controller.update_attenuator("ghost", factor=0.2) is None
    controller.remove_sensor("ghost")
    controller.remove_link("ghost-link")
    controller.remove_attenuator("ghost")


def test_remove_sensor_cascades_links(clock):
    controller, _ = make_controller(clock)
    controller.add_sensor("a", (0, 0, 0))
    controller.add_sensor("b", (1, 0, 0))
    controller.add_link("a", "b")

    controller.remove_sensor("a")

    assert controller.get_sensor("a") is None
    assert controller.get_link("a-b") is None


def test_sensors_on_surface(clock):
    controller, _ = make_controller(clock)
    controller.add_sensor("a", (0, 0, 0), attached_surface="floor")
    controller.add_sensor("b", (1, 0, 0), attached_surface="wall")
    assert [s.id for s in controller.sensors_on_surface("floor")] == ["a"]


# ===========================================================================
# Dirty tracking & throttle
# ===========================================================================
def test_render_without_region_is_noop(clock):
    controller, factory = make_controller(clock)
    controller.add_sensor("a", (0, 0, 0))
    assert controller.render() is None
    factory.return_value.write.assert_not_called()


def test_render_throttle(clock, plane):
    controller, _ = make_controller(clock)
    controller.add_sensor("a", (0, 0, 0))
    controller.attach_region("floor", plane)

    assert controller.render() is not None
    assert controller.dirty is False

    # Clean and inside the throttle window: skipped
    clock.advance(0.005)
    assert controller.render() is None

    # Window elapsed: recomputed even though nothing changed
    clock.advance(0.02)
    assert controller.render() is not None


def test_mutation_bypasses_throttle(clock, plane):
    controller, _ = make_controller(clock)
    controller.add_sensor("a", (0, 0, 0))
    controller.attach_region("floor", plane)
    controller.render()

    controller.update_sensor("a", position=(1, 0, 1))

    assert controller.dirty is True
    assert controller.render() is not None


@pytest.mark.parametrize(
    "mutate",
    [
        lambda c: c.add_sensor("b", (1, 0, 0)),
        lambda c: c.update_sensor("a", intensity=0.3),
        lambda c: c.add_link("a", "b"),
        lambda c: c.clear_links(),
        lambda c: c.add_attenuator("w", (0, 0, 0), 0.5, 1.0),
        lambda c: c.remove_sensor("a"),
    ],
)
def test_every_mutation_marks_dirty(clock, plane, mutate):
    controller, _ = make_controller(clock)
    controller.add_sensor("a", (0, 0, 0))
    controller.attach_region("floor", plane)
    controller.render()
    assert controller.dirty is False

    mutate(controller)

    assert controller.dirty is True


def test_render_hands_grid_to_sink(clock, plane, caplog):
    controller, factory = make_controller(clock)
    controller.add_sensor("a", (0, 0, 0), radius=2.0)
    controller.attach_region("floor", plane)

    with caplog.at_level(logging.DEBUG, logger="src.application.field_controller"):
        grid = controller.render()

    sink = controller.sink
    sink.write.assert_called_once()
    assert sink.write.call_args.args[0] is grid
    assert grid.shape == (8, 8)
    assert controller.last_stats.max_value > 0
    assert "Heatmap stats" in caplog.text
    factory.assert_called_once()


def test_hidden_controller_does_not_render(clock, plane):
    controller, _ = make_controller(clock, visible=False)
    controller.attach_region("floor", plane)
    assert controller.render() is None

    change = controller.set_config(visible=True)

    assert change.visibility_changed is True
    assert controller.render() is not None


# ===========================================================================
# compute_heatmap
# ===========================================================================
def test_compute_heatmap_is_unthrottled_and_side_effect_free(clock, plane):
    controller, _ = make_controller(clock)
    controller.add_sensor("a", (0, 0, 0), radius=2.0)
    controller.attach_region("floor", plane)
    controller.render()
    controller.sink.reset_mock()

    first = controller.compute_heatmap(plane, 16)
    second = controller.compute_heatmap(plane, 16)

    assert first.shape == (16, 16)
    assert np.array_equal(first, second)
    controller.sink.write.assert_not_called()
    assert controller.dirty is False


def test_compute_heatmap_defaults_to_attached_region(clock, plane):
    controller, _ = make_controller(clock)
    assert controller.compute_heatmap() is None
    controller.attach_region("floor", plane)
    assert controller.compute_heatmap().shape == (8, 8)


def test_compute_heatmap_rejects_bad_resolution(clock, plane):
    controller, _ = make_controller(clock)
    with pytest.raises(InvalidResolutionError):
        controller.compute_heatmap(plane, 1)


def test_zero_force_red_scenario(clock, plane):
    controller, _ = make_controller(clock, zero_force_red=True)
    controller.add_sensor("a", (-1, 0, 0), intensity=0.0)
    controller.add_sensor("b", (1, 0, 0), intensity=0.0)
    grid = controller.compute_heatmap(plane, 8)
    assert np.all(grid == 0.0)


# ===========================================================================
# Regions
# ===========================================================================
def test_region_union_and_detach(clock):
    controller, _ = make_controller(clock)
    a = RegionBounds(minimum=(0, 0, 0), maximum=(2, 0, 2))
    b = RegionBounds(minimum=(1, 0, -1), maximum=(4, 1, 1))

    controller.attach_region("a", a)
    controller.attach_region("b", b)
    assert controller.bounds.minimum.as_tuple() == (0.0, 0.0, -1.0)
    assert controller.bounds.maximum.as_tuple() == (4.0, 1.0, 2.0)

    controller.detach_region("b")
    assert controller.bounds == a

    controller.detach_region("a")
    assert controller.bounds is None
    assert controller.render() is None


# ===========================================================================
# Strategy
# ===========================================================================
def _battery_pair(controller: FieldController) -> None:
    controller.add_sensor("full", (0, 0, 0), radius=2.0, intensity=1.0)
    controller.add_sensor("empty", (5, 0, 0), radius=2.0, intensity=0.0)
    controller.add_link("full", "empty")


def _charge_at_empty(controller: FieldController) -> float:
    snap = controller.snapshot()
    return controller.strategy.compute_influence(snap.sensor("empty"), (5, 0, 0), snap)


def test_intensity_patch_updates_strategy_immediately(clock):
    controller, _ = make_controller(clock, mode=StrategyKind.BATTERY)
    _battery_pair(controller)
    assert _charge_at_empty(controller) == pytest.approx(0.34375)

    controller.update_sensor("empty", intensity=1.0)

    assert _charge_at_empty(controller) == pytest.approx(1.0)


def test_position_patch_does_not_rerun_update(clock, monkeypatch):
    controller, _ = make_controller(clock, mode=StrategyKind.BATTERY)
    _battery_pair(controller)
    spy = MagicMock(wraps=controller.strategy.update)
    monkeypatch.setattr(controller.strategy, "update", spy)

    controller.update_sensor("empty", position=(6, 0, 0))
    assert spy.call_count == 0

    controller.update_sensor("empty", enabled=False)
    assert spy.call_count == 1


def test_set_strategy_discards_previous_cache(clock):
    controller, _ = make_controller(clock, mode=StrategyKind.BATTERY)
    _battery_pair(controller)
    old = controller.strategy

    controller.set_strategy("signal")

    assert controller.strategy is not old
    assert controller.config.mode is StrategyKind.SIGNAL
    assert controller.dirty is True
    # Old battery cache is gone: falls back to raw intensity
    snap = controller.snapshot()
    assert old.compute_influence(snap.sensor("empty"), (5, 0, 0), snap) == 0.0


def test_set_strategy_accepts_instance(clock):
    controller, _ = make_controller(clock)
    strategy = InfluenceStrategy(StrategyKind.BATTERY)
    controller.set_strategy(strategy)
    assert controller.strategy is strategy
    assert controller.config.mode is StrategyKind.BATTERY


def test_set_config_mode_swaps_strategy(clock, caplog):
    controller, _ = make_controller(clock)
    with caplog.at_level(logging.INFO, logger="src.application.field_controller"):
        change = controller.set_config(mode="battery")
    assert change.mode_changed is True
    assert controller.strategy.kind is StrategyKind.BATTERY
    assert "battery" in caplog.text


def test_set_config_unknown_mode(clock):
    controller, _ = make_controller(clock)
    with pytest.raises(UnknownStrategyError):
        controller.set_config(mode="thermal")
    assert controller.config.mode is StrategyKind.SIGNAL


# ===========================================================================
# Configuration & sink recreation
# ===========================================================================
def test_texture_size_patch_recreates_sink(clock, plane):
    controller, factory = make_controller(clock)
    controller.attach_region("floor", plane)
    controller.render()
    old_sink = controller.sink

    change = controller.set_config(texture_size=16)

    assert change.texture_recreated is True
    old_sink.dispose.assert_called_once()
    assert factory.call_count == 2
    assert factory.call_args.args[0] == 16
    assert controller.dirty is True
    assert controller.render().shape == (16, 16)


def test_color_stops_patch_recreates_sink(clock):
    controller, factory = make_controller(clock)
    change = controller.set_config(color_stops=[(0.0, "#000000"), (1.0, "#ffffff")])
    assert change.texture_recreated is True
    assert len(factory.call_args.args[1]) == 2


def test_combine_mode_patch_keeps_sink(clock):
    controller, factory = make_controller(clock)
    change = controller.set_config(combine_mode="overlay")
    assert change.texture_recreated is False
    assert factory.call_count == 1
    assert controller.dirty is True


def test_set_config_rejects_small_texture(clock):
    controller, _ = make_controller(clock)
    with pytest.raises(InvalidResolutionError):
        controller.set_config(texture_size=1)
    assert controller.config.texture_size == 8


def test_controller_without_sink_still_renders(clock, plane):
    controller = FieldController(FieldConfig(texture_size=4), clock=clock)
    controller.attach_region("floor", plane)
    assert controller.sink is None
    assert controller.render().shape == (4, 4)


def test_dispose_clears_everything(clock, plane):
    controller, _ = make_controller(clock)
    controller.add_sensor("a", (0, 0, 0))
    controller.attach_region("floor", plane)
    sink = controller.sink

    controller.dispose()

    sink.dispose.assert_called_once()
    assert controller.sink is None
    assert controller.get_sensor("a") is None
    assert controller.bounds is None
    assert controller.render() is None


# ===========================================================================
# Per-surface rasterization
# ===========================================================================
@pytest.fixture
def floor_and_wall(clock, plane) -> FieldController:
    controller, _ = make_controller(clock)
    controller.attach_region("floor", plane)
    controller.attach_region(
        "wall", RegionBounds(minimum=(10, 0, -2), maximum=(10, 2, 2))
    )
    return controller


def test_surface_heatmap_uses_only_attached_sensors(floor_and_wall):
    floor_and_wall.add_sensor(
        "f", (0, 0, 0), intensity=0.5, radius=4.0, attached_surface="floor"
    )
    floor_and_wall.add_sensor(
        "w", (0, 0, 0), intensity=1.0, radius=4.0, attached_surface="wall"
    )
    plane = floor_and_wall.regions()["floor"]

    floor = floor_and_wall.compute_surface_heatmap("floor", 9)

    assert floor.shape == (9, 9)
    assert floor[4, 4] == pytest.approx(0.5)
    assert floor.max() == pytest.approx(0.5)
    # The merged view still paints every sensor
    assert floor_and_wall.compute_heatmap(plane, 9)[4, 4] == pytest.approx(1.0)


def test_surface_without_sensors_is_zero(floor_and_wall):
    floor_and_wall.add_sensor("f", (10, 1, 0), radius=4.0, attached_surface="floor")
    floor_and_wall.add_sensor("w", (10, 1, 0), radius=4.0, attached_surface="wall")
    floor_and_wall.update_sensor("w", enabled=False)

    wall = floor_and_wall.compute_surface_heatmap("wall", 8)

    assert wall.shape == (8, 8)
    assert not wall.any()


def test_surface_heatmap_on_wall(floor_and_wall):
    floor_and_wall.add_sensor("w", (10, 1, 0), radius=4.0, attached_surface="wall")
    wall = floor_and_wall.compute_surface_heatmap("wall", 8)
    assert wall.max() > 0.5


def test_surface_heatmap_unknown_surface(floor_and_wall):
    assert floor_and_wall.compute_surface_heatmap("ceiling") is None


def test_surface_heatmap_rejects_bad_resolution(floor_and_wall):
    with pytest.raises(InvalidResolutionError):
        floor_and_wall.compute_surface_heatmap("floor", 1)


def test_surface_heatmap_has_no_render_side_effects(floor_and_wall):
    floor_and_wall.add_sensor("f", (0, 0, 0), attached_surface="floor")
    floor_and_wall.render()
    floor_and_wall.sink.reset_mock()

    floor_and_wall.compute_surface_heatmap("floor")

    floor_and_wall.sink.write.assert_not_called()
    assert floor_and_wall.dirty is False


def test_add_sensor_with_surface_anchor(clock):
    controller, _ = make_controller(clock)
    sensor = controller.add_sensor(
        "s", (0, 0.5, 0), attached_surface="floor", surface_anchor=(0, 0, 0)
    )
    assert sensor.anchor.as_tuple() == (0.0, 0.0, 0.0)
    assert sensor.position.as_tuple() == (0.0, 0.5, 0.0)
