"""Field Controller - application service driving the coverage heatmap.

Orchestrates the sensor network, the active influence strategy, the
aggregate target region and the rendering sink. Designed to be called from
a single per-frame loop; nothing here blocks or locks.

State machine:
    ``dirty`` is set by every mutation. ``render()`` recomputes when dirty or
    when the throttle window (one 60 Hz frame) has elapsed since the last
    render, and is skipped otherwise.

Immediate strategy updates:
    Sensor add/remove, link changes and sensor patches touching
    ``intensity`` or ``enabled`` rerun ``strategy.update`` right away, so the
    battery diffusion cache is never stale even when the next render is
    throttled.

Surfaces:
    Regions are keyed by surface id. ``render()`` and ``compute_heatmap()``
    work on the union of every attached region, while
    ``compute_surface_heatmap()`` rasterizes a single surface with only the
    sensors whose ``attached_surface`` matches it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict

from domain.field.ports import HeatmapSink, SinkFactory
from domain.field.raster import RasterStats, coverage_stats, rasterize
from domain.field.strategies import InfluenceStrategy
from domain.field.value_objects import FieldConfig, RegionBounds, StrategyKind
from domain.network.entities import AttenuationPoint, Link, Sensor
from domain.network.store import NetworkSnapshot, SensorNetwork
from domain.network.value_objects import Point3D
from shared.defaults import DEFAULT_LINK_WEIGHT, RENDER_THROTTLE_S

# Module-level logger (reused across all calls)
logger = logging.getLogger(__name__)

_STRATEGY_FIELDS = frozenset({"intensity", "enabled"})
_TEXTURE_FIELDS = frozenset({"texture_size", "color_stops"})


class ConfigChange(BaseModel):
    """What a configuration patch invalidated (Value Object).

    Attributes:
        texture_recreated: Resolution or colour stops changed; any texture
            built for the old values is stale and must be recreated
        mode_changed: The active strategy was swapped
        visibility_changed: The visible flag flipped
    """

    texture_recreated: bool = False
    mode_changed: bool = False
    visibility_changed: bool = False

    model_config = ConfigDict(frozen=True)


class FieldController:
    """Owns the network, strategy, regions and sink of one heatmap.

    Parameters
    ----------
    config: FieldConfig | None
        Initial configuration; defaults to ``FieldConfig()``.
    sink_factory: SinkFactory | None
        Builds the rendering sink for a texture size and colour stops. Without
        one, ``render()`` still computes grids but hands them to nobody.
    clock: Callable[[], float]
        Monotonic time source in seconds (injectable for tests).
    throttle_s: float
        Minimum seconds between non-dirty renders.
    """

    def __init__(
        self,
        config: FieldConfig | None = None,
        *,
        sink_factory: SinkFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
        throttle_s: float = RENDER_THROTTLE_S,
    ) -> None:
        self.config = config if config is not None else FieldConfig()
        self.network = SensorNetwork()
        self._strategy = InfluenceStrategy(self.config.mode)
        self._regions: dict[str, RegionBounds] = {}
        self.bounds: RegionBounds | None = None

        self._sink_factory = sink_factory
        self.sink: HeatmapSink | None = self._build_sink()

        self._clock = clock
        self.throttle_s = throttle_s
        self.dirty = True
        self.last_render_time: float | None = None
        self.last_grid: NDArray[np.float64] | None = None
        self.last_stats: RasterStats | None = None

        self._update_strategy_immediate()

    # -----------------------------
    # SENSOR MANAGEMENT
    # -----------------------------
    def add_sensor(
        self,
        sensor_id: str,
        position: Point3D | tuple[float, float, float],
        *,
        intensity: float | None = None,
        radius: float | None = None,
        attached_surface: str | None = None,
        surface_anchor: Point3D | tuple[float, float, float] | None = None,
    ) -> Sensor:
        """Add a sensor (intensity 1, configured default radius, enabled).

        Raises:
            InvalidSensorError: If radius <= 0
        """
        sensor = self.network.add_sensor(
            sensor_id,
            position,
            radius=self.config.default_radius if radius is None else radius,
            intensity=intensity,
            attached_surface=attached_surface,
            surface_anchor=surface_anchor,
        )
        logger.debug(
            "Sensor %s added (intensity=%.2f, radius=%.2f)",
            sensor.id,
            sensor.intensity,
            sensor.radius,
        )
        self.dirty = True
        self._update_strategy_immediate()
        return sensor

    def update_sensor(self, sensor_id: str, **patch: Any) -> Sensor | None:
        """Patch a sensor; unknown ids are a no-op returning None."""
        sensor = self.network.update_sensor(sensor_id, **patch)
        if sensor is None:
            return None

        self.dirty = True
        if _STRATEGY_FIELDS & patch.keys():
            self._update_strategy_immediate()
        return sensor

    def remove_sensor(self, sensor_id: str) -> None:
        """Remove a sensor and, by cascade, every link touching it."""
        cascaded = self.network.remove_sensor(sensor_id)
        if cascaded:
            logger.debug("Sensor %s removed with links %s", sensor_id, cascaded)
        self.dirty = True
        self._update_strategy_immediate()

    def get_sensor(self, sensor_id: str) -> Sensor | None:
        return self.network.get_sensor(sensor_id)

    def sensors_on_surface(self, surface_id: str) -> list[Sensor]:
        """Sensors whose ``attached_surface`` is ``surface_id``."""
        return [s for s in self.network.sensors() if s.attached_surface == surface_id]

    # -----------------------------
    # LINK MANAGEMENT
    # -----------------------------
    def add_link(
        self, sensor_a: str, sensor_b: str, weight: float = DEFAULT_LINK_WEIGHT
    ) -> Link:
        link = self.network.add_link(sensor_a, sensor_b, weight)
        self.dirty = True
        self._update_strategy_immediate()
        return link

    def remove_link(self, link_id: str) -> None:
        self.network.remove_link(link_id)
        self.dirty = True
        self._update_strategy_immediate()

    def clear_links(self) -> None:
        self.network.clear_links()
        self.dirty = True
        self._update_strategy_immediate()

    def get_link(self, link_id: str) -> Link | None:
        return self.network.get_link(link_id)

    # -----------------------------
    # ATTENUATOR MANAGEMENT
    # -----------------------------
    def add_attenuator(
        self,
        attenuator_id: str,
        position: Point3D | tuple[float, float, float],
        factor: float,
        radius: float,
    ) -> AttenuationPoint:
        """Add an attenuation point.

        Raises:
            InvalidAttenuatorError: If radius <= 0
        """
        att = self.network.add_attenuator(attenuator_id, position, factor, radius)
        self.dirty = True
        return att

    def update_attenuator(
        self, attenuator_id: str, **patch: Any
    ) -> AttenuationPoint | None:
        att = self.network.update_attenuator(attenuator_id, **patch)
        if att is not None:
            self.dirty = True
        return att

    def remove_attenuator(self, attenuator_id: str) -> None:
        self.network.remove_attenuator(attenuator_id)
        self.dirty = True

    def get_attenuator(self, attenuator_id: str) -> AttenuationPoint | None:
        return self.network.get_attenuator(attenuator_id)

    # -----------------------------
    # STRATEGY & CONFIG
    # -----------------------------
    @property
    def strategy(self) -> InfluenceStrategy:
        return self._strategy

    def set_strategy(self, strategy: InfluenceStrategy | StrategyKind | str) -> None:
        """Swap the active strategy, discarding the previous one's cache.

        Raises:
            UnknownStrategyError: If given an unknown strategy name
        """
        if not isinstance(strategy, InfluenceStrategy):
            strategy = InfluenceStrategy.from_name(strategy)

        self._strategy.reset()
        self._strategy = strategy
        if self.config.mode is not strategy.kind:
            self.config = self.config.patched(mode=strategy.kind)
        logger.info("Heatmap strategy changed to: %s", strategy.name)
        self.dirty = True
        self._update_strategy_immediate()

    def set_config(self, **patch: Any) -> ConfigChange:
        """Patch configuration fields.

        Returns:
            ConfigChange describing what was invalidated

        Raises:
            InvalidResolutionError: If texture_size < 2
            InvalidConfigError: For any other invalid value
            UnknownStrategyError: If ``mode`` names an unknown strategy
        """
        if "mode" in patch:
            patch["mode"] = InfluenceStrategy.from_name(patch["mode"]).kind

        old = self.config
        self.config = old.patched(**patch)

        mode_changed = self.config.mode is not old.mode
        visibility_changed = self.config.visible != old.visible
        texture_recreated = bool(_TEXTURE_FIELDS & patch.keys())

        if texture_recreated:
            logger.info(
                "Heatmap texture needs recreation (size=%d, stops=%d)",
                self.config.texture_size,
                len(self.config.color_stops),
            )
            if self.sink is not None:
                self.sink.dispose()
            self.sink = self._build_sink()
            self.dirty = True

        if visibility_changed:
            logger.info("Heatmap visibility changed to: %s", self.config.visible)
            if self.config.visible:
                self.dirty = True
                self._update_strategy_immediate()

        if mode_changed:
            self.set_strategy(InfluenceStrategy(self.config.mode))

        if patch.keys() - _TEXTURE_FIELDS - {"mode", "visible"}:
            self.dirty = True

        return ConfigChange(
            texture_recreated=texture_recreated,
            mode_changed=mode_changed,
            visibility_changed=visibility_changed,
        )

    # -----------------------------
    # REGION MANAGEMENT
    # -----------------------------
    def attach_region(self, key: str, bounds: RegionBounds) -> None:
        """Bind a target surface's bounding box under ``key``."""
        self._regions[key] = bounds
        self._update_bounds()

    def detach_region(self, key: str) -> None:
        if self._regions.pop(key, None) is None:
            logger.debug("detach_region: unknown region %s", key)
            return
        self._update_bounds()

    def regions(self) -> dict[str, RegionBounds]:
        return dict(self._regions)

    def _update_bounds(self) -> None:
        self.bounds = RegionBounds.union_all(self._regions.values())
        self.dirty = True

    # -----------------------------
    # RENDERING
    # -----------------------------
    def render(self) -> NDArray[np.float64] | None:
        """Throttled render tick.

        Returns:
            The freshly computed grid, or None if skipped (no region, hidden,
            or clean and inside the throttle window)
        """
        if self.bounds is None or not self.config.visible:
            return None

        now = self._clock()
        if (
            not self.dirty
            and self.last_render_time is not None
            and now - self.last_render_time < self.throttle_s
        ):
            return None

        self.last_render_time = now
        self.dirty = False

        # rasterize() runs the strategy update once for this pass
        grid = self._rasterize(self.bounds, self.config.texture_size)
        self.last_grid = grid
        self.last_stats = coverage_stats(grid)
        logger.debug(
            "Heatmap stats: max=%.4f, nonzero=%d/%d (%.2f%%)",
            self.last_stats.max_value,
            self.last_stats.nonzero_cells,
            self.last_stats.total_cells,
            self.last_stats.coverage_pct,
        )

        if self.sink is not None:
            self.sink.write(grid)
        return grid

    def compute_heatmap(
        self, region: RegionBounds | None = None, resolution: int | None = None
    ) -> NDArray[np.float64] | None:
        """Unthrottled grid computation with no render side effects.

        Args:
            region: Region to rasterize; defaults to the aggregate bound region
            resolution: Cells per side; defaults to ``config.texture_size``

        Returns:
            The grid, or None when no region is given or attached

        Raises:
            InvalidResolutionError: If resolution < 2
        """
        target = region if region is not None else self.bounds
        if target is None:
            return None
        size = resolution if resolution is not None else self.config.texture_size
        return self._rasterize(target, size)

    def compute_surface_heatmap(
        self, surface_id: str, resolution: int | None = None
    ) -> NDArray[np.float64] | None:
        """Rasterize one attached surface with only the sensors placed on it.

        Sensors attached elsewhere (or nowhere) are not painted onto this
        surface; links and attenuators still apply to the ones that are.

        Returns:
            The grid (all zeros when no enabled sensor sits on the surface),
            or None if no region is attached under ``surface_id``

        Raises:
            InvalidResolutionError: If resolution < 2
        """
        bounds = self._regions.get(surface_id)
        if bounds is None:
            logger.debug("compute_surface_heatmap: unknown surface %s", surface_id)
            return None

        size = resolution if resolution is not None else self.config.texture_size
        snap = self.snapshot()
        on_surface = snap.enabled_on_surface(surface_id)
        if not on_surface:
            logger.debug("No enabled sensors on surface %s", surface_id)
        return self._rasterize(bounds, size, snap, on_surface)

    def _rasterize(
        self,
        bounds: RegionBounds,
        resolution: int,
        snapshot: NetworkSnapshot | None = None,
        sensors: list[Sensor] | None = None,
    ) -> NDArray[np.float64]:
        return rasterize(
            bounds,
            resolution,
            self._strategy,
            snapshot if snapshot is not None else self.snapshot(),
            combine_mode=self.config.combine_mode,
            zero_force_red=self.config.zero_force_red,
            v_flipped=self.config.uv_v_flipped,
            sensors=sensors,
        )

    # -----------------------------
    # HELPERS
    # -----------------------------
    def snapshot(self) -> NetworkSnapshot:
        return self.network.snapshot()

    def _build_sink(self) -> HeatmapSink | None:
        if self._sink_factory is None:
            return None
        return self._sink_factory(self.config.texture_size, self.config.color_stops)

    def _update_strategy_immediate(self) -> None:
        if not self.config.visible:
            return
        self._strategy.update(self.snapshot())
        self.dirty = True

    # -----------------------------
    # CLEANUP
    # -----------------------------
    def dispose(self) -> None:
        if self.sink is not None:
            self.sink.dispose()
            self.sink = None
        self._strategy.reset()
        self.network.clear()
        self._regions.clear()
        self.bounds = None
        self.last_grid = None
        self.last_stats = None
