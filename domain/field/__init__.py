"""Coverage Field Bounded Context.

Responsible for turning a sensor network into a rasterized coverage grid:
- Value Objects: RegionBounds, FieldConfig, ColorStop, Thresholds
- Services: combine, InfluenceStrategy (signal / battery), diffuse_battery,
  rasterize
- Ports: HeatmapSink (rendering collaborator)
"""
