"""Infrastructure adapters for the rendering collaborator.

This module provides the infrastructure layer implementation of the
HeatmapSink port: a colour-map texture producing RGBA pixels.

Adapter exported for simplified imports.
"""

from .colormap_adapter import ColorMapTexture, build_texture, hex_to_rgb

__all__ = ["ColorMapTexture", "build_texture", "hex_to_rgb"]
