"""Application Layer.

Infrastructure and application services that orchestrate domain logic.
This layer owns the per-frame render loop state and hands rasterized grids
to rendering adapters.
"""
