"""Infrastructure Layer.

Adapters implementing domain ports (rendering sinks).
"""
