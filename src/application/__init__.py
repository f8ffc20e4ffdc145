"""Application services.

Controller exported for simplified imports.
"""

from .field_controller import ConfigChange, FieldController

__all__ = ["ConfigChange", "FieldController"]
