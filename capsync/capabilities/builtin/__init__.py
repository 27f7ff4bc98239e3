"""
Built-in capabilities.

Import capabilities here to make them available.
"""

from .colorable import COLORABLE
from .color_temperature import COLOR_TEMPERATURE, update_color_temperature_range
from .dimmable import DIMMABLE
from .power import POWER
from .scene import SCENE
from .state import STATE

__all__ = [
    "STATE",
    "POWER",
    "DIMMABLE",
    "COLORABLE",
    "COLOR_TEMPERATURE",
    "SCENE",
    "update_color_temperature_range",
]
