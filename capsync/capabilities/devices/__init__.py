"""
Device profiles for the capability system.

Import profiles here to make them available.
"""

from .moonlight import MoonlightLamp

__all__ = ["MoonlightLamp"]
