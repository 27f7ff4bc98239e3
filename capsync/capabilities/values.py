"""
Typed property values shared by capabilities and device profiles.

All values are immutable so the state store can compare them structurally.
"""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Annotated, Any, Union

from pydantic import BeforeValidator


@dataclass(frozen=True)
class RGBColor:
    """Color expressed as 8-bit red, green and blue channels."""
    red: int
    green: int
    blue: int

    def __post_init__(self) -> None:
        for channel in (self.red, self.green, self.blue):
            if isinstance(channel, bool) or not isinstance(channel, int) or not 0 <= channel <= 255:
                raise ValueError(f"RGB channel out of range: {channel!r}")

    @classmethod
    def from_int(cls, packed: int) -> "RGBColor":
        """Decode a packed 0xRRGGBB integer."""
        return cls((packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF)

    def to_int(self) -> int:
        return (self.red << 16) | (self.green << 8) | self.blue

    def to_dict(self) -> dict[str, Any]:
        return {"red": self.red, "green": self.green, "blue": self.blue}


@dataclass(frozen=True)
class TemperatureColor:
    """Color expressed as a white temperature in Kelvin."""
    kelvins: float

    def __post_init__(self) -> None:
        if (
            isinstance(self.kelvins, bool)
            or not isinstance(self.kelvins, (int, float))
            or not math.isfinite(self.kelvins)
            or self.kelvins <= 0
        ):
            raise ValueError(f"Invalid color temperature: {self.kelvins!r}")

    def to_dict(self) -> dict[str, Any]:
        return {"kelvins": self.kelvins}


Color = Union[RGBColor, TemperatureColor]


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("expected an integer, got a boolean")
    return value


# Lax int (accepts "3") that still refuses True/False
Integer = Annotated[int, BeforeValidator(_reject_bool)]


@dataclass(frozen=True)
class ColorTemperatureRange:
    """Inclusive range of temperatures a device supports."""
    min_kelvins: float
    max_kelvins: float

    def __post_init__(self) -> None:
        if self.min_kelvins > self.max_kelvins:
            raise ValueError(
                f"Invalid temperature range: {self.min_kelvins}..{self.max_kelvins}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {"min": self.min_kelvins, "max": self.max_kelvins}


_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")
_RGB_RE = re.compile(r"^rgb\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*\)$", re.IGNORECASE)
_KELVIN_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*[kK]$")


def parse_color(value: Any) -> Color:
    """
    Parse a color from the forms an external controller may send.

    Accepts a Color instance, "#rrggbb", "rgb(r, g, b)", "4000K", or a
    mapping with red/green/blue or kelvins keys.

    Raises:
        ValueError: If the value is not a recognizable color
    """
    if isinstance(value, (RGBColor, TemperatureColor)):
        return value

    if isinstance(value, str):
        text = value.strip()
        match = _HEX_RE.match(text)
        if match:
            return RGBColor.from_int(int(match.group(1), 16))
        match = _RGB_RE.match(text)
        if match:
            return RGBColor(*(int(g) for g in match.groups()))
        match = _KELVIN_RE.match(text)
        if match:
            kelvins = float(match.group(1))
            return TemperatureColor(int(kelvins) if kelvins.is_integer() else kelvins)
        raise ValueError(f"Unrecognized color: {value!r}")

    if isinstance(value, Mapping):
        if "kelvins" in value:
            return TemperatureColor(value["kelvins"])
        if {"red", "green", "blue"} <= value.keys():
            return RGBColor(value["red"], value["green"], value["blue"])

    raise ValueError(f"Unrecognized color: {value!r}")


def to_jsonable(value: Any) -> Any:
    """Convert state values into JSON-friendly structures for API responses."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value
