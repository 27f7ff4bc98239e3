"""
Color temperature capability: publishes the supported temperature range.
"""

from typing import TYPE_CHECKING, Optional

from ..protocols import ActionSpec, Capability, EventSpec
from ..values import ColorTemperatureRange

if TYPE_CHECKING:
    from ..device import Device


def update_color_temperature_range(device: "Device", min_kelvins: float, max_kelvins: float) -> bool:
    """Store the range a device supports; returns True if it changed."""
    return device.update_state(
        "colorTemperatureRange", ColorTemperatureRange(min_kelvins, max_kelvins)
    )


async def _color_temperature_range(device: "Device") -> Optional[ColorTemperatureRange]:
    return device.get_state("colorTemperatureRange")


COLOR_TEMPERATURE = Capability(
    identifier="device:color-temperature",
    events=(
        EventSpec(
            "colorTemperatureRangeChanged", ColorTemperatureRange,
            "The supported color temperature range has changed",
        ),
    ),
    actions=(
        ActionSpec(
            "colorTemperatureRange", "Get the supported color temperature range",
            ColorTemperatureRange, "Minimum and maximum temperature in Kelvin",
        ),
    ),
    handlers={"colorTemperatureRange": _color_temperature_range},
    watches={"colorTemperatureRange": "colorTemperatureRangeChanged"},
)
