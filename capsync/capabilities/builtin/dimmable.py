"""
Dimmable capability: brightness as a percentage.
"""

from typing import TYPE_CHECKING, Annotated, Optional

from pydantic import Field

from ..protocols import ActionSpec, ArgumentSpec, Capability, EventSpec
from ..values import Integer

if TYPE_CHECKING:
    from ..device import Device

Percentage = Annotated[Integer, Field(ge=0, le=100)]


async def _brightness(device: "Device", brightness: Optional[int] = None) -> Optional[int]:
    if brightness is None:
        return await _get_brightness(device)
    return await _set_brightness(device, brightness)


async def _get_brightness(device: "Device") -> Optional[int]:
    return device.get_state("brightness")


async def _set_brightness(device: "Device", brightness: int) -> Optional[int]:
    await device.hook("changeBrightness", brightness)
    return device.get_state("brightness")


async def _increase_brightness(device: "Device", amount: int) -> Optional[int]:
    current = device.get_state("brightness", 0)
    return await _set_brightness(device, min(100, current + amount))


async def _decrease_brightness(device: "Device", amount: int) -> Optional[int]:
    current = device.get_state("brightness", 0)
    return await _set_brightness(device, max(0, current - amount))


async def _change_brightness(device: "Device", brightness: int) -> None:
    raise NotImplementedError(f"{device.device_type} does not implement changeBrightness")


DIMMABLE = Capability(
    identifier="device:dimmable",
    events=(
        EventSpec("brightnessChanged", int, "Brightness has changed"),
    ),
    actions=(
        ActionSpec(
            "brightness", "Get or set the brightness", int, "The brightness in percent",
            argument=ArgumentSpec("brightness", Percentage, required=False, description="Brightness to set"),
        ),
        ActionSpec(
            "setBrightness", "Set the brightness", int, "The brightness in percent",
            argument=ArgumentSpec("brightness", Percentage, description="Brightness to set"),
        ),
        ActionSpec(
            "increaseBrightness", "Increase the brightness", int, "The brightness in percent",
            argument=ArgumentSpec("amount", Percentage, description="Percentage points to add"),
        ),
        ActionSpec(
            "decreaseBrightness", "Decrease the brightness", int, "The brightness in percent",
            argument=ArgumentSpec("amount", Percentage, description="Percentage points to remove"),
        ),
    ),
    handlers={
        "brightness": _brightness,
        "setBrightness": _set_brightness,
        "increaseBrightness": _increase_brightness,
        "decreaseBrightness": _decrease_brightness,
        "changeBrightness": _change_brightness,
    },
    watches={"brightness": "brightnessChanged"},
)
