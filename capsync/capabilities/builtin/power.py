"""
Power capability: switch a device on and off.
"""

from typing import TYPE_CHECKING, Optional

from ..protocols import ActionSpec, ArgumentSpec, Capability, EventSpec

if TYPE_CHECKING:
    from ..device import Device


async def _power(device: "Device", power: Optional[bool] = None) -> Optional[bool]:
    if power is None:
        return await _get_power(device)
    return await _set_power(device, power)


async def _get_power(device: "Device") -> Optional[bool]:
    return device.get_state("power")


async def _set_power(device: "Device", power: bool) -> Optional[bool]:
    await device.hook("changePower", power)
    return device.get_state("power")


async def _turn_on(device: "Device") -> Optional[bool]:
    return await _set_power(device, True)


async def _turn_off(device: "Device") -> Optional[bool]:
    return await _set_power(device, False)


async def _toggle_power(device: "Device") -> Optional[bool]:
    return await _set_power(device, not device.get_state("power", False))


async def _change_power(device: "Device", power: bool) -> None:
    raise NotImplementedError(f"{device.device_type} does not implement changePower")


POWER = Capability(
    identifier="device:power",
    events=(
        EventSpec("powerChanged", bool, "Power state has changed"),
    ),
    actions=(
        ActionSpec(
            "power", "Get or set the power state", bool, "If the device is on",
            argument=ArgumentSpec("power", bool, required=False, description="Power state to set"),
        ),
        ActionSpec(
            "setPower", "Set the power state", bool, "If the device is on",
            argument=ArgumentSpec("power", bool, description="Power state to set"),
        ),
        ActionSpec("getPower", "Get the power state", bool, "If the device is on"),
        ActionSpec("turnOn", "Turn the device on", bool, "If the device is on"),
        ActionSpec("turnOff", "Turn the device off", bool, "If the device is on"),
        ActionSpec("togglePower", "Toggle the power state", bool, "If the device is on"),
    ),
    handlers={
        "power": _power,
        "setPower": _set_power,
        "getPower": _get_power,
        "turnOn": _turn_on,
        "turnOff": _turn_off,
        "togglePower": _toggle_power,
        "changePower": _change_power,
    },
    watches={"power": "powerChanged"},
)
