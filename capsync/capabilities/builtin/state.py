"""
Base state capability, composed into every device.
"""

from typing import TYPE_CHECKING, Any

from ..protocols import ActionSpec, Capability, EventSpec

if TYPE_CHECKING:
    from ..device import Device


async def _state(device: "Device") -> dict[str, Any]:
    return device.state()


async def _refresh(device: "Device") -> dict[str, Any]:
    await device.refresh()
    return device.state()


STATE = Capability(
    identifier="device:state",
    events=(
        EventSpec("stateChanged", dict, "A state key has a new value"),
    ),
    actions=(
        ActionSpec("state", "Get the current state", dict, "Mapping of state key to value"),
        ActionSpec("refresh", "Read every mapped property back from the device", dict, "The refreshed state"),
    ),
    handlers={
        "state": _state,
        "refresh": _refresh,
    },
)
