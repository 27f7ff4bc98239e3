"""
Scene capability: numbered presets stored on the device.
"""

from typing import TYPE_CHECKING, Optional

from ..protocols import ActionSpec, ArgumentSpec, Capability, EventSpec
from ..values import Integer

if TYPE_CHECKING:
    from ..device import Device


async def _scene(device: "Device", number: Optional[int] = None) -> Optional[int]:
    if number is None:
        return await _get_scene(device)
    return await _set_scene(device, number)


async def _get_scene(device: "Device") -> Optional[int]:
    return device.get_state("scene")


async def _set_scene(device: "Device", number: int) -> Optional[int]:
    await device.hook("changeScene", number)
    return device.get_state("scene")


async def _change_scene(device: "Device", number: int) -> None:
    await device.call("apply_fixed_scene", [number], refresh=["scene"])


SCENE = Capability(
    identifier="device:scene",
    events=(
        EventSpec("sceneChanged", int, "Scene state has changed"),
    ),
    actions=(
        ActionSpec(
            "scene", "Get or set a scene", int, "The current scene",
            argument=ArgumentSpec("number", Integer, required=False, description="Scene number"),
        ),
        ActionSpec(
            "setScene", "Set a scene", int, "The current scene",
            argument=ArgumentSpec("number", Integer, description="Scene number"),
        ),
        ActionSpec("getScene", "Get the current scene", int, "The current scene"),
    ),
    handlers={
        "scene": _scene,
        "setScene": _set_scene,
        "getScene": _get_scene,
        "changeScene": _change_scene,
    },
    watches={"scene": "sceneChanged"},
)
