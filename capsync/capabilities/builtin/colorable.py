"""
Colorable capability: the color a light currently shows.

Device profiles decide how a color is encoded on the wire and which
reported encoding is authoritative; this capability only sees the
resulting ``color`` state key.
"""

from typing import TYPE_CHECKING, Annotated, Optional

from pydantic import PlainValidator

from ..protocols import ActionSpec, ArgumentSpec, Capability, EventSpec
from ..values import Color, parse_color

if TYPE_CHECKING:
    from ..device import Device

ColorArgument = Annotated[Color, PlainValidator(parse_color)]


async def _color(device: "Device", color: Optional[Color] = None) -> Optional[Color]:
    if color is None:
        return device.get_state("color")
    return await _set_color(device, color)


async def _set_color(device: "Device", color: Color) -> Optional[Color]:
    await device.hook("changeColor", color)
    return device.get_state("color")


async def _change_color(device: "Device", color: Color) -> None:
    raise NotImplementedError(f"{device.device_type} does not implement changeColor")


COLORABLE = Capability(
    identifier="device:colorable",
    events=(
        EventSpec("colorChanged", Color, "The color has changed"),
    ),
    actions=(
        ActionSpec(
            "color", "Get or set the color", Color, "The current color",
            argument=ArgumentSpec("color", ColorArgument, required=False, description="Color to set"),
        ),
        ActionSpec(
            "setColor", "Set the color", Color, "The current color",
            argument=ArgumentSpec("color", ColorArgument, description="Color to set"),
        ),
    ),
    handlers={
        "color": _color,
        "setColor": _set_color,
        "changeColor": _change_color,
    },
    watches={"color": "colorChanged"},
)
