"""
Philips Moonlight bedside lamp.

Maps the lamp's raw properties onto the power, dimmable, colorable,
color-temperature and scene capabilities, and translates their intents
into the lamp's RPC methods.
"""

import logging
from typing import Any, Optional

from ...config import Settings
from ...exceptions import InvalidArgumentError
from ..actions import CommandDispatcher, current_execution
from ..backends.base import Transport
from ..builtin import COLORABLE, COLOR_TEMPERATURE, DIMMABLE, POWER, SCENE
from ..builtin.color_temperature import update_color_temperature_range
from ..device import Device
from ..values import Color, RGBColor, TemperatureColor

logger = logging.getLogger("capsync.capabilities.devices.moonlight")

MIN_TEMP = 1700
MAX_TEMP = 6500

MIN_SCENE = 1
MAX_SCENE = 6
NIGHT_SCENE = 6

COLOR_MODES = {1: "rgb", 2: "colorTemperature", 3: "hsv"}

# Color mode -> state key holding that encoding
_MODE_KEYS = {"rgb": "colorRGB", "colorTemperature": "colorTemperature"}


def parse_power(raw: Any) -> bool:
    return raw == "on"


def parse_temperature(raw: Any) -> TemperatureColor:
    """Lamp reports temperature as 0..100 across MIN_TEMP..MAX_TEMP."""
    percent = int(raw)
    return TemperatureColor(MIN_TEMP + (percent / 100) * (MAX_TEMP - MIN_TEMP))


def parse_rgb(raw: Any) -> RGBColor:
    return RGBColor.from_int(int(raw))


def parse_color_mode(raw: Any) -> Optional[str]:
    return COLOR_MODES.get(int(raw))


def temperature_to_percent(kelvins: float) -> int:
    if kelvins <= MIN_TEMP:
        return 1
    if kelvins >= MAX_TEMP:
        return 100
    return round((kelvins - MIN_TEMP) / (MAX_TEMP - MIN_TEMP) * 100)


async def _change_power(device: Device, power: bool) -> None:
    await device.call("set_power", ["on" if power else "off"], refresh=["power"])


async def _change_brightness(device: Device, brightness: int) -> None:
    await device.call("set_bright", [brightness], refresh=["brightness"])


async def _change_color(device: Device, color: Color) -> None:
    if isinstance(color, TemperatureColor):
        await device.call(
            "set_cct", [temperature_to_percent(color.kelvins)],
            refresh=["colorTemperature", "colorMode"],
        )
    else:
        await device.call(
            "set_rgb", [color.red, color.green, color.blue],
            refresh=["colorRGB", "colorMode"],
        )


async def _change_scene(device: Device, number: int) -> None:
    if not MIN_SCENE <= number <= MAX_SCENE:
        execution = current_execution()
        raise InvalidArgumentError(
            execution.action if execution else "changeScene",
            f"scene must be between {MIN_SCENE} and {MAX_SCENE}, got {number}",
        )

    if number == NIGHT_SCENE:
        await device.call("go_night", [], refresh=["scene"])
    else:
        await device.call("apply_fixed_scene", [number], refresh=["scene"])


class MoonlightLamp(Device):
    """
    Philips Moonlight bedside lamp.

    Scenes 1-5 are the lamp's fixed scenes; scene 6 is its night light,
    which has its own RPC.
    """

    device_type = "philips-light-moonlight"
    CAPABILITIES = (
        POWER.override(changePower=_change_power),
        DIMMABLE.override(changeBrightness=_change_brightness),
        COLORABLE.override(changeColor=_change_color),
        COLOR_TEMPERATURE,
        SCENE.override(changeScene=_change_scene),
    )

    def __init__(
        self,
        device_id: str,
        transport: Transport,
        name: Optional[str] = None,
        settings: Optional[Settings] = None,
        dispatcher: Optional[CommandDispatcher] = None,
    ):
        super().__init__(device_id, transport, name=name, settings=settings, dispatcher=dispatcher)
        self._live_color: Optional[str] = None

        self.mapper.register("power", "power", parse_power, bool)
        self.mapper.register("bright", "brightness", int, int)
        self.mapper.register("cct", "colorTemperature", parse_temperature, TemperatureColor)
        self.mapper.register("rgb", "colorRGB", parse_rgb, RGBColor)
        self.mapper.register("color_mode", "colorMode", parse_color_mode, str)
        self.mapper.register("snm", "scene", int, int)

        update_color_temperature_range(self, MIN_TEMP, MAX_TEMP)

    @property
    def live_color_key(self) -> Optional[str]:
        """State key of the color encoding the lamp is currently using."""
        return self._live_color

    def properties_reported(self, reported: dict[str, Any]) -> None:
        if not reported.keys() & {"colorMode", "colorTemperature", "colorRGB"}:
            return

        previous = self._live_color
        mode = reported.get("colorMode")
        if mode in _MODE_KEYS:
            self._live_color = _MODE_KEYS[mode]
        elif "colorTemperature" in reported and "colorRGB" not in reported:
            self._live_color = "colorTemperature"
        elif "colorRGB" in reported and "colorTemperature" not in reported:
            self._live_color = "colorRGB"
        elif self.get_state("colorMode") in _MODE_KEYS:
            self._live_color = _MODE_KEYS[self.get_state("colorMode")]

        if self._live_color != previous:
            logger.debug("%s: live color encoding %s -> %s", self.id, previous, self._live_color)
        if self._live_color is None:
            return
        color = self.get_state(self._live_color)
        if color is not None:
            self.update_state("color", color)
        else:
            # live encoding not reported yet; drop the other encoding's value
            self.clear_state("color")
