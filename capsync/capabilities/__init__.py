"""
Capability system for composing networked devices.

This module provides:
- Capability descriptors and the built-in capabilities
- Per-device state store and raw property mapping
- Device composition and action dispatch with response-driven refresh
"""

from .actions import (
    ActionRequest,
    CommandDispatcher,
    CommandExecution,
    CommandPhase,
    current_execution,
)
from .backends import MockTransport, Transport, check_ok
from .builtin import COLORABLE, COLOR_TEMPERATURE, DIMMABLE, POWER, SCENE, STATE
from .device import Device, compose_capabilities
from .devices import MoonlightLamp
from .mapper import MappingRule, PropertyMapper
from .protocols import ActionResult, ActionSpec, ArgumentSpec, Capability, EventSpec
from .registry import DeviceRegistry
from .state_store import StateStore
from .values import Color, ColorTemperatureRange, Integer, RGBColor, TemperatureColor, parse_color

__all__ = [
    # Protocols
    "Capability",
    "EventSpec",
    "ActionSpec",
    "ArgumentSpec",
    "ActionResult",
    # Values
    "Color",
    "Integer",
    "RGBColor",
    "TemperatureColor",
    "ColorTemperatureRange",
    "parse_color",
    # State
    "StateStore",
    "PropertyMapper",
    "MappingRule",
    # Built-in capabilities
    "STATE",
    "POWER",
    "DIMMABLE",
    "COLORABLE",
    "COLOR_TEMPERATURE",
    "SCENE",
    # Devices
    "Device",
    "compose_capabilities",
    "MoonlightLamp",
    "DeviceRegistry",
    # Actions
    "ActionRequest",
    "CommandDispatcher",
    "CommandExecution",
    "CommandPhase",
    "current_execution",
    # Backends
    "Transport",
    "MockTransport",
    "check_ok",
]
