"""
Protocol definitions for the capability system.

A capability declares the events and actions it adds to a device, plus the
handlers that implement those actions. Capabilities are static values: they
own no runtime state and are shared between every device that composes them.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional, Union, get_args, get_origin

from ..exceptions import CapabilityConfigurationError

if TYPE_CHECKING:
    from .device import Device

# Handler signature: async def handler(device, *args) -> Any
Handler = Callable[..., Awaitable[Any]]


def _type_name(tp: Any) -> str:
    # Annotated[int, Field(ge=1)] -> "int"
    if getattr(tp, "__metadata__", None) is not None:
        tp = tp.__origin__
    if get_origin(tp) is Union:
        return " | ".join(_type_name(arg) for arg in get_args(tp))
    return getattr(tp, "__name__", None) or str(tp)


@dataclass(frozen=True)
class EventSpec:
    """An event a capability may emit."""
    name: str
    payload_type: Any
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": _type_name(self.payload_type),
            "description": self.description,
        }


@dataclass(frozen=True)
class ArgumentSpec:
    """
    The single argument an action accepts.

    ``type`` is a Python type or an ``Annotated`` type with pydantic
    constraints, e.g. ``Annotated[int, Field(ge=0, le=100)]``.
    """
    name: str
    type: Any
    required: bool = True
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": _type_name(self.type),
            "required": self.required,
            "description": self.description,
        }


@dataclass(frozen=True)
class ActionSpec:
    """An action a capability exposes to controllers."""
    name: str
    description: str
    returns: Any
    returns_description: str = ""
    argument: Optional[ArgumentSpec] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "argument": self.argument.to_dict() if self.argument else None,
            "returns": {
                "type": _type_name(self.returns),
                "description": self.returns_description,
            },
        }


@dataclass(frozen=True, eq=False)
class Capability:
    """
    Declares the event/action surface a capability contributes.

    Attributes:
        identifier: Globally unique dotted name, e.g. "device:scene"
        events: Events the capability may emit
        actions: Actions callable by controllers
        handlers: Action handlers plus internal hooks (e.g. "changeScene")
        watches: State key -> event emitted when that key changes
    """
    identifier: str
    events: tuple[EventSpec, ...] = ()
    actions: tuple[ActionSpec, ...] = ()
    handlers: Mapping[str, Handler] = field(default_factory=dict)
    watches: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        event_names = [e.name for e in self.events]
        action_names = [a.name for a in self.actions]
        for names, kind in ((event_names, "event"), (action_names, "action")):
            duplicates = {n for n in names if names.count(n) > 1}
            if duplicates:
                raise CapabilityConfigurationError(
                    f"{self.identifier}: duplicate {kind}(s) {sorted(duplicates)}"
                )

        missing = [name for name in action_names if name not in self.handlers]
        if missing:
            raise CapabilityConfigurationError(
                f"{self.identifier}: no handler for action(s) {missing}"
            )

        unknown_events = [e for e in self.watches.values() if e not in event_names]
        if unknown_events:
            raise CapabilityConfigurationError(
                f"{self.identifier}: watches emit undeclared event(s) {unknown_events}"
            )

        object.__setattr__(self, "handlers", MappingProxyType(dict(self.handlers)))
        object.__setattr__(self, "watches", MappingProxyType(dict(self.watches)))

    @property
    def event_names(self) -> list[str]:
        return [e.name for e in self.events]

    @property
    def action_names(self) -> list[str]:
        return [a.name for a in self.actions]

    def action(self, name: str) -> Optional[ActionSpec]:
        for spec in self.actions:
            if spec.name == name:
                return spec
        return None

    def handler(self, name: str) -> Optional[Handler]:
        return self.handlers.get(name)

    def override(self, **handlers: Handler) -> "Capability":
        """
        Return a copy with some handlers replaced.

        Only existing handler names may be overridden, so the declared
        events and actions stay the same.
        """
        unknown = [name for name in handlers if name not in self.handlers]
        if unknown:
            raise CapabilityConfigurationError(
                f"{self.identifier}: cannot override unknown handler(s) {unknown}"
            )
        merged = dict(self.handlers)
        merged.update(handlers)
        return replace(self, handlers=merged)

    def property_updated(self, device: "Device", key: str, value: Any) -> None:
        """Emit this capability's event if it watches the changed key."""
        event = self.watches.get(key)
        if event is not None:
            device.emit_event(event, value)

    def describe(self) -> dict[str, Any]:
        """Serialize the capability surface for API responses."""
        return {
            "capability": self.identifier,
            "events": [e.to_dict() for e in self.events],
            "actions": [a.to_dict() for a in self.actions],
        }


@dataclass
class ActionResult:
    """Result of dispatching an action request to a device."""
    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": self.data,
            "error": self.error,
        }
