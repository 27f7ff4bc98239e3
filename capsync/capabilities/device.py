"""
Device composition.

A device is an explicit container: one state store, one property mapper,
the base state capability plus an ordered list of further capabilities,
and the transport used to reach the hardware. Action and event names of
all capabilities are merged into lookup tables when the device is built.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Callable, Optional

from ..config import Settings, get_settings
from ..exceptions import CapabilityConfigurationError, DeviceCommandFailedError
from .actions import CommandDispatcher, CommandExecution, CommandPhase, current_execution
from .backends.base import Transport, check_ok, response_result
from .builtin.state import STATE
from .mapper import PropertyMapper
from .protocols import ActionSpec, Capability, EventSpec, Handler
from .state_store import StateStore
from .values import to_jsonable

logger = logging.getLogger("capsync.capabilities.device")

EventCallback = Callable[[str, Any], None]


def compose_capabilities(
    capabilities: Sequence[Capability],
) -> tuple[dict[str, Capability], dict[str, EventSpec], dict[str, Handler]]:
    """
    Merge the surfaces of several capabilities.

    Returns:
        (action name -> owning capability, event name -> spec,
        handler name -> handler)

    Raises:
        CapabilityConfigurationError: On any duplicate identifier, or any
            action/event/hook name declared by more than one capability
    """
    actions: dict[str, Capability] = {}
    events: dict[str, EventSpec] = {}
    handlers: dict[str, Handler] = {}
    owners: dict[str, str] = {}
    seen: set[str] = set()

    for capability in capabilities:
        if capability.identifier in seen:
            raise CapabilityConfigurationError(f"Capability composed twice: {capability.identifier}")
        seen.add(capability.identifier)

        names = set(capability.event_names) | set(capability.handlers)
        for name in sorted(names):
            if name in owners and owners[name] != capability.identifier:
                raise CapabilityConfigurationError(
                    f"Name collision: '{name}' declared by both {owners[name]} "
                    f"and {capability.identifier}"
                )
            owners[name] = capability.identifier

        for spec in capability.actions:
            actions[spec.name] = capability
        for event in capability.events:
            events[event.name] = event
        handlers.update(capability.handlers)

    return actions, events, handlers


class Device:
    """
    A networked device composed from capabilities.

    Subclasses set ``device_type`` and ``CAPABILITIES`` and register their
    raw field mappings on ``self.mapper`` in ``__init__``.
    """

    device_type = "generic"
    CAPABILITIES: tuple[Capability, ...] = ()

    def __init__(
        self,
        device_id: str,
        transport: Transport,
        name: Optional[str] = None,
        settings: Optional[Settings] = None,
        dispatcher: Optional[CommandDispatcher] = None,
    ):
        self._id = device_id
        self._name = name or device_id
        self.transport = transport
        self.settings = settings or get_settings()
        self.mapper = PropertyMapper(owner=device_id)

        self._capabilities: tuple[Capability, ...] = (STATE, *self.CAPABILITIES)
        self._actions, self._events, self._handlers = compose_capabilities(self._capabilities)

        self._store = StateStore(owner=device_id)
        self._store.add_listener(self._route_change)
        self._subscribers: dict[str, list[EventCallback]] = {}
        self._command_lock = asyncio.Lock()
        self._history: deque[CommandExecution] = deque(maxlen=self.settings.command_history)
        self._dispatcher = dispatcher or CommandDispatcher()

        logger.debug(
            "Composed %s (%s) with %s",
            self._id, self.device_type, [c.identifier for c in self._capabilities],
        )

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def capabilities(self) -> tuple[Capability, ...]:
        return self._capabilities

    def has_capability(self, identifier: str) -> bool:
        return any(c.identifier == identifier for c in self._capabilities)

    def actions(self) -> list[str]:
        return list(self._actions)

    def events(self) -> list[str]:
        return list(self._events)

    def action_spec(self, action: str) -> Optional[ActionSpec]:
        capability = self._actions.get(action)
        return capability.action(action) if capability else None

    def handler(self, name: str) -> Handler:
        """Look up an action handler or internal hook by name."""
        try:
            return self._handlers[name]
        except KeyError:
            raise CapabilityConfigurationError(f"{self._id}: no handler named '{name}'") from None

    async def hook(self, name: str, *args: Any) -> Any:
        """Run an internal hook such as ``changeScene``."""
        return await self.handler(name)(self, *args)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def get_state(self, key: str, default: Any = None) -> Any:
        return self._store.get(key, default)

    def update_state(self, key: str, value: Any) -> bool:
        """Store a value; capabilities are notified only when it changed."""
        return self._store.update(key, value)

    def clear_state(self, key: str) -> bool:
        return self._store.discard(key)

    def state(self) -> dict[str, Any]:
        return self._store.snapshot()

    @property
    def store(self) -> StateStore:
        return self._store

    def _route_change(self, key: str, value: Any) -> None:
        self.emit_event("stateChanged", {"key": key, "value": value})
        for capability in self._capabilities:
            capability.property_updated(self, key, value)

    def handle_report(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """
        Apply a batch of raw fields reported by the device.

        Returns:
            Every successfully mapped key and value, changed or not
        """
        reported: dict[str, Any] = {}
        for key, value in self.mapper.apply_all(payload):
            self.update_state(key, value)
            reported[key] = value
        if reported:
            self.properties_reported(reported)
        return reported

    def properties_reported(self, reported: dict[str, Any]) -> None:
        """Hook called after each report with all mapped values."""

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: str, callback: EventCallback) -> None:
        """Subscribe to an event; "*" receives every event."""
        if event != "*" and event not in self._events:
            raise CapabilityConfigurationError(f"{self._id}: unknown event '{event}'")
        self._subscribers.setdefault(event, []).append(callback)

    def off(self, event: str, callback: EventCallback) -> None:
        callbacks = self._subscribers.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def emit_event(self, event: str, payload: Any) -> None:
        if event not in self._events:
            raise CapabilityConfigurationError(
                f"{self._id}: event '{event}' is not declared by any capability"
            )
        logger.debug("%s emitted %s: %r", self._id, event, payload)
        callbacks = self._subscribers.get(event, []) + self._subscribers.get("*", [])
        for callback in callbacks:
            try:
                callback(event, payload)
            except Exception as e:
                logger.warning("Event subscriber error for %s.%s: %s", self._id, event, e)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def invoke(self, action: str, *args: Any) -> Any:
        """Run a public action, e.g. ``await lamp.invoke("setScene", 3)``."""
        return await self._dispatcher.invoke(self, action, *args)

    async def call(
        self,
        method: str,
        params: Optional[list[Any]] = None,
        refresh: Iterable[str] = (),
    ) -> Any:
        """
        Send a write RPC, then read back the keys it made stale.

        The refresh is applied to the state store before this returns, so
        callers observe the device's state rather than the requested one.

        Raises:
            DeviceCommandFailedError: Transport error, timeout, non-ok
                response, or failed refresh
        """
        execution = current_execution()
        owned = execution is None
        if owned:
            execution = CommandExecution(device_id=self._id, action=method, arguments=tuple(params or ()))

        try:
            async with self._command_lock:
                execution.advance(CommandPhase.SENDING)
                execution.methods.append(method)
                response = await self._send(method, list(params or ()))
                check_ok(method, response)

                stale = list(refresh)
                if stale:
                    execution.advance(CommandPhase.AWAITING_REFRESH)
                    await self._refresh(stale, execution)
        except BaseException as e:
            if owned:
                execution.fail(e)
                self.record_execution(execution)
            raise

        if owned:
            execution.advance(CommandPhase.DONE)
            self.record_execution(execution)
        return response.get("result")

    async def refresh(self, keys: Optional[Iterable[str]] = None) -> dict[str, Any]:
        """
        Read properties back from the device and apply them.

        Args:
            keys: State keys to read; all mapped keys if omitted
        """
        keys = list(keys) if keys is not None else self.mapper.keys
        execution = current_execution()
        async with self._command_lock:
            if execution is not None and not execution.finished:
                execution.advance(CommandPhase.AWAITING_REFRESH)
            return await self._refresh(keys, execution)

    async def _refresh(
        self,
        keys: list[str],
        execution: Optional[CommandExecution] = None,
    ) -> dict[str, Any]:
        fields = self.mapper.fields_for(keys)
        if not fields:
            logger.debug("%s: nothing to refresh for %s", self._id, keys)
            return {}

        method = self.settings.refresh_method
        if execution is not None:
            execution.methods.append(method)
        response = await self._send(method, fields)
        values = response_result(method, response)
        if not isinstance(values, list) or len(values) != len(fields):
            raise DeviceCommandFailedError(
                method, f"expected {len(fields)} values for {fields}, got {values!r}"
            )
        return self.handle_report(dict(zip(fields, values)))

    async def _send(self, method: str, params: list[Any]) -> Any:
        timeout = self.settings.command_timeout
        try:
            if timeout > 0:
                return await asyncio.wait_for(self.transport.send(method, params), timeout)
            return await self.transport.send(method, params)
        except asyncio.TimeoutError as e:
            raise DeviceCommandFailedError(method, "timeout") from e
        except DeviceCommandFailedError:
            raise
        except Exception as e:
            raise DeviceCommandFailedError(method, e) from e

    # ------------------------------------------------------------------
    # History / serialization
    # ------------------------------------------------------------------

    def record_execution(self, execution: CommandExecution) -> None:
        self._history.append(execution)

    @property
    def history(self) -> list[CommandExecution]:
        return list(self._history)

    def describe(self) -> dict[str, Any]:
        """Serialize device metadata for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.device_type,
            "capabilities": [c.describe() for c in self._capabilities],
            "state": to_jsonable(self.state()),
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._id}>"
