"""
Action dispatch framework for capabilities.

Handles direct action invocation on a device and request-based dispatch
from external controllers. Every invocation is tracked as a small
sequence of phases: validate, send, await refresh, done (or failed).
"""

import logging
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..exceptions import (
    DeviceCommandFailedError,
    InvalidArgumentError,
    UnknownActionError,
)
from .protocols import ActionResult, ActionSpec
from .values import to_jsonable

if TYPE_CHECKING:
    from .device import Device
    from .registry import DeviceRegistry

logger = logging.getLogger("capsync.capabilities.actions")


class CommandPhase(str, Enum):
    """Where a command is in its write-then-refresh sequence."""
    VALIDATING = "validating"
    SENDING = "sending"
    AWAITING_REFRESH = "awaiting_refresh"
    DONE = "done"
    FAILED = "failed"


@dataclass
class CommandExecution:
    """Tracks one action invocation through its phases."""
    device_id: str
    action: str
    arguments: tuple[Any, ...] = ()
    phase: CommandPhase = CommandPhase.VALIDATING
    methods: list[str] = field(default_factory=list)
    error: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def finished(self) -> bool:
        return self.phase in (CommandPhase.DONE, CommandPhase.FAILED)

    def advance(self, phase: CommandPhase) -> None:
        if self.finished:
            raise RuntimeError(f"Execution of {self.action} already {self.phase.value}")
        logger.debug("%s.%s: %s -> %s", self.device_id, self.action, self.phase.value, phase.value)
        self.phase = phase
        if self.finished:
            self.finished_at = datetime.now(timezone.utc)

    def fail(self, error: BaseException) -> None:
        if not self.finished:
            self.error = str(error)
            self.advance(CommandPhase.FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "action": self.action,
            "arguments": [to_jsonable(a) for a in self.arguments],
            "phase": self.phase.value,
            "methods": list(self.methods),
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


_current_execution: ContextVar[Optional[CommandExecution]] = ContextVar(
    "capsync_current_execution", default=None
)


def current_execution() -> Optional[CommandExecution]:
    """The execution being run in this task, if any."""
    return _current_execution.get()


class ActionRequest(BaseModel):
    """Request to execute an action on a device."""
    device_id: str
    action: str
    args: list[Any] = []


def validate_arguments(spec: ActionSpec, args: tuple[Any, ...]) -> tuple[Any, ...]:
    """
    Check arity, type and constraints of an action's arguments.

    An explicit None for an optional argument counts as absent.

    Raises:
        InvalidArgumentError: If the arguments do not fit the action
    """
    argument = spec.argument
    if args and args[-1] is None and argument is not None and not argument.required:
        args = args[:-1]

    allowed = 1 if argument is not None else 0
    if len(args) > allowed:
        raise InvalidArgumentError(
            spec.name, f"expected at most {allowed} argument(s), got {len(args)}"
        )

    if not args:
        if argument is not None and argument.required:
            raise InvalidArgumentError(spec.name, f"missing required argument '{argument.name}'")
        return ()

    try:
        value = TypeAdapter(argument.type).validate_python(args[0])
    except ValidationError as e:
        reasons = "; ".join(err["msg"] for err in e.errors())
        raise InvalidArgumentError(spec.name, f"{argument.name}: {reasons}") from e
    return (value,)


class CommandDispatcher:
    """
    Dispatches actions to the capability that declares them.

    Handles both direct invocation on a device and request-based
    dispatch from controllers through a device registry.
    """

    def __init__(self, registry: Optional["DeviceRegistry"] = None):
        self.registry = registry

    async def invoke(self, device: "Device", action: str, *args: Any) -> Any:
        """
        Validate and run an action on a device.

        Returns:
            The handler's result, read back from the device state

        Raises:
            UnknownActionError: No composed capability declares the action
            InvalidArgumentError: Arguments failed validation (no RPC sent)
            DeviceCommandFailedError: The RPC or its refresh failed
        """
        spec = device.action_spec(action)
        if spec is None:
            logger.warning("Action '%s' not supported by %s", action, device.id)
            raise UnknownActionError(action, device.id)

        execution = CommandExecution(device_id=device.id, action=action, arguments=args)
        token = _current_execution.set(execution)
        try:
            values = validate_arguments(spec, args)
            handler = device.handler(action)
            result = await handler(device, *values)
            execution.advance(CommandPhase.DONE)
        except BaseException as e:
            execution.fail(e)
            raise
        finally:
            _current_execution.reset(token)
            device.record_execution(execution)

        if execution.methods:
            logger.info("%s.%s%s -> %r", device.id, action, tuple(values), result)
        return result

    async def dispatch(self, request: ActionRequest) -> ActionResult:
        """
        Execute an action request from a controller.

        Args:
            request: The action request with device_id, action, and args

        Returns:
            ActionResult describing the outcome
        """
        device = self.registry.get(request.device_id) if self.registry else None
        if device is None:
            logger.warning("Device not found: %s", request.device_id)
            return ActionResult(
                success=False,
                message=f"Device not found: {request.device_id}",
                error="DEVICE_NOT_FOUND",
            )

        logger.info("Dispatching %s.%s(%s)", request.device_id, request.action, request.args)

        try:
            result = await self.invoke(device, request.action, *request.args)
        except UnknownActionError as e:
            return ActionResult(success=False, message=str(e), error="UNKNOWN_ACTION")
        except InvalidArgumentError as e:
            return ActionResult(success=False, message=str(e), error="INVALID_ARGUMENT")
        except DeviceCommandFailedError as e:
            logger.warning("%s", e)
            return ActionResult(success=False, message=str(e), error="DEVICE_COMMAND_FAILED")
        except Exception as e:
            logger.exception("Error executing action %s on %s", request.action, request.device_id)
            return ActionResult(
                success=False,
                message=f"Error executing action: {e}",
                error="EXECUTION_ERROR",
            )

        return ActionResult(
            success=True,
            message=f"{device.name}: {request.action} done",
            data={"result": to_jsonable(result)},
        )
