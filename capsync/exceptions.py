"""
Custom exceptions for the capability system.

Provides explicit error types instead of silent failures.
"""

from typing import Any


class CapabilityError(Exception):
    """Base exception for all capability errors."""

    pass


class CapabilityConfigurationError(CapabilityError):
    """Raised when capabilities, devices or mapping rules are wired incorrectly."""

    pass


class UnknownActionError(CapabilityError):
    """Raised when no composed capability declares the requested action."""

    def __init__(self, action: str, device_id: str = ""):
        self.action = action
        self.device_id = device_id
        target = f" on {device_id}" if device_id else ""
        super().__init__(f"Unknown action: {action}{target}")


class InvalidArgumentError(CapabilityError):
    """Raised when an action argument fails type or domain validation."""

    def __init__(self, action: str, reason: str):
        self.action = action
        self.reason = reason
        super().__init__(f"Invalid argument for '{action}': {reason}")


class DeviceCommandFailedError(CapabilityError):
    """Raised when an RPC fails, times out or returns a non-ok response."""

    def __init__(self, method: str, cause: Any):
        self.method = method
        self.cause = cause
        super().__init__(f"Device command '{method}' failed: {cause}")


class ConversionDroppedError(CapabilityError):
    """Describes a raw update that could not be converted. Never raised to callers."""

    def __init__(self, field: str, raw: Any, reason: str):
        self.field = field
        self.raw = raw
        self.reason = reason
        super().__init__(f"Dropped update for '{field}' ({raw!r}): {reason}")
