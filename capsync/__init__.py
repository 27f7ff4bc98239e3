"""
capsync: capability composition and state synchronization for networked devices.
"""

from .config import Settings, configure_logging, get_settings
from .exceptions import (
    CapabilityConfigurationError,
    CapabilityError,
    ConversionDroppedError,
    DeviceCommandFailedError,
    InvalidArgumentError,
    UnknownActionError,
)

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "configure_logging",
    "get_settings",
    "CapabilityError",
    "CapabilityConfigurationError",
    "UnknownActionError",
    "InvalidArgumentError",
    "DeviceCommandFailedError",
    "ConversionDroppedError",
]
