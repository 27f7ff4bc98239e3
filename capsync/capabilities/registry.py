"""
Registry for managing devices.

Provides registration, lookup, and lifecycle management. Registries are
plain objects passed to whatever needs them; there is no global instance.
"""

import logging
from typing import Callable

from .device import Device

logger = logging.getLogger("capsync.capabilities.registry")


class DeviceRegistry:
    """
    Registry of composed devices.

    Supports:
    - Direct instance registration
    - Factory-based lazy instantiation
    - Lookup by ID or capability
    """

    def __init__(self) -> None:
        self._devices: dict[str, Device] = {}
        self._factories: dict[str, Callable[[], Device]] = {}

    def register(self, device: Device) -> None:
        """Register a device instance."""
        if device.id in self._devices:
            logger.warning("Overwriting device: %s", device.id)
        self._devices[device.id] = device
        logger.info("Registered device: %s (%s)", device.id, device.device_type)

    def register_factory(self, device_id: str, factory: Callable[[], Device]) -> None:
        """Register a factory for lazy instantiation."""
        self._factories[device_id] = factory
        logger.info("Registered device factory: %s", device_id)

    def get(self, device_id: str) -> Device | None:
        """
        Get a device by ID.

        If the device hasn't been instantiated but has a factory,
        the factory will be called to create it.
        """
        if device_id not in self._devices and device_id in self._factories:
            logger.info("Instantiating device from factory: %s", device_id)
            device = self._factories[device_id]()
            if device.id != device_id:
                raise ValueError(f"Factory for {device_id} built device {device.id}")
            self._devices[device_id] = device
        return self._devices.get(device_id)

    def list_all(self) -> list[Device]:
        """Return all instantiated devices."""
        return list(self._devices.values())

    def list_by_capability(self, identifier: str) -> list[Device]:
        """Return devices composing a specific capability."""
        return [d for d in self._devices.values() if d.has_capability(identifier)]

    def list_ids(self) -> list[str]:
        """Return all registered device IDs, including lazy ones."""
        return list(dict.fromkeys([*self._devices, *self._factories]))

    def unregister(self, device_id: str) -> bool:
        """Remove a device from the registry."""
        removed = self._factories.pop(device_id, None) is not None
        if device_id in self._devices:
            del self._devices[device_id]
            removed = True
        if removed:
            logger.info("Unregistered device: %s", device_id)
        return removed

    def clear(self) -> None:
        """Remove all registered devices."""
        self._devices.clear()
        self._factories.clear()
        logger.info("Cleared all devices")
