"""
Per-device state store.

Holds the last known value of every semantic property of one device and
reports whether an update actually changed anything.
"""

import logging
from typing import Any, Callable, Iterator

logger = logging.getLogger("capsync.capabilities.state_store")

_MISSING = object()


class StateStore:
    """
    Mapping of property key to the current value for one device.

    Features:
    - Structural change detection (``==``), not identity
    - Absent keys are distinct from falsy values
    - Change listeners for reactive updates
    """

    def __init__(self, owner: str = ""):
        self._owner = owner
        self._values: dict[str, Any] = {}
        self._listeners: list[Callable[[str, Any], None]] = []

    def get(self, key: str, default: Any = None) -> Any:
        """Get the current value for key, or default if never produced."""
        return self._values.get(key, default)

    def update(self, key: str, value: Any) -> bool:
        """
        Store value under key if it differs from the current one.

        Returns:
            True if the stored value changed
        """
        current = self._values.get(key, _MISSING)
        if current is not _MISSING and current == value:
            return False

        self._values[key] = value
        logger.debug("%s: %s -> %r", self._owner or "store", key, value)

        self._notify(key, value)
        return True

    def discard(self, key: str) -> bool:
        """
        Forget the value under key; listeners receive None.

        Returns:
            True if a value was removed
        """
        if key not in self._values:
            return False

        del self._values[key]
        logger.debug("%s: %s cleared", self._owner or "store", key)
        self._notify(key, None)
        return True

    def _notify(self, key: str, value: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(key, value)
            except Exception as e:
                logger.warning("State listener error for %s: %s", key, e)

    def add_listener(self, callback: Callable[[str, Any], None]) -> None:
        """Add listener for state changes."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[str, Any], None]) -> None:
        """Remove state change listener."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def snapshot(self) -> dict[str, Any]:
        """Copy of all current values."""
        return dict(self._values)

    def keys(self) -> list[str]:
        return list(self._values.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values))

    @property
    def size(self) -> int:
        """Number of stored properties."""
        return len(self._values)
