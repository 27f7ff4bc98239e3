"""
Declarative mapping of raw device fields to semantic state keys.

Each device profile registers one rule per raw field it understands. Unknown
fields are ignored and failed conversions are dropped, so a bad report can
never leave the state store half-updated or holding a value of the wrong type.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..exceptions import CapabilityConfigurationError, ConversionDroppedError

logger = logging.getLogger("capsync.capabilities.mapper")


@dataclass(frozen=True)
class MappingRule:
    """Raw field -> state key, with a pure conversion function."""
    field: str
    key: str
    convert: Callable[[Any], Any]
    value_type: type = object


class PropertyMapper:
    """Rule table translating raw device-reported fields into state updates."""

    def __init__(self, owner: str = ""):
        self._owner = owner
        self._rules: dict[str, MappingRule] = {}

    def register(
        self,
        field: str,
        key: str,
        convert: Callable[[Any], Any],
        value_type: type = object,
    ) -> MappingRule:
        """
        Register a rule for a raw field.

        Raises:
            CapabilityConfigurationError: If the field already has a rule,
                the converter is not callable or value_type is not a type
        """
        if field in self._rules:
            raise CapabilityConfigurationError(
                f"{self._owner}: raw field '{field}' already mapped to '{self._rules[field].key}'"
            )
        if not callable(convert):
            raise CapabilityConfigurationError(f"{self._owner}: converter for '{field}' is not callable")
        if not isinstance(value_type, type):
            raise CapabilityConfigurationError(
                f"{self._owner}: value_type for '{field}' must be a type, got {value_type!r}"
            )

        rule = MappingRule(field=field, key=key, convert=convert, value_type=value_type)
        self._rules[field] = rule
        return rule

    def rule(self, field: str) -> Optional[MappingRule]:
        return self._rules.get(field)

    @property
    def rules(self) -> list[MappingRule]:
        return list(self._rules.values())

    @property
    def keys(self) -> list[str]:
        """State keys produced by the registered rules."""
        return [rule.key for rule in self._rules.values()]

    def apply(self, field: str, raw: Any) -> Optional[tuple[str, Any]]:
        """
        Convert one raw update.

        Returns:
            (key, value), or None if the field is unknown or the
            conversion was dropped
        """
        rule = self._rules.get(field)
        if rule is None:
            return None

        try:
            value = rule.convert(raw)
        except Exception as e:
            self._drop(ConversionDroppedError(field, raw, str(e) or type(e).__name__))
            return None

        if value is None:
            self._drop(ConversionDroppedError(field, raw, "no value produced"))
            return None
        if not isinstance(value, rule.value_type):
            self._drop(ConversionDroppedError(
                field, raw, f"expected {rule.value_type.__name__}, got {type(value).__name__}",
            ))
            return None

        return rule.key, value

    def apply_all(self, payload: Mapping[str, Any]) -> list[tuple[str, Any]]:
        """Convert a whole report, keeping its order and skipping dropped fields."""
        mapped = []
        for field, raw in payload.items():
            result = self.apply(field, raw)
            if result is not None:
                mapped.append(result)
        return mapped

    def fields_for(self, keys: Iterable[str]) -> list[str]:
        """Raw fields backing the given state keys; keys with no rule are skipped."""
        wanted = set(keys)
        return [rule.field for rule in self._rules.values() if rule.key in wanted]

    def _drop(self, error: ConversionDroppedError) -> None:
        logger.warning("%s: %s", self._owner or "mapper", error)
