# -*- coding: utf-8 -*-
"""
Flow Data - Scratch store shared between the steps of a flow.

Keys may be any hashable value (strings, enum members, tuples...).
Writes overwrite; reads of a missing key return the default.
"""

from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Hashable, Mapping, Optional, Tuple, Type, Union


class FlowData:
    """In-memory key/value bag owned by a sequencer."""

    def __init__(self):
        self._data: Dict[Hashable, Any] = {}
        self.updated_at: datetime = datetime.now()

    def set(self, key: Hashable, value: Any):
        """Store a value, replacing any previous value for the key."""
        self._data[key] = value
        self.updated_at = datetime.now()

    def get(
        self,
        key: Hashable,
        expected_type: Optional[Union[Type, Tuple[Type, ...]]] = None,
        default: Any = None
    ) -> Any:
        """
        Get a stored value.

        Args:
            key: Lookup key
            expected_type: If given, values that are not instances of it
                are treated as missing
            default: Returned for missing or mistyped values

        Returns:
            The stored value or default
        """
        if key not in self._data:
            return default

        value = self._data[key]
        if expected_type is not None and not isinstance(value, expected_type):
            return default
        return value

    def snapshot(self) -> Mapping[Hashable, Any]:
        """Read-only view over a copy of the current data."""
        return MappingProxyType(dict(self._data))

    def keys(self):
        return list(self._data.keys())

    def clear(self):
        self._data.clear()
        self.updated_at = datetime.now()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)
