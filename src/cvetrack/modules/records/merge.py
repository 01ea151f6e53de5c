"""Deep merge for stored advisory documents."""

from copy import deepcopy
from typing import Any


class _Tombstone:
    """Marker that deletes a key during a merge."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "TOMBSTONE"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (_Tombstone, ())


TOMBSTONE = _Tombstone()


def deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    """Merge ``incoming`` over ``base`` and return a new mapping.

    Mappings merge key by key. Any other value, lists included, replaces the
    stored one. Keys missing from ``incoming`` keep their stored value and a
    ``TOMBSTONE`` value removes the key.
    """
    merged = deepcopy(base)
    for key, value in incoming.items():
        if value is TOMBSTONE:
            merged.pop(key, None)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = strip_tombstones(value)
    return merged


def strip_tombstones(value: Any) -> Any:
    """Copy of ``value`` with tombstoned keys removed at every depth."""
    if isinstance(value, dict):
        return {k: strip_tombstones(v) for k, v in value.items() if v is not TOMBSTONE}
    if isinstance(value, list):
        return [strip_tombstones(item) for item in value if item is not TOMBSTONE]
    return deepcopy(value)
