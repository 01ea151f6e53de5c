"""Primitive checks shared by the validator mixins.

Each check records issues on the collector and returns the value when its
type is right, so callers can keep descending into partially-invalid input.
"""

import json
from collections.abc import Iterator
from typing import Any

from .registry import RuleRegistry
from .report import IssueCollector, index_path


def serialized_size(value: Any) -> int:
    """Size in bytes of ``value`` serialized as JSON."""
    return len(json.dumps(value, default=str).encode("utf-8"))


class CheckPrimitivesMixin:
    """Typed field checks driven by the rule registry."""

    registry: RuleRegistry

    def _object(
        self, out: IssueCollector, path: str, value: Any, required: bool = False
    ) -> dict | None:
        if value is None:
            if required:
                out.add(path, "is required", "required")
            return None
        if not isinstance(value, dict):
            out.add(path, "must be an object", "type")
            return None
        return value

    def _array(
        self,
        out: IssueCollector,
        path: str,
        value: Any,
        required: bool = False,
        min_items: int = 0,
    ) -> list | None:
        if value is None:
            if required:
                out.add(path, "is required", "required")
            return None
        if not isinstance(value, list):
            out.add(path, "must be an array", "type")
            return None
        if len(value) < min_items:
            out.add(path, f"must contain at least {min_items} item(s)", "minItems")
        return value

    def _each_object(
        self, out: IssueCollector, path: str, items: list | None
    ) -> Iterator[tuple[str, dict]]:
        for i, item in enumerate(items or []):
            item_path = index_path(path, i)
            if isinstance(item, dict):
                yield item_path, item
            else:
                out.add(item_path, "must be an object", "type")

    def _string(
        self,
        out: IssueCollector,
        path: str,
        value: Any,
        required: bool = False,
        max_length: int | None = None,
        min_length: int | None = None,
        fmt: str | None = None,
        enum: str | None = None,
    ) -> str | None:
        if value is None:
            if required:
                out.add(path, "is required", "required")
            return None
        if not isinstance(value, str):
            out.add(path, "must be a string", "type")
            return None
        if required and not value:
            out.add(path, "must not be empty", "minLength")
        if min_length is not None and value and len(value) < min_length:
            out.add(path, f"must be at least {min_length} characters", "minLength")
        if max_length is not None and len(value) > max_length:
            out.add(path, f"must be at most {max_length} characters", "maxLength")
        if fmt is not None and value and not self.registry.matches(fmt, value):
            out.add(path, f"is not a valid {fmt.replace('_', ' ')}: {value!r}", f"format:{fmt}")
        if enum is not None:
            self._choice(out, path, value, self.registry.allowed(enum), f"enum:{enum}")
        return value

    def _choice(
        self, out: IssueCollector, path: str, value: Any, choices: frozenset[str], rule: str
    ) -> None:
        if not isinstance(value, str):
            out.add(path, "must be a string", "type")
            return
        if value not in choices:
            allowed = ", ".join(sorted(choices))
            out.add(path, f"{value!r} is not one of: {allowed}", rule)

    def _strings(
        self, out: IssueCollector, path: str, value: Any, max_length: int | None = None
    ) -> None:
        for i, item in enumerate(self._array(out, path, value) or []):
            self._string(out, index_path(path, i), item, required=True, max_length=max_length)

    def _number(
        self,
        out: IssueCollector,
        path: str,
        value: Any,
        required: bool = False,
        minimum: float | None = None,
        maximum: float | None = None,
        integer: bool = False,
    ) -> None:
        if value is None:
            if required:
                out.add(path, "is required", "required")
            return
        if isinstance(value, bool) or not isinstance(value, int | float):
            out.add(path, "must be a number", "type")
            return
        if integer and not float(value).is_integer():
            out.add(path, "must be an integer", "type")
        if minimum is not None and value < minimum:
            out.add(path, f"must be >= {minimum}", "minimum")
        if maximum is not None and value > maximum:
            out.add(path, f"must be <= {maximum}", "maximum")

    def _boolean(self, out: IssueCollector, path: str, value: Any) -> None:
        if value is not None and not isinstance(value, bool):
            out.add(path, "must be a boolean", "type")

    def _open_map(self, out: IssueCollector, path: str, value: Any, required: bool = False):
        data = self._object(out, path, value, required=required)
        if data is None:
            return
        limit = self.registry.limit("open_map_bytes")
        try:
            size = serialized_size(data)
        except (TypeError, ValueError):
            out.add(path, "must be JSON-serializable", "type")
            return
        if size > limit:
            out.add(path, f"exceeds {limit} bytes when serialized", "maxSize")
