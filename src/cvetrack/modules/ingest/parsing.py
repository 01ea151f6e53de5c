"""Raw document parsing."""

import json
from pathlib import Path
from typing import Any

from cvetrack.errors import MalformedInputError


def parse_document(payload: str | bytes, source: str) -> dict[str, Any]:
    """Parse a JSON advisory document.

    Raises MalformedInputError when the payload is not a JSON object.
    """
    try:
        document = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedInputError(source, f"invalid JSON: {e}") from e
    if not isinstance(document, dict):
        raise MalformedInputError(source, f"expected a JSON object, got {type(document).__name__}")
    return document


def load_document(path: Path) -> dict[str, Any]:
    """Read and parse one advisory file."""
    try:
        payload = path.read_bytes()
    except OSError as e:
        raise MalformedInputError(str(path), f"cannot read file: {e}") from e
    return parse_document(payload, str(path))
