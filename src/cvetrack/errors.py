"""Exceptions raised by cvetrack."""


class CvetrackError(Exception):
    """Base class for cvetrack errors."""


class MalformedInputError(CvetrackError):
    """A raw advisory document could not be parsed at all."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class PersistenceError(CvetrackError):
    """The store rejected a write for a single advisory or product."""

    def __init__(self, target: str, cause: Exception | None = None):
        self.target = target
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to persist {target}{detail}")


class StoreUnavailableError(CvetrackError):
    """The store could not be reached when the run started."""


class RuleLoadError(CvetrackError):
    """Schema rule documents are missing or malformed."""


class SourceError(CvetrackError):
    """An advisory could not be retrieved from its source."""
