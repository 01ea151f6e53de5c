"""Canonical advisory records, normalization and persistence."""

from .factory import add_cvss31_metric, build_minimal_document, is_basic_advisory
from .merge import TOMBSTONE, deep_merge
from .models import (
    NO_DESCRIPTION,
    UNSPECIFIED,
    AdvisoryMetadata,
    AdvisoryRecord,
    AffectedProduct,
    Container,
    Description,
    Metric,
    ProgramRoutine,
    Reference,
    VersionChange,
    VersionRange,
)
from .normalizer import normalize
from .store import AdvisoryStore

__all__ = [
    "NO_DESCRIPTION",
    "TOMBSTONE",
    "UNSPECIFIED",
    "AdvisoryMetadata",
    "AdvisoryRecord",
    "AdvisoryStore",
    "AffectedProduct",
    "Container",
    "Description",
    "Metric",
    "ProgramRoutine",
    "Reference",
    "VersionChange",
    "VersionRange",
    "add_cvss31_metric",
    "build_minimal_document",
    "deep_merge",
    "is_basic_advisory",
    "normalize",
]
