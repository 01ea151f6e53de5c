"""CVSS score records, one dataclass per scoring version."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def camel_to_snake(name: str) -> str:
    """Convert a camelCase metric key to the snake_case attribute name."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def snake_to_camel(name: str) -> str:
    """Convert a snake_case attribute name back to the camelCase metric key."""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass
class CvssV2:
    """CVSS 2.0 score (no official base severity; may be derived)."""

    metric_key: ClassVar[str] = "cvssV2_0"

    vector_string: str | None = None
    base_score: float | None = None
    base_severity: str | None = None
    access_vector: str | None = None
    access_complexity: str | None = None
    authentication: str | None = None
    confidentiality_impact: str | None = None
    integrity_impact: str | None = None
    availability_impact: str | None = None
    exploitability: str | None = None
    remediation_level: str | None = None
    report_confidence: str | None = None
    temporal_score: float | None = None
    environmental_score: float | None = None
    version: str = field(default="2.0", init=False)


@dataclass
class _CvssV3Base:
    vector_string: str | None = None
    base_score: float | None = None
    base_severity: str | None = None
    attack_vector: str | None = None
    attack_complexity: str | None = None
    privileges_required: str | None = None
    user_interaction: str | None = None
    scope: str | None = None
    confidentiality_impact: str | None = None
    integrity_impact: str | None = None
    availability_impact: str | None = None
    # Temporal metrics, present only when the source specifies them
    exploit_code_maturity: str | None = None
    remediation_level: str | None = None
    report_confidence: str | None = None
    temporal_score: float | None = None
    temporal_severity: str | None = None
    environmental_score: float | None = None
    environmental_severity: str | None = None


@dataclass
class CvssV30(_CvssV3Base):
    """CVSS 3.0 score."""

    metric_key: ClassVar[str] = "cvssV3_0"

    version: str = field(default="3.0", init=False)


@dataclass
class CvssV31(_CvssV3Base):
    """CVSS 3.1 score."""

    metric_key: ClassVar[str] = "cvssV3_1"

    version: str = field(default="3.1", init=False)


@dataclass
class CvssV40:
    """CVSS 4.0 score."""

    metric_key: ClassVar[str] = "cvssV4_0"

    vector_string: str | None = None
    base_score: float | None = None
    base_severity: str | None = None
    attack_vector: str | None = None
    attack_complexity: str | None = None
    attack_requirements: str | None = None
    privileges_required: str | None = None
    user_interaction: str | None = None
    vuln_confidentiality_impact: str | None = None
    vuln_integrity_impact: str | None = None
    vuln_availability_impact: str | None = None
    sub_confidentiality_impact: str | None = None
    sub_integrity_impact: str | None = None
    sub_availability_impact: str | None = None
    exploit_maturity: str | None = None
    version: str = field(default="4.0", init=False)


ScoreRecord = CvssV2 | CvssV30 | CvssV31 | CvssV40

SCORE_TYPES: dict[str, type] = {
    "2.0": CvssV2,
    "3.0": CvssV30,
    "3.1": CvssV31,
    "4.0": CvssV40,
}

METRIC_KEYS: dict[str, str] = {cls.metric_key: version for version, cls in SCORE_TYPES.items()}


def _init_field_names(cls: type) -> set[str]:
    return {f.name for f in fields(cls) if f.init}


def score_from_mapping(version: str, data: dict[str, Any]) -> ScoreRecord | None:
    """Build the score variant for ``version`` from a camelCase metric mapping.

    Keys that do not belong to the variant are ignored, as are values of the
    wrong type: scores must be numeric, everything else a string.
    """
    cls = SCORE_TYPES.get(version)
    if cls is None or not isinstance(data, dict):
        return None

    allowed = _init_field_names(cls)
    values: dict[str, Any] = {}
    for key, value in data.items():
        name = camel_to_snake(key)
        if name not in allowed or value is None:
            continue
        if name.endswith("_score"):
            value = _as_score(value)
        elif not isinstance(value, str):
            value = None
        if value is not None:
            values[name] = value
    return cls(**values)


def _as_score(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def score_to_mapping(score: ScoreRecord) -> dict[str, Any]:
    """Render a score record as a camelCase metric mapping without empty fields."""
    return {
        snake_to_camel(f.name): getattr(score, f.name)
        for f in fields(score)
        if getattr(score, f.name) is not None
    }
