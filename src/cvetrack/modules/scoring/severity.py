"""Severity helpers shared by records and the CLI."""

import re
from dataclasses import dataclass

from .models import ScoreRecord

# Newer scoring versions take precedence when summarizing an advisory.
VERSION_PRIORITY = {"4.0": 4, "3.1": 3, "3.0": 2, "2.0": 1}

_PREFIXED = re.compile(r"^CVSS:(\d+\.\d+)")
_LEGACY = re.compile(r"^(AV:[NAL]|AC:[LMH]|Au:[MSN])")


@dataclass
class SeveritySummary:
    """Overall severity picked from a set of scores."""

    severity: str | None = None
    score: float | None = None
    version: str | None = None


def extract_cvss_version(vector: str | None) -> str | None:
    """Return the scoring version a vector string was written for."""
    if not isinstance(vector, str) or not vector:
        return None
    match = _PREFIXED.match(vector)
    if match:
        return match.group(1)
    if _LEGACY.match(vector):
        return "2.0"
    return None


def severity_from_score(score: float | None, version: str | None) -> str | None:
    """Map a numeric score to its qualitative rating. CVSS 2.0 tops out at HIGH."""
    if score is None:
        return None
    if version in ("3.0", "3.1", "4.0"):
        if score == 0:
            return "NONE"
        if score <= 3.9:
            return "LOW"
        if score <= 6.9:
            return "MEDIUM"
        if score <= 8.9:
            return "HIGH"
        return "CRITICAL"
    if version == "2.0":
        if score == 0:
            return "NONE"
        if score <= 3.9:
            return "LOW"
        if score <= 6.9:
            return "MEDIUM"
        return "HIGH"
    return None


def overall_severity(scores: list[ScoreRecord]) -> SeveritySummary:
    """Summarize scores using the newest scoring version available."""
    if not scores:
        return SeveritySummary()

    primary = max(scores, key=lambda s: VERSION_PRIORITY.get(s.version, 0))
    severity = None
    if primary.version != "2.0":
        severity = primary.base_severity
    if severity is None:
        severity = severity_from_score(primary.base_score, primary.version)
    return SeveritySummary(severity=severity, score=primary.base_score, version=primary.version)
