"""CVSS score records, vector decoding and severity helpers."""

from .models import (
    METRIC_KEYS,
    SCORE_TYPES,
    CvssV2,
    CvssV30,
    CvssV31,
    CvssV40,
    ScoreRecord,
    score_from_mapping,
    score_to_mapping,
)
from .severity import SeveritySummary, extract_cvss_version, overall_severity, severity_from_score
from .vectors import decode_vector

__all__ = [
    "METRIC_KEYS",
    "SCORE_TYPES",
    "CvssV2",
    "CvssV30",
    "CvssV31",
    "CvssV40",
    "ScoreRecord",
    "SeveritySummary",
    "decode_vector",
    "extract_cvss_version",
    "overall_severity",
    "score_from_mapping",
    "score_to_mapping",
    "severity_from_score",
]
