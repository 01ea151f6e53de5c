"""Tolerant CVSS vector decoding.

Abbreviations that are unknown for the vector's version, or codes that are not
in the version's table, are skipped. Grammar checking belongs to the validator.
"""

from .models import SCORE_TYPES, ScoreRecord
from .severity import extract_cvss_version

_LOW_HIGH = {"L": "LOW", "H": "HIGH"}
_NONE_LOW_HIGH = {"N": "NONE", "L": "LOW", "H": "HIGH"}
_V2_IMPACT = {"N": "NONE", "P": "PARTIAL", "C": "COMPLETE"}

_V2_TABLE = {
    "AV": ("access_vector", {"L": "LOCAL", "A": "ADJACENT_NETWORK", "N": "NETWORK"}),
    "AC": ("access_complexity", {"H": "HIGH", "M": "MEDIUM", "L": "LOW"}),
    "Au": ("authentication", {"M": "MULTIPLE", "S": "SINGLE", "N": "NONE"}),
    "C": ("confidentiality_impact", _V2_IMPACT),
    "I": ("integrity_impact", _V2_IMPACT),
    "A": ("availability_impact", _V2_IMPACT),
    "E": (
        "exploitability",
        {
            "U": "UNPROVEN",
            "POC": "PROOF_OF_CONCEPT",
            "F": "FUNCTIONAL",
            "H": "HIGH",
            "ND": "NOT_DEFINED",
        },
    ),
    "RL": (
        "remediation_level",
        {
            "OF": "OFFICIAL_FIX",
            "TF": "TEMPORARY_FIX",
            "W": "WORKAROUND",
            "U": "UNAVAILABLE",
            "ND": "NOT_DEFINED",
        },
    ),
    "RC": (
        "report_confidence",
        {"UC": "UNCONFIRMED", "UR": "UNCORROBORATED", "C": "CONFIRMED", "ND": "NOT_DEFINED"},
    ),
}

_V3_TABLE = {
    "AV": (
        "attack_vector",
        {"N": "NETWORK", "A": "ADJACENT_NETWORK", "L": "LOCAL", "P": "PHYSICAL"},
    ),
    "AC": ("attack_complexity", _LOW_HIGH),
    "PR": ("privileges_required", _NONE_LOW_HIGH),
    "UI": ("user_interaction", {"N": "NONE", "R": "REQUIRED"}),
    "S": ("scope", {"U": "UNCHANGED", "C": "CHANGED"}),
    "C": ("confidentiality_impact", _NONE_LOW_HIGH),
    "I": ("integrity_impact", _NONE_LOW_HIGH),
    "A": ("availability_impact", _NONE_LOW_HIGH),
    "E": (
        "exploit_code_maturity",
        {
            "X": "NOT_DEFINED",
            "U": "UNPROVEN",
            "P": "PROOF_OF_CONCEPT",
            "F": "FUNCTIONAL",
            "H": "HIGH",
        },
    ),
    "RL": (
        "remediation_level",
        {
            "X": "NOT_DEFINED",
            "O": "OFFICIAL_FIX",
            "T": "TEMPORARY_FIX",
            "W": "WORKAROUND",
            "U": "UNAVAILABLE",
        },
    ),
    "RC": (
        "report_confidence",
        {"X": "NOT_DEFINED", "U": "UNKNOWN", "R": "REASONABLE", "C": "CONFIRMED"},
    ),
}

_V4_TABLE = {
    "AV": ("attack_vector", {"N": "NETWORK", "A": "ADJACENT", "L": "LOCAL", "P": "PHYSICAL"}),
    "AC": ("attack_complexity", _LOW_HIGH),
    "AT": ("attack_requirements", {"N": "NONE", "P": "PRESENT"}),
    "PR": ("privileges_required", _NONE_LOW_HIGH),
    "UI": ("user_interaction", {"N": "NONE", "P": "PASSIVE", "A": "ACTIVE"}),
    "VC": ("vuln_confidentiality_impact", _NONE_LOW_HIGH),
    "VI": ("vuln_integrity_impact", _NONE_LOW_HIGH),
    "VA": ("vuln_availability_impact", _NONE_LOW_HIGH),
    "SC": ("sub_confidentiality_impact", _NONE_LOW_HIGH),
    "SI": ("sub_integrity_impact", _NONE_LOW_HIGH),
    "SA": ("sub_availability_impact", _NONE_LOW_HIGH),
    "E": (
        "exploit_maturity",
        {"X": "NOT_DEFINED", "A": "ATTACKED", "P": "PROOF_OF_CONCEPT", "U": "UNREPORTED"},
    ),
}

VECTOR_TABLES = {
    "2.0": _V2_TABLE,
    "3.0": _V3_TABLE,
    "3.1": _V3_TABLE,
    "4.0": _V4_TABLE,
}

PREFIX = "CVSS:"


def split_vector(vector: str) -> list[str]:
    """Metric segments of a vector string, without its version prefix."""
    parts = [part for part in vector.split("/") if part]
    if parts and parts[0].startswith(PREFIX):
        return parts[1:]
    return parts


def decode_metrics(version: str, segments: list[str]) -> dict[str, str]:
    """Map ``ABBR:CODE`` segments to long-form field values for ``version``."""
    table = VECTOR_TABLES.get(version, {})
    values: dict[str, str] = {}
    for segment in segments:
        abbreviation, sep, code = segment.partition(":")
        if not sep:
            continue
        entry = table.get(abbreviation)
        if entry is None:
            continue
        name, codes = entry
        value = codes.get(code)
        if value is not None:
            values[name] = value
    return values


def decode_vector(vector: str | None) -> ScoreRecord | None:
    """Decode a vector string into its score variant.

    Returns None when no known version can be determined: a non-string or
    empty input, an unknown ``CVSS:<ver>`` prefix, or a bare string that does
    not start like a legacy 2.0 vector.
    """
    if not isinstance(vector, str):
        return None
    vector = vector.strip()
    version = extract_cvss_version(vector)
    cls = SCORE_TYPES.get(version) if version else None
    if cls is None:
        return None
    return cls(vector_string=vector, **decode_metrics(version, split_vector(vector)))
