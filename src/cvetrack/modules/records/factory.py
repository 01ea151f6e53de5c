"""Helpers for building and pre-checking raw advisory documents."""

from datetime import UTC, datetime
from typing import Any

from cvetrack.modules.scoring import CvssV31, decode_vector, score_to_mapping, severity_from_score

DATA_TYPE = "CVE_RECORD"
DATA_VERSION = "5.1"


def is_basic_advisory(document: Any) -> bool:
    """Cheap structural check: record type, schema version, identifier and containers."""
    if not isinstance(document, dict):
        return False
    metadata = document.get("cveMetadata")
    return bool(
        document.get("dataType") == DATA_TYPE
        and document.get("dataVersion")
        and isinstance(metadata, dict)
        and metadata.get("cveId")
        and isinstance(document.get("containers"), dict)
    )


def build_minimal_document(
    advisory_id: str,
    title: str,
    description: str,
    vendor: str,
    product: str,
    org_id: str = "00000000-0000-4000-8000-000000000000",
    reference_url: str | None = None,
) -> dict[str, Any]:
    """Create the smallest document that passes validation."""
    now = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.000Z")
    return {
        "dataType": DATA_TYPE,
        "dataVersion": DATA_VERSION,
        "cveMetadata": {
            "cveId": advisory_id,
            "assignerOrgId": org_id,
            "state": "PUBLISHED",
            "dateReserved": now,
            "datePublished": now,
            "dateUpdated": now,
        },
        "containers": {
            "cna": {
                "providerMetadata": {"orgId": org_id},
                "title": title,
                "descriptions": [{"lang": "en", "value": description}],
                "affected": [
                    {
                        "vendor": vendor,
                        "product": product,
                        "defaultStatus": "unknown",
                        "versions": [],
                    }
                ],
                "references": [
                    {"url": reference_url or f"https://www.cve.org/CVERecord?id={advisory_id}"}
                ],
            }
        },
    }


def add_cvss31_metric(
    document: dict[str, Any],
    vector: str,
    base_score: float,
    base_severity: str | None = None,
) -> dict[str, Any]:
    """Append a CVSS 3.1 metric to the primary container, decoding ``vector``."""
    decoded = decode_vector(vector)
    score = decoded if isinstance(decoded, CvssV31) else CvssV31(vector_string=vector)
    score.base_score = base_score
    score.base_severity = base_severity or severity_from_score(base_score, "3.1")

    cna = document.setdefault("containers", {}).setdefault("cna", {})
    cna.setdefault("metrics", []).append({"format": "CVSS", "cvssV3_1": score_to_mapping(score)})
    return document
