"""Test configuration and fixtures for cvetrack."""

import copy
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.engine import Engine

from cvetrack.db.init import init_db
from cvetrack.modules.catalog import ProductCatalog, ProductReconciler
from cvetrack.modules.records import AdvisoryStore
from cvetrack.modules.validation import SchemaValidator, default_registry

ORG_ID = "8254265b-2729-46b6-b9e3-3dfca2d5bfca"

MINIMAL_DOCUMENT: dict[str, Any] = {
    "dataType": "CVE_RECORD",
    "dataVersion": "5.1",
    "cveMetadata": {
        "cveId": "CVE-2024-0001",
        "assignerOrgId": ORG_ID,
        "state": "PUBLISHED",
        "datePublished": "2024-02-29T10:15:00.000Z",
    },
    "containers": {
        "cna": {
            "providerMetadata": {"orgId": ORG_ID},
            "descriptions": [{"lang": "en", "value": "Buffer overflow in Widget."}],
            "affected": [
                {
                    "vendor": "Acme",
                    "product": "Widget",
                    "versions": [{"version": "1.0", "status": "affected"}],
                }
            ],
            "references": [{"url": "https://acme.example/advisories/1"}],
        }
    },
}


def make_document(advisory_id: str = "CVE-2024-0001", **cna_overrides: Any) -> dict[str, Any]:
    """Deep copy of the minimal document with a new id and primary-container overrides."""
    document = copy.deepcopy(MINIMAL_DOCUMENT)
    document["cveMetadata"]["cveId"] = advisory_id
    document["containers"]["cna"].update(copy.deepcopy(cna_overrides))
    return document


def affected_entry(vendor="Acme", product="Widget", versions=None, **extra: Any) -> dict[str, Any]:
    entry: dict[str, Any] = {"vendor": vendor, "product": product, **extra}
    if versions is not None:
        entry["versions"] = versions
    return entry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db_url(temp_dir: Path) -> str:
    """SQLite URL for a file database inside the temp dir."""
    return f"sqlite:///{temp_dir / 'cvetrack.db'}"


@pytest.fixture
def engine(db_url: str) -> Generator[Engine, None, None]:
    """Initialized engine with all tables created."""
    engine = init_db(db_url)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine: Engine) -> AdvisoryStore:
    return AdvisoryStore(engine)


@pytest.fixture
def reconciler(engine: Engine) -> ProductReconciler:
    return ProductReconciler(engine)


@pytest.fixture
def catalog(engine: Engine) -> ProductCatalog:
    return ProductCatalog(engine)


@pytest.fixture
def validator() -> SchemaValidator:
    return SchemaValidator(default_registry())


@pytest.fixture
def minimal_document() -> dict[str, Any]:
    return copy.deepcopy(MINIMAL_DOCUMENT)


@pytest.fixture
def full_document() -> dict[str, Any]:
    """A document exercising most optional sections."""
    document = make_document(
        "CVE-2023-4567",
        title="Remote code execution in Widget",
        dateAssigned="2023-08-01T00:00:00Z",
        affected=[
            {
                "vendor": "Acme",
                "product": "Widget",
                "collectionURL": "https://packages.acme.example",
                "packageName": "acme-widget",
                "repo": "https://git.acme.example/widget",
                "defaultStatus": "unaffected",
                "cpes": ["cpe:2.3:a:acme:widget:*:*:*:*:*:*:*:*"],
                "platforms": ["Linux", "Windows"],
                "modules": ["parser"],
                "programRoutines": [{"name": "parse_header"}],
                "versions": [
                    {
                        "version": "2.0",
                        "status": "affected",
                        "versionType": "semver",
                        "lessThan": "2.4.1",
                        "changes": [{"at": "2.3.7", "status": "unaffected"}],
                    }
                ],
            }
        ],
        problemTypes=[
            {
                "descriptions": [
                    {
                        "lang": "en",
                        "description": "CWE-787 Out-of-bounds Write",
                        "cweId": "CWE-787",
                        "type": "CWE",
                    }
                ]
            }
        ],
        impacts=[
            {"capecId": "CAPEC-100", "descriptions": [{"lang": "en", "value": "Overflow Buffers"}]}
        ],
        metrics=[
            {
                "format": "CVSS",
                "scenarios": [{"lang": "en", "value": "GENERAL"}],
                "cvssV3_1": {
                    "version": "3.1",
                    "vectorString": "CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H",
                    "baseScore": 9.8,
                    "baseSeverity": "CRITICAL",
                },
            },
            {"other": {"type": "ssvc", "content": {"exploitation": "none"}}},
        ],
        solutions=[{"lang": "en", "value": "Upgrade to 2.4.1."}],
        workarounds=[{"lang": "en", "value": "Disable header parsing."}],
        timeline=[{"time": "2023-08-02T00:00:00Z", "lang": "en", "value": "Reported"}],
        credits=[{"lang": "en", "value": "Jane Doe", "type": "finder"}],
        references=[
            {
                "url": "https://acme.example/advisories/4567",
                "name": "Acme advisory",
                "tags": ["vendor-advisory", "patch"],
            }
        ],
        source={"discovery": "EXTERNAL"},
        tags=["disputed"],
    )
    document["containers"]["adp"] = [
        {
            "providerMetadata": {"orgId": "af854a3a-2127-422b-91ae-364da2661108"},
            "title": "Third-party enrichment",
            "affected": [
                {
                    "vendor": "Acme",
                    "product": "Widget Pro",
                    "versions": [{"version": "5.0", "status": "affected"}],
                }
            ],
        }
    ]
    return document
