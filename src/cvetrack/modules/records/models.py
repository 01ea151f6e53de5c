"""Canonical advisory record model.

Records are plain dataclasses with snake_case fields. Optional collections stay
``None`` when the source did not supply them so that a merge-policy upsert can
tell "absent" apart from "explicitly empty".
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any

from cvetrack.modules.scoring import (
    SCORE_TYPES,
    ScoreRecord,
    SeveritySummary,
    overall_severity,
)

DEFAULT_LANG = "en"
NO_DESCRIPTION = "no description"
UNSPECIFIED = "unspecified"


def _items(cls: Any) -> dict:
    return {"item": cls}


def _nested(cls: Any) -> dict:
    return {"nested": cls}


@dataclass
class SupportingMedia:
    type: str
    value: str
    base64: bool | None = None


@dataclass
class Description:
    value: str
    lang: str = DEFAULT_LANG
    supporting_media: list[SupportingMedia] | None = field(
        default=None, metadata=_items(SupportingMedia)
    )


@dataclass
class Reference:
    url: str
    name: str | None = None
    tags: list[str] | None = None


@dataclass
class VersionChange:
    at: str
    status: str


@dataclass
class VersionRange:
    """A version entry. ``version`` is the merge key within a product."""

    version: str
    status: str | None = None
    version_type: str | None = None
    less_than: str | None = None
    less_than_or_equal: str | None = None
    changes: list[VersionChange] | None = field(default=None, metadata=_items(VersionChange))


@dataclass
class ProgramRoutine:
    name: str


@dataclass
class AffectedProduct:
    """One affected-product entry as an advisory states it."""

    vendor: str | None = None
    product: str | None = None
    collection_url: str | None = None
    package_name: str | None = None
    repo: str | None = None
    default_status: str | None = None
    cpes: list[str] | None = None
    modules: list[str] | None = None
    program_files: list[str] | None = None
    platforms: list[str] | None = None
    program_routines: list[ProgramRoutine] | None = field(
        default=None, metadata=_items(ProgramRoutine)
    )
    versions: list[VersionRange] | None = field(default=None, metadata=_items(VersionRange))


@dataclass
class ProblemTypeDescription:
    description: str
    lang: str = DEFAULT_LANG
    cwe_id: str | None = None
    type: str | None = None
    references: list[Reference] | None = field(default=None, metadata=_items(Reference))


@dataclass
class ProblemType:
    descriptions: list[ProblemTypeDescription] = field(
        default_factory=list, metadata=_items(ProblemTypeDescription)
    )


@dataclass
class Impact:
    capec_id: str | None = None
    descriptions: list[Description] | None = field(default=None, metadata=_items(Description))


@dataclass
class OtherMetric:
    """Opaque metric payload: a type label plus schema-less content."""

    type: str
    content: dict[str, Any] = field(default_factory=dict)


@dataclass
class Metric:
    format: str | None = None
    scenarios: list[Description] | None = field(default=None, metadata=_items(Description))
    scores: list[ScoreRecord] = field(default_factory=list, metadata=_items("score"))
    other: OtherMetric | None = field(default=None, metadata=_nested(OtherMetric))


@dataclass
class TimelineEntry:
    time: str
    value: str
    lang: str = DEFAULT_LANG


@dataclass
class Credit:
    value: str
    lang: str = DEFAULT_LANG
    type: str | None = None
    user: str | None = None


@dataclass
class ProviderMetadata:
    org_id: str | None = None
    short_name: str | None = None
    date_updated: str | None = None


@dataclass
class Container:
    """Primary (CNA) or secondary (ADP) data block."""

    provider: ProviderMetadata | None = field(default=None, metadata=_nested(ProviderMetadata))
    title: str | None = None
    date_assigned: str | None = None
    date_public: str | None = None
    descriptions: list[Description] | None = field(default=None, metadata=_items(Description))
    affected: list[AffectedProduct] | None = field(default=None, metadata=_items(AffectedProduct))
    references: list[Reference] | None = field(default=None, metadata=_items(Reference))
    problem_types: list[ProblemType] | None = field(default=None, metadata=_items(ProblemType))
    impacts: list[Impact] | None = field(default=None, metadata=_items(Impact))
    metrics: list[Metric] | None = field(default=None, metadata=_items(Metric))
    configurations: list[Description] | None = field(default=None, metadata=_items(Description))
    workarounds: list[Description] | None = field(default=None, metadata=_items(Description))
    solutions: list[Description] | None = field(default=None, metadata=_items(Description))
    exploits: list[Description] | None = field(default=None, metadata=_items(Description))
    timeline: list[TimelineEntry] | None = field(default=None, metadata=_items(TimelineEntry))
    credits: list[Credit] | None = field(default=None, metadata=_items(Credit))
    source: dict[str, Any] | None = None
    tags: list[str] | None = None


@dataclass
class AdvisoryMetadata:
    advisory_id: str | None = None
    state: str | None = None
    assigner_org_id: str | None = None
    assigner_short_name: str | None = None
    requester_user_id: str | None = None
    date_reserved: str | None = None
    date_published: str | None = None
    date_updated: str | None = None
    serial: int | None = None


@dataclass
class AdvisoryRecord:
    """Canonical shape of one advisory.

    ``defaults_applied`` lists the canonical paths that hold no source data:
    ``cna.descriptions`` and ``cna.affected`` when they were filled with
    placeholders, and the paths of oversized schema-less maps that were
    dropped. Neither is ever persisted.
    """

    metadata: AdvisoryMetadata = field(
        default_factory=AdvisoryMetadata, metadata=_nested(AdvisoryMetadata)
    )
    cna: Container = field(default_factory=Container, metadata=_nested(Container))
    adp: list[Container] | None = field(default=None, metadata=_items(Container))
    data_type: str | None = None
    data_version: str | None = None
    defaults_applied: list[str] = field(default_factory=list)

    @property
    def advisory_id(self) -> str | None:
        return self.metadata.advisory_id

    @property
    def state(self) -> str | None:
        return self.metadata.state

    @property
    def title(self) -> str | None:
        return self.cna.title

    def description(self, lang: str = DEFAULT_LANG) -> str | None:
        """First primary description whose language tag starts with ``lang``."""
        for item in self.cna.descriptions or []:
            if item.lang.startswith(lang):
                return item.value
        return None

    @property
    def affected_products(self) -> list[AffectedProduct]:
        return list(self.cna.affected or [])

    def all_affected(self) -> list[AffectedProduct]:
        """Affected entries from the primary container followed by each secondary one."""
        entries = list(self.cna.affected or [])
        for container in self.adp or []:
            entries.extend(container.affected or [])
        return entries

    @property
    def problem_types(self) -> list[ProblemType]:
        return list(self.cna.problem_types or [])

    @property
    def references(self) -> list[Reference]:
        return list(self.cna.references or [])

    @property
    def solutions(self) -> list[Description]:
        return list(self.cna.solutions or [])

    @property
    def workarounds(self) -> list[Description]:
        return list(self.cna.workarounds or [])

    @property
    def published_date(self) -> datetime | None:
        value = self.metadata.date_published
        if not value:
            return None
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None

    def cvss_scores(self) -> list[ScoreRecord]:
        return [score for metric in self.cna.metrics or [] for score in metric.scores]

    def severity(self) -> SeveritySummary:
        return overall_severity(self.cvss_scores())

    def to_document(self) -> dict[str, Any]:
        """Serializable form for storage. Placeholders and empty fields are dropped."""
        document = _dump(self)
        document.pop("defaults_applied", None)
        for path in self.defaults_applied:
            section, _, key = path.partition(".")
            if isinstance(document.get(section), dict):
                document[section].pop(key, None)
        return document

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> AdvisoryRecord:
        """Rebuild a record from :meth:`to_document` output."""
        return _load(cls, document)


def _dump(value: Any) -> Any:
    if hasattr(value, "__dataclass_fields__"):
        out = {}
        for f in fields(value):
            item = _dump(getattr(value, f.name))
            if item is not None:
                out[f.name] = item
        return out
    if isinstance(value, list):
        return [_dump(item) for item in value]
    if isinstance(value, dict):
        return {key: _dump(item) for key, item in value.items()}
    return value


def _load_score(data: dict[str, Any]) -> ScoreRecord | None:
    cls = SCORE_TYPES.get(data.get("version"))
    if cls is None:
        return None
    allowed = {f.name for f in fields(cls) if f.init}
    return cls(**{k: v for k, v in data.items() if k in allowed})


def _load_value(kind: Any, value: Any) -> Any:
    if kind == "score":
        return _load_score(value) if isinstance(value, dict) else None
    if isinstance(value, dict):
        return _load(kind, value)
    return None


def _load(cls: Any, data: dict[str, Any]) -> Any:
    kwargs = {}
    for f in fields(cls):
        if not f.init or f.name not in data:
            continue
        value = data[f.name]
        if "item" in f.metadata and isinstance(value, list):
            loaded = (_load_value(f.metadata["item"], item) for item in value)
            value = [item for item in loaded if item is not None]
        elif "nested" in f.metadata:
            value = _load_value(f.metadata["nested"], value)
        kwargs[f.name] = value
    return cls(**kwargs)
