"""Convert raw advisory documents into canonical records.

Normalization never fails on a structurally odd document. Values of the wrong
type are dropped, unknown keys are ignored, and the two collections the
canonical model needs (primary descriptions and affected products) receive
placeholders that are listed in ``defaults_applied``.
"""

import logging
from dataclasses import fields, replace
from typing import Any

from cvetrack.modules.scoring import METRIC_KEYS, decode_vector, score_from_mapping
from cvetrack.modules.validation import RuleRegistry, ValidationReport, default_registry
from cvetrack.modules.validation.checks import serialized_size

from .models import (
    DEFAULT_LANG,
    NO_DESCRIPTION,
    UNSPECIFIED,
    AdvisoryMetadata,
    AdvisoryRecord,
    AffectedProduct,
    Container,
    Credit,
    Description,
    Impact,
    Metric,
    OtherMetric,
    ProblemType,
    ProblemTypeDescription,
    ProgramRoutine,
    ProviderMetadata,
    Reference,
    SupportingMedia,
    TimelineEntry,
    VersionChange,
    VersionRange,
)

logger = logging.getLogger(__name__)

_DESCRIPTION_LISTS = ("configurations", "workarounds", "solutions", "exploits")


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _mapping(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _objects(value: Any) -> list[dict] | None:
    """List of mappings, or None when the key was absent or not a list."""
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, dict)]


def _strings(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, str) and item]


def _lang(value: Any) -> str:
    return value if isinstance(value, str) and value else DEFAULT_LANG


class _OpenMaps:
    """Keeps schema-less maps within the size limit and lists the ones dropped."""

    def __init__(self, limit: int):
        self.limit = limit
        self.dropped: list[str] = []

    def bound(self, path: str, value: Any) -> dict | None:
        if not isinstance(value, dict):
            return None
        try:
            size = serialized_size(value)
        except (TypeError, ValueError):
            size = None
        if size is None or size > self.limit:
            logger.warning("Dropping %s: not serializable within %d bytes", path, self.limit)
            self.dropped.append(path)
            return None
        return value


def _description(raw: dict) -> Description | None:
    value = _text(raw.get("value"))
    if value is None:
        return None
    media = _objects(raw.get("supportingMedia"))
    return Description(
        value=value,
        lang=_lang(raw.get("lang")),
        supporting_media=None
        if media is None
        else [
            SupportingMedia(
                type=m["type"],
                value=m["value"],
                base64=m.get("base64") if isinstance(m.get("base64"), bool) else None,
            )
            for m in media
            if _text(m.get("type")) and _text(m.get("value")) is not None
        ],
    )


def _descriptions(value: Any) -> list[Description] | None:
    items = _objects(value)
    if items is None:
        return None
    return [d for d in (_description(item) for item in items) if d is not None]


def _reference(raw: dict) -> Reference | None:
    url = _text(raw.get("url"))
    if not url:
        return None
    return Reference(url=url, name=_text(raw.get("name")), tags=_strings(raw.get("tags")))


def _references(value: Any) -> list[Reference] | None:
    items = _objects(value)
    if items is None:
        return None
    return [r for r in (_reference(item) for item in items) if r is not None]


def normalize_version(raw: dict) -> VersionRange | None:
    version = _text(raw.get("version"))
    if not version:
        return None
    changes = _objects(raw.get("changes"))
    return VersionRange(
        version=version,
        status=_text(raw.get("status")) or None,
        version_type=_text(raw.get("versionType")) or None,
        less_than=_text(raw.get("lessThan")) or None,
        less_than_or_equal=_text(raw.get("lessThanOrEqual")) or None,
        changes=None
        if changes is None
        else [
            VersionChange(at=c["at"], status=c["status"])
            for c in changes
            if _text(c.get("at")) and _text(c.get("status"))
        ],
    )


def normalize_affected(raw: dict) -> AffectedProduct:
    """Canonical affected-product entry. Vendor and product may be missing."""
    routines = _objects(raw.get("programRoutines"))
    versions = _objects(raw.get("versions"))
    return AffectedProduct(
        vendor=_text(raw.get("vendor")) or None,
        product=_text(raw.get("product")) or None,
        collection_url=_text(raw.get("collectionURL")) or None,
        package_name=_text(raw.get("packageName")) or None,
        repo=_text(raw.get("repo")) or None,
        default_status=_text(raw.get("defaultStatus")) or None,
        cpes=_strings(raw.get("cpes")),
        modules=_strings(raw.get("modules")),
        program_files=_strings(raw.get("programFiles")),
        platforms=_strings(raw.get("platforms")),
        program_routines=None
        if routines is None
        else [ProgramRoutine(name=r["name"]) for r in routines if _text(r.get("name"))],
        versions=None
        if versions is None
        else [v for v in (normalize_version(item) for item in versions) if v is not None],
    )


def _fill_from_vector(score):
    """Populate fields missing from a score using its own vector string."""
    decoded = decode_vector(score.vector_string)
    if decoded is None or type(decoded) is not type(score):
        return score
    updates = {
        f.name: getattr(decoded, f.name)
        for f in fields(score)
        if f.init and getattr(score, f.name) is None and getattr(decoded, f.name) is not None
    }
    return replace(score, **updates) if updates else score


def _metric(raw: dict, maps: _OpenMaps, path: str) -> Metric:
    scores = []
    for key, version in METRIC_KEYS.items():
        data = raw.get(key)
        if not isinstance(data, dict):
            continue
        score = score_from_mapping(version, data)
        if score is not None:
            scores.append(_fill_from_vector(score))

    other = None
    raw_other = raw.get("other")
    if isinstance(raw_other, dict) and _text(raw_other.get("type")):
        content = maps.bound(f"{path}.other.content", raw_other.get("content"))
        other = OtherMetric(type=raw_other["type"], content=content or {})

    return Metric(
        format=_text(raw.get("format")),
        scenarios=_descriptions(raw.get("scenarios")),
        scores=scores,
        other=other,
    )


def _problem_type(raw: dict) -> ProblemType:
    items = _objects(raw.get("descriptions")) or []
    return ProblemType(
        descriptions=[
            ProblemTypeDescription(
                description=item["description"],
                lang=_lang(item.get("lang")),
                cwe_id=_text(item.get("cweId")),
                type=_text(item.get("type")),
                references=_references(item.get("references")),
            )
            for item in items
            if _text(item.get("description"))
        ]
    )


def _list_of(value: Any, build) -> list | None:
    items = _objects(value)
    if items is None:
        return None
    return [build(item) for item in items]


def _indexed_list_of(value: Any, build, path: str) -> list | None:
    """Like _list_of, passing each item its ``path[i]`` location."""
    items = _objects(value)
    if items is None:
        return None
    return [build(item, f"{path}[{i}]") for i, item in enumerate(items)]


def normalize_container(raw: dict, maps: _OpenMaps | None = None, path: str = "cna") -> Container:
    if maps is None:
        maps = _OpenMaps(default_registry().limit("open_map_bytes"))
    provider = raw.get("providerMetadata")
    timeline = _objects(raw.get("timeline"))
    credits = _objects(raw.get("credits"))
    container = Container(
        provider=ProviderMetadata(
            org_id=_text(provider.get("orgId")),
            short_name=_text(provider.get("shortName")),
            date_updated=_text(provider.get("dateUpdated")),
        )
        if isinstance(provider, dict)
        else None,
        title=_text(raw.get("title")),
        date_assigned=_text(raw.get("dateAssigned")),
        date_public=_text(raw.get("datePublic")),
        descriptions=_descriptions(raw.get("descriptions")),
        affected=_list_of(raw.get("affected"), normalize_affected),
        references=_references(raw.get("references")),
        problem_types=_list_of(raw.get("problemTypes"), _problem_type),
        impacts=_list_of(
            raw.get("impacts"),
            lambda item: Impact(
                capec_id=_text(item.get("capecId")),
                descriptions=_descriptions(item.get("descriptions")),
            ),
        ),
        metrics=_indexed_list_of(
            raw.get("metrics"), lambda item, at: _metric(item, maps, at), f"{path}.metrics"
        ),
        timeline=None
        if timeline is None
        else [
            TimelineEntry(time=t["time"], value=t["value"], lang=_lang(t.get("lang")))
            for t in timeline
            if _text(t.get("time")) and _text(t.get("value")) is not None
        ],
        credits=None
        if credits is None
        else [
            Credit(
                value=c["value"],
                lang=_lang(c.get("lang")),
                type=_text(c.get("type")),
                user=_text(c.get("user")),
            )
            for c in credits
            if _text(c.get("value")) is not None
        ],
        source=maps.bound(f"{path}.source", raw.get("source")),
        tags=_strings(raw.get("tags")),
    )
    for key in _DESCRIPTION_LISTS:
        setattr(container, key, _descriptions(raw.get(key)))
    return container


def _metadata(raw: dict) -> AdvisoryMetadata:
    serial = raw.get("serial")
    return AdvisoryMetadata(
        advisory_id=_text(raw.get("cveId")) or None,
        state=_text(raw.get("state")),
        assigner_org_id=_text(raw.get("assignerOrgId")),
        assigner_short_name=_text(raw.get("assignerShortName")),
        requester_user_id=_text(raw.get("requesterUserId")),
        date_reserved=_text(raw.get("dateReserved")),
        date_published=_text(raw.get("datePublished")),
        date_updated=_text(raw.get("dateUpdated")),
        serial=serial if isinstance(serial, int) and not isinstance(serial, bool) else None,
    )


def normalize(
    document: Any,
    report: ValidationReport | None = None,
    registry: RuleRegistry | None = None,
) -> AdvisoryRecord:
    """Build the canonical record for ``document``, valid or not.

    ``report`` is only used for logging; it never changes the output.
    Schema-less maps larger than the registry's ``open_map_bytes`` limit are
    dropped and their paths appended to ``defaults_applied``.
    """
    raw = _mapping(document)
    containers = _mapping(raw.get("containers"))
    maps = _OpenMaps((registry or default_registry()).limit("open_map_bytes"))

    record = AdvisoryRecord(
        metadata=_metadata(_mapping(raw.get("cveMetadata"))),
        cna=normalize_container(_mapping(containers.get("cna")), maps, "cna"),
        adp=_indexed_list_of(
            containers.get("adp"), lambda item, at: normalize_container(item, maps, at), "adp"
        ),
        data_type=_text(raw.get("dataType")),
        data_version=_text(raw.get("dataVersion")),
    )

    if not record.cna.descriptions:
        record.cna.descriptions = [Description(value=NO_DESCRIPTION)]
        record.defaults_applied.append("cna.descriptions")
    if not record.cna.affected:
        record.cna.affected = [AffectedProduct(vendor=UNSPECIFIED, product=UNSPECIFIED)]
        record.defaults_applied.append("cna.affected")
    record.defaults_applied.extend(maps.dropped)

    if report is not None and not report.valid:
        logger.debug(
            "Normalized %s despite %d validation error(s)",
            record.advisory_id or "<unknown>",
            len(report.errors),
        )
    return record
