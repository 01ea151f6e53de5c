"""Schema rule registry.

Rule documents are YAML files loaded once at startup into an immutable
registry that any number of validators can share.
"""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from cvetrack.errors import RuleLoadError

logger = logging.getLogger(__name__)

ADVISORY_RULES = "advisory.yml"
TAG_RULES = "tags.yml"
SCORING_RULES = ("cvss-v2.0.yml", "cvss-v3.0.yml", "cvss-v3.1.yml", "cvss-v4.0.yml")


@dataclass(frozen=True)
class ScoringRules:
    """Grammar and enumerations for one scoring version."""

    version: str
    key: str
    vector: re.Pattern
    requires_severity: bool
    scores: tuple[str, ...]
    enums: Mapping[str, frozenset[str]]


@dataclass(frozen=True)
class RuleRegistry:
    """Read-only view over every loaded rule document."""

    formats: Mapping[str, re.Pattern]
    enums: Mapping[str, frozenset[str]]
    limits: Mapping[str, int]
    tags: Mapping[str, frozenset[str]]
    scoring: Mapping[str, ScoringRules]

    def matches(self, format_name: str, value: str) -> bool:
        return bool(self.formats[format_name].match(value))

    def allowed(self, enum_name: str) -> frozenset[str]:
        return self.enums[enum_name]

    def limit(self, name: str) -> int:
        return self.limits[name]


def _freeze_enums(raw: Mapping[str, Any]) -> Mapping[str, frozenset[str]]:
    return MappingProxyType({name: frozenset(values) for name, values in raw.items()})


def _compile(name: str, pattern: str) -> re.Pattern:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise RuleLoadError(f"Invalid pattern for {name!r}: {e}") from e


def _read_document(source: Any, filename: str) -> dict[str, Any]:
    try:
        text = source.joinpath(filename).read_text(encoding="utf-8")
        data = yaml.safe_load(text)
    except (OSError, yaml.YAMLError) as e:
        raise RuleLoadError(f"Cannot load rule document {filename}: {e}") from e
    if not isinstance(data, dict):
        raise RuleLoadError(f"Rule document {filename} is not a mapping")
    return data


def _scoring_rules(doc: dict[str, Any], filename: str) -> ScoringRules:
    try:
        return ScoringRules(
            version=str(doc["version"]),
            key=doc["key"],
            vector=_compile(doc["key"], doc["vector"]),
            requires_severity=bool(doc.get("requires_severity", True)),
            scores=tuple(doc.get("scores", ["baseScore"])),
            enums=_freeze_enums(doc.get("enums", {})),
        )
    except KeyError as e:
        raise RuleLoadError(f"Rule document {filename} is missing {e}") from e


def load_rule_registry(rules_dir: Path | None = None) -> RuleRegistry:
    """Load all rule documents from ``rules_dir`` (default: packaged rules)."""
    source = rules_dir if rules_dir is not None else resources.files("cvetrack") / "rules"

    advisory = _read_document(source, ADVISORY_RULES)
    tags = _read_document(source, TAG_RULES)
    scoring = {}
    for filename in SCORING_RULES:
        rules = _scoring_rules(_read_document(source, filename), filename)
        scoring[rules.key] = rules

    try:
        formats = {name: _compile(name, p) for name, p in advisory["formats"].items()}
        registry = RuleRegistry(
            formats=MappingProxyType(formats),
            enums=_freeze_enums(advisory["enums"]),
            limits=MappingProxyType({k: int(v) for k, v in advisory["limits"].items()}),
            tags=_freeze_enums({k: v for k, v in tags.items() if k != "name"}),
            scoring=MappingProxyType(scoring),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise RuleLoadError(f"Malformed advisory rule document: {e}") from e

    logger.debug(
        "Loaded rule registry: %d formats, %d scoring versions", len(formats), len(scoring)
    )
    return registry


@lru_cache(maxsize=1)
def default_registry() -> RuleRegistry:
    """The packaged rule registry, loaded on first use and shared afterwards."""
    return load_rule_registry()
