"""Schema validator for advisory documents.

The validator collects every violation instead of stopping at the first one.
It holds no per-call state, so one instance can serve many threads as long as
the injected registry is shared read-only.
"""

from typing import Any

from .checks import CheckPrimitivesMixin
from .container_checks import ContainerChecksMixin
from .metric_checks import MetricChecksMixin
from .registry import RuleRegistry, default_registry
from .report import IssueCollector, ValidationReport, join_path


class SchemaValidator(ContainerChecksMixin, MetricChecksMixin, CheckPrimitivesMixin):
    """Validate raw advisory documents against the loaded rule registry."""

    def __init__(self, registry: RuleRegistry | None = None):
        self.registry = registry if registry is not None else default_registry()

    def validate(self, document: Any) -> ValidationReport:
        """Return a report listing every violation found in ``document``."""
        out = IssueCollector()
        if not isinstance(document, dict):
            out.add("$", "document must be a JSON object", "type")
            return out.report()

        self._string(out, "dataType", document.get("dataType"), enum="data_type")
        self._string(out, "dataVersion", document.get("dataVersion"), fmt="data_version")

        metadata = self._object(out, "cveMetadata", document.get("cveMetadata"), required=True)
        if metadata is not None:
            self._check_metadata(out, "cveMetadata", metadata)

        containers = self._object(out, "containers", document.get("containers"), required=True)
        if containers is not None:
            cna_path = join_path("containers", "cna")
            cna = self._object(out, cna_path, containers.get("cna"), required=True)
            if cna is not None:
                self._check_container(out, cna_path, cna, primary=True)

            adp_path = join_path("containers", "adp")
            adp = self._array(out, adp_path, containers.get("adp"))
            for item_path, container in self._each_object(out, adp_path, adp):
                self._check_container(out, item_path, container, primary=False)

        return out.report()

    def _check_metadata(self, out: IssueCollector, path: str, metadata: dict) -> None:
        limit = self.registry.limit
        self._string(out, join_path(path, "cveId"), metadata.get("cveId"), required=True, fmt="advisory_id")
        self._string(out, join_path(path, "state"), metadata.get("state"), required=True, enum="state")
        self._string(out, join_path(path, "assignerOrgId"), metadata.get("assignerOrgId"), fmt="uuid")
        self._string(
            out,
            join_path(path, "assignerShortName"),
            metadata.get("assignerShortName"),
            min_length=limit("short_name_min"),
            max_length=limit("short_name_max"),
        )
        self._string(out, join_path(path, "requesterUserId"), metadata.get("requesterUserId"), fmt="uuid")
        for key in ("dateReserved", "datePublished", "dateUpdated", "dateRejected"):
            self._string(out, join_path(path, key), metadata.get(key), fmt="datetime")
        self._number(out, join_path(path, "serial"), metadata.get("serial"), minimum=1, integer=True)
