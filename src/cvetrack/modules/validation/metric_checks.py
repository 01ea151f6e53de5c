"""Checks for metric entries and their versioned score payloads."""

from .registry import ScoringRules
from .report import IssueCollector, join_path

MAX_SCORE = 10.0


class MetricChecksMixin:
    """Validate metric entries: CVSS payloads per version and opaque ``other`` content."""

    def _check_metric(self, out: IssueCollector, path: str, metric: dict) -> None:
        limit = self.registry.limit
        self._string(out, join_path(path, "format"), metric.get("format"), enum="metric_format")

        scenarios_path = join_path(path, "scenarios")
        for item_path, scenario in self._each_object(
            out, scenarios_path, self._array(out, scenarios_path, metric.get("scenarios"))
        ):
            self._string(out, join_path(item_path, "lang"), scenario.get("lang"), fmt="language")
            self._string(
                out, join_path(item_path, "value"), scenario.get("value"), required=True, max_length=limit("text")
            )

        found = False
        for key, rules in self.registry.scoring.items():
            if key not in metric:
                continue
            found = True
            data = self._object(out, join_path(path, key), metric[key], required=True)
            if data is not None:
                self._check_score(out, join_path(path, key), data, rules)

        other = metric.get("other")
        if other is not None:
            found = True
            other_path = join_path(path, "other")
            data = self._object(out, other_path, other)
            if data is not None:
                self._string(
                    out, join_path(other_path, "type"), data.get("type"), required=True, max_length=limit("other_type")
                )
                self._open_map(out, join_path(other_path, "content"), data.get("content"), required=True)

        if not found:
            keys = ", ".join([*self.registry.scoring, "other"])
            out.add(path, f"must contain one of: {keys}", "anyOf:metric")

    def _check_score(self, out: IssueCollector, path: str, data: dict, rules: ScoringRules) -> None:
        version = data.get("version")
        if version is None:
            out.add(join_path(path, "version"), "is required", "required")
        elif str(version) != rules.version:
            out.add(
                join_path(path, "version"),
                f"must be {rules.version!r} for {rules.key}, got {version!r}",
                f"const:{rules.version}",
            )

        vector = self._string(out, join_path(path, "vectorString"), data.get("vectorString"), required=True)
        if vector and not rules.vector.match(vector):
            out.add(
                join_path(path, "vectorString"),
                f"does not match the CVSS {rules.version} vector grammar: {vector!r}",
                f"vector:{rules.version}",
            )

        for score_field in rules.scores:
            self._number(
                out,
                join_path(path, score_field),
                data.get(score_field),
                required=score_field == "baseScore",
                minimum=0,
                maximum=MAX_SCORE,
            )

        if rules.requires_severity and data.get("baseSeverity") is None:
            out.add(join_path(path, "baseSeverity"), "is required", "required")

        for field_name, choices in rules.enums.items():
            value = data.get(field_name)
            if value is not None:
                self._choice(out, join_path(path, field_name), value, choices, f"enum:{rules.key}.{field_name}")
