"""Checks for primary and secondary containers."""

from .report import IssueCollector, join_path

_DESCRIPTION_LISTS = ("configurations", "workarounds", "solutions", "exploits")


class ContainerChecksMixin:
    """Validate container bodies: descriptions, references, affected products."""

    def _check_container(self, out: IssueCollector, path: str, container: dict, primary: bool):
        limit = self.registry.limit
        # Primary containers must carry content; secondary ones may be empty.
        min_items = 1 if primary else 0

        provider = self._object(out, join_path(path, "providerMetadata"), container.get("providerMetadata"))
        if provider is not None:
            self._check_provider(out, join_path(path, "providerMetadata"), provider)

        self._string(out, join_path(path, "dateAssigned"), container.get("dateAssigned"), fmt="datetime")
        self._string(out, join_path(path, "datePublic"), container.get("datePublic"), fmt="datetime")
        self._string(out, join_path(path, "title"), container.get("title"), max_length=limit("title"))

        descriptions_path = join_path(path, "descriptions")
        descriptions = self._array(
            out, descriptions_path, container.get("descriptions"), required=primary, min_items=min_items
        )
        for item_path, item in self._each_object(out, descriptions_path, descriptions):
            self._check_description(out, item_path, item)

        affected_path = join_path(path, "affected")
        affected = self._array(
            out, affected_path, container.get("affected"), required=primary, min_items=min_items
        )
        for item_path, item in self._each_object(out, affected_path, affected):
            self._check_affected(out, item_path, item)

        references_path = join_path(path, "references")
        references = self._array(
            out, references_path, container.get("references"), required=primary, min_items=min_items
        )
        for item_path, item in self._each_object(out, references_path, references):
            self._check_reference(out, item_path, item)

        problems_path = join_path(path, "problemTypes")
        problems = self._array(out, problems_path, container.get("problemTypes"))
        for item_path, item in self._each_object(out, problems_path, problems):
            self._check_problem_type(out, item_path, item)

        impacts_path = join_path(path, "impacts")
        for item_path, item in self._each_object(
            out, impacts_path, self._array(out, impacts_path, container.get("impacts"))
        ):
            self._string(out, join_path(item_path, "capecId"), item.get("capecId"), fmt="capec_id")
            self._check_descriptions(out, join_path(item_path, "descriptions"), item.get("descriptions"))

        metrics_path = join_path(path, "metrics")
        for item_path, item in self._each_object(
            out, metrics_path, self._array(out, metrics_path, container.get("metrics"))
        ):
            self._check_metric(out, item_path, item)

        for key in _DESCRIPTION_LISTS:
            self._check_descriptions(out, join_path(path, key), container.get(key))

        timeline_path = join_path(path, "timeline")
        for item_path, item in self._each_object(
            out, timeline_path, self._array(out, timeline_path, container.get("timeline"))
        ):
            self._string(out, join_path(item_path, "time"), item.get("time"), required=True, fmt="datetime")
            self._string(out, join_path(item_path, "lang"), item.get("lang"), fmt="language")
            self._string(
                out, join_path(item_path, "value"), item.get("value"), required=True, max_length=limit("text")
            )

        credits_path = join_path(path, "credits")
        for item_path, item in self._each_object(
            out, credits_path, self._array(out, credits_path, container.get("credits"))
        ):
            self._string(out, join_path(item_path, "lang"), item.get("lang"), fmt="language")
            self._string(
                out, join_path(item_path, "value"), item.get("value"), required=True, max_length=limit("text")
            )
            self._string(out, join_path(item_path, "user"), item.get("user"), fmt="uuid")
            self._string(out, join_path(item_path, "type"), item.get("type"), enum="credit_type")

        self._open_map(out, join_path(path, "source"), container.get("source"))

        tags_path = join_path(path, "tags")
        allowed_tags = self.registry.tags["cna" if primary else "adp"]
        for i, tag in enumerate(self._array(out, tags_path, container.get("tags")) or []):
            self._choice(out, f"{tags_path}[{i}]", tag, allowed_tags, "enum:containerTag")

    def _check_provider(self, out: IssueCollector, path: str, provider: dict) -> None:
        limit = self.registry.limit
        self._string(out, join_path(path, "orgId"), provider.get("orgId"), required=True, fmt="uuid")
        self._string(
            out,
            join_path(path, "shortName"),
            provider.get("shortName"),
            min_length=limit("short_name_min"),
            max_length=limit("short_name_max"),
        )
        self._string(out, join_path(path, "dateUpdated"), provider.get("dateUpdated"), fmt="datetime")

    def _check_descriptions(self, out: IssueCollector, path: str, value) -> None:
        for item_path, item in self._each_object(out, path, self._array(out, path, value)):
            self._check_description(out, item_path, item)

    def _check_description(self, out: IssueCollector, path: str, description: dict) -> None:
        limit = self.registry.limit
        self._string(out, join_path(path, "lang"), description.get("lang"), fmt="language")
        self._string(
            out, join_path(path, "value"), description.get("value"), required=True, max_length=limit("text")
        )
        media_path = join_path(path, "supportingMedia")
        for item_path, media in self._each_object(
            out, media_path, self._array(out, media_path, description.get("supportingMedia"))
        ):
            self._string(
                out, join_path(item_path, "type"), media.get("type"), required=True, max_length=limit("media_type")
            )
            self._boolean(out, join_path(item_path, "base64"), media.get("base64"))
            self._string(
                out,
                join_path(item_path, "value"),
                media.get("value"),
                required=True,
                max_length=limit("media_value"),
            )

    def _check_reference(self, out: IssueCollector, path: str, reference: dict) -> None:
        limit = self.registry.limit
        self._string(
            out, join_path(path, "url"), reference.get("url"), required=True, max_length=limit("uri"), fmt="uri"
        )
        self._string(out, join_path(path, "name"), reference.get("name"), max_length=limit("reference_name"))
        tags_path = join_path(path, "tags")
        for i, tag in enumerate(self._array(out, tags_path, reference.get("tags")) or []):
            self._choice(out, f"{tags_path}[{i}]", tag, self.registry.tags["reference"], "enum:referenceTag")

    def _check_problem_type(self, out: IssueCollector, path: str, problem: dict) -> None:
        limit = self.registry.limit
        descriptions_path = join_path(path, "descriptions")
        descriptions = self._array(
            out, descriptions_path, problem.get("descriptions"), required=True, min_items=1
        )
        for item_path, item in self._each_object(out, descriptions_path, descriptions):
            self._string(out, join_path(item_path, "lang"), item.get("lang"), fmt="language")
            self._string(
                out,
                join_path(item_path, "description"),
                item.get("description"),
                required=True,
                max_length=limit("text"),
            )
            self._string(out, join_path(item_path, "cweId"), item.get("cweId"), fmt="cwe_id")
            self._string(out, join_path(item_path, "type"), item.get("type"), max_length=limit("problem_type"))
            refs_path = join_path(item_path, "references")
            for ref_path, ref in self._each_object(
                out, refs_path, self._array(out, refs_path, item.get("references"))
            ):
                self._check_reference(out, ref_path, ref)

    def _check_affected(self, out: IssueCollector, path: str, entry: dict) -> None:
        limit = self.registry.limit
        vendor = self._string(out, join_path(path, "vendor"), entry.get("vendor"), max_length=limit("vendor"))
        product = self._string(out, join_path(path, "product"), entry.get("product"), max_length=limit("product"))
        collection = self._string(
            out,
            join_path(path, "collectionURL"),
            entry.get("collectionURL"),
            max_length=limit("uri"),
            fmt="uri",
        )
        package = self._string(
            out, join_path(path, "packageName"), entry.get("packageName"), max_length=limit("package_name")
        )
        if not ((vendor and product) or (collection and package)):
            out.add(
                path,
                "must name vendor and product, or collectionURL and packageName",
                "anyOf:productIdentity",
            )

        self._string(out, join_path(path, "repo"), entry.get("repo"), max_length=limit("uri"), fmt="uri")
        self._string(out, join_path(path, "defaultStatus"), entry.get("defaultStatus"), enum="status")
        self._strings(out, join_path(path, "cpes"), entry.get("cpes"), limit("cpe"))
        self._strings(out, join_path(path, "modules"), entry.get("modules"), limit("module"))
        self._strings(out, join_path(path, "programFiles"), entry.get("programFiles"), limit("program_file"))
        self._strings(out, join_path(path, "platforms"), entry.get("platforms"), limit("platform"))

        routines_path = join_path(path, "programRoutines")
        for item_path, routine in self._each_object(
            out, routines_path, self._array(out, routines_path, entry.get("programRoutines"))
        ):
            self._string(
                out, join_path(item_path, "name"), routine.get("name"), required=True, max_length=limit("program_routine")
            )

        versions_path = join_path(path, "versions")
        for item_path, version in self._each_object(
            out, versions_path, self._array(out, versions_path, entry.get("versions"))
        ):
            self._check_version(out, item_path, version)

    def _check_version(self, out: IssueCollector, path: str, version: dict) -> None:
        limit = self.registry.limit
        self._string(out, join_path(path, "version"), version.get("version"), required=True, max_length=limit("version"))
        self._string(out, join_path(path, "status"), version.get("status"), required=True, enum="status")
        self._string(out, join_path(path, "versionType"), version.get("versionType"), max_length=limit("version_type"))
        self._string(out, join_path(path, "lessThan"), version.get("lessThan"), max_length=limit("version"))
        self._string(
            out, join_path(path, "lessThanOrEqual"), version.get("lessThanOrEqual"), max_length=limit("version")
        )
        if version.get("lessThan") and version.get("lessThanOrEqual"):
            out.add(path, "lessThan and lessThanOrEqual are mutually exclusive", "oneOf:upperBound")

        changes_path = join_path(path, "changes")
        for item_path, change in self._each_object(
            out, changes_path, self._array(out, changes_path, version.get("changes"))
        ):
            self._string(out, join_path(item_path, "at"), change.get("at"), required=True, max_length=limit("version"))
            self._string(out, join_path(item_path, "status"), change.get("status"), required=True, enum="status")
