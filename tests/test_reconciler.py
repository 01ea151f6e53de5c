"""Tests for the product reconciler and catalog views."""

from concurrent.futures import ThreadPoolExecutor

from sqlalchemy import select

from cvetrack.db.models import ProductFact, ProductVersion
from cvetrack.modules.catalog import ProductCatalog, ProductReconciler, entry_facts
from cvetrack.modules.records import normalize
from cvetrack.modules.records.models import VersionChange, VersionRange

from conftest import affected_entry, make_document


def _record(advisory_id, *entries):
    return normalize(make_document(advisory_id, affected=list(entries)))


class TestEntryFacts:
    """Tests for entry_facts."""

    def test_collects_every_kind(self, full_document) -> None:
        entry = normalize(full_document).affected_products[0]
        assert entry_facts(entry) == [
            ("cpe", "cpe:2.3:a:acme:widget:*:*:*:*:*:*:*:*"),
            ("module", "parser"),
            ("platform", "Linux"),
            ("platform", "Windows"),
            ("program_routine", "parse_header"),
        ]

    def test_no_facts(self, minimal_document) -> None:
        assert entry_facts(normalize(minimal_document).affected_products[0]) == []


class TestReconcile:
    """Tests for ProductReconciler.reconcile."""

    def test_full_entry(
        self, reconciler: ProductReconciler, catalog: ProductCatalog, full_document
    ) -> None:
        result = reconciler.reconcile(normalize(full_document))
        assert result.ok
        assert result.products == [("Acme", "Widget"), ("Acme", "Widget Pro")]

        view = catalog.get("Acme", "Widget")
        assert view.collection_url == "https://packages.acme.example"
        assert view.package_name == "acme-widget"
        assert view.repo == "https://git.acme.example/widget"
        assert view.default_status == "unaffected"
        assert view.cpes == ["cpe:2.3:a:acme:widget:*:*:*:*:*:*:*:*"]
        assert view.platforms == ["Linux", "Windows"]
        assert view.modules == ["parser"]
        assert view.program_routines == ["parse_header"]
        assert view.advisories == ["CVE-2023-4567"]
        assert view.revision == 1

        version = view.version("2.0")
        assert version.status == "affected"
        assert version.version_type == "semver"
        assert version.less_than == "2.4.1"
        assert version.changes == [VersionChange(at="2.3.7", status="unaffected")]

    def test_secondary_container_entries(
        self, reconciler: ProductReconciler, catalog: ProductCatalog, full_document
    ) -> None:
        reconciler.reconcile(normalize(full_document))
        view = catalog.get("Acme", "Widget Pro")
        assert view.version("5.0").status == "affected"
        assert view.advisories == ["CVE-2023-4567"]

    def test_idempotent(
        self, reconciler: ProductReconciler, catalog: ProductCatalog, full_document
    ) -> None:
        record = normalize(full_document)
        reconciler.reconcile(record)
        first = catalog.get("Acme", "Widget")
        reconciler.reconcile(record)
        second = catalog.get("Acme", "Widget")

        assert second.cpes == first.cpes
        assert second.platforms == first.platforms
        assert second.versions == first.versions
        assert second.advisories == first.advisories
        assert second.revision == first.revision + 1

    def test_versions_accumulate(self, reconciler: ProductReconciler, catalog: ProductCatalog) -> None:
        reconciler.reconcile(
            _record("CVE-2024-0001", affected_entry(versions=[{"version": "1.0", "status": "affected"}]))
        )
        reconciler.reconcile(
            _record(
                "CVE-2024-0002",
                affected_entry(
                    versions=[{"version": "2.0", "status": "affected"}], platforms=["Linux"]
                ),
            )
        )
        view = catalog.get("Acme", "Widget")
        assert [v.version for v in view.versions] == ["1.0", "2.0"]
        assert view.platforms == ["Linux"]
        assert view.advisories == ["CVE-2024-0001", "CVE-2024-0002"]

    def test_same_version_updates_supplied_fields_only(
        self, reconciler: ProductReconciler, catalog: ProductCatalog
    ) -> None:
        reconciler.reconcile(
            _record(
                "CVE-2024-0001",
                affected_entry(
                    versions=[{"version": "1.0", "status": "affected", "lessThan": "1.5"}]
                ),
            )
        )
        reconciler.reconcile(
            _record(
                "CVE-2024-0002",
                affected_entry(versions=[{"version": "1.0", "status": "unaffected"}]),
            )
        )
        view = catalog.get("Acme", "Widget")
        assert len(view.versions) == 1
        assert view.version("1.0").status == "unaffected"
        assert view.version("1.0").less_than == "1.5"

    def test_change_status_overwritten(
        self, reconciler: ProductReconciler, catalog: ProductCatalog
    ) -> None:
        for advisory_id, status in (("CVE-2024-0001", "affected"), ("CVE-2024-0002", "unaffected")):
            versions = [
                {
                    "version": "1.0",
                    "status": "affected",
                    "lessThan": "2.0",
                    "changes": [{"at": "1.4", "status": status}],
                }
            ]
            reconciler.reconcile(_record(advisory_id, affected_entry(versions=versions)))
        changes = catalog.get("Acme", "Widget").version("1.0").changes
        assert changes == [VersionChange(at="1.4", status="unaffected")]

    def test_scalars_overwritten_only_when_supplied(
        self, reconciler: ProductReconciler, catalog: ProductCatalog
    ) -> None:
        reconciler.reconcile(_record("CVE-2024-0001", affected_entry(repo="https://git.example/a")))
        reconciler.reconcile(_record("CVE-2024-0002", affected_entry()))
        assert catalog.get("Acme", "Widget").repo == "https://git.example/a"

        reconciler.reconcile(_record("CVE-2024-0003", affected_entry(repo="https://git.example/b")))
        assert catalog.get("Acme", "Widget").repo == "https://git.example/b"

    def test_facts_not_duplicated(self, reconciler: ProductReconciler, catalog: ProductCatalog) -> None:
        reconciler.reconcile(
            _record("CVE-2024-0001", affected_entry(platforms=["Linux"], modules=["core"]))
        )
        reconciler.reconcile(
            _record("CVE-2024-0002", affected_entry(platforms=["Linux", "macOS"], modules=["core"]))
        )
        view = catalog.get("Acme", "Widget")
        assert view.platforms == ["Linux", "macOS"]
        assert view.modules == ["core"]

    def test_missing_vendor_skipped_with_warning(
        self, reconciler: ProductReconciler, catalog: ProductCatalog
    ) -> None:
        result = reconciler.reconcile(
            _record("CVE-2024-0001", {"product": "Orphan"}, affected_entry())
        )
        assert result.ok
        assert result.products == [("Acme", "Widget")]
        assert result.warnings == ["containers.cna.affected[0]: missing vendor or product, entry skipped"]
        assert catalog.count() == 1

    def test_placeholder_entry_skipped(
        self, reconciler: ProductReconciler, catalog: ProductCatalog
    ) -> None:
        result = reconciler.reconcile(normalize(make_document(affected=[])))
        assert result.products == []
        assert result.warnings == ["containers.cna.affected: no affected products listed"]
        assert catalog.count() == 0

    def test_unspecified_product_reconciled(
        self, reconciler: ProductReconciler, catalog: ProductCatalog
    ) -> None:
        entry = affected_entry(
            vendor="unspecified",
            product="unspecified",
            versions=[{"version": "0.9", "status": "affected"}],
        )
        result = reconciler.reconcile(_record("CVE-2024-0001", entry))
        assert result.warnings == []
        assert result.products == [("unspecified", "unspecified")]
        assert catalog.get("unspecified", "unspecified").version("0.9").status == "affected"

    def test_two_advisories_same_version(
        self, reconciler: ProductReconciler, catalog: ProductCatalog
    ) -> None:
        reconciler.reconcile(
            _record("CVE-2024-0001", affected_entry(versions=[{"version": "1.0", "status": "affected"}]))
        )
        reconciler.reconcile(
            _record(
                "CVE-2024-0002",
                affected_entry(
                    versions=[
                        {
                            "version": "1.0",
                            "status": "affected",
                            "changes": [{"at": "1.0.5", "status": "unaffected"}],
                        }
                    ]
                ),
            )
        )
        view = catalog.get("Acme", "Widget")
        assert view.advisories == ["CVE-2024-0001", "CVE-2024-0002"]
        assert view.versions == [
            VersionRange(
                version="1.0",
                status="affected",
                changes=[VersionChange(at="1.0.5", status="unaffected")],
            )
        ]

    def test_record_without_id(self, reconciler: ProductReconciler, catalog: ProductCatalog) -> None:
        result = reconciler.reconcile(normalize({"containers": {"cna": {"affected": [affected_entry()]}}}))
        assert result.products == []
        assert result.warnings == ["advisory has no identifier; products not reconciled"]
        assert catalog.count() == 0

    def test_failure_isolated_per_product(
        self, reconciler: ProductReconciler, catalog: ProductCatalog, engine
    ) -> None:
        ProductFact.__table__.drop(engine)
        result = reconciler.reconcile(
            _record(
                "CVE-2024-0001",
                affected_entry(product="Broken", platforms=["Linux"]),
                affected_entry(product="Fine", versions=[{"version": "1.0", "status": "affected"}]),
            )
        )
        assert not result.ok
        assert len(result.errors) == 1
        assert result.errors[0].target == "product Acme/Broken"
        assert result.products == [("Acme", "Fine")]
        with engine.connect() as conn:
            versions = conn.execute(select(ProductVersion.version, ProductVersion.status)).all()
        assert [tuple(row) for row in versions] == [("1.0", "affected")]

    def test_concurrent_reconciliation(
        self, reconciler: ProductReconciler, catalog: ProductCatalog
    ) -> None:
        records = [
            _record(
                f"CVE-2024-{1000 + i}",
                affected_entry(
                    product="Gadget",
                    versions=[{"version": f"{i}.0", "status": "affected"}],
                    platforms=[f"platform-{i % 2}"],
                ),
            )
            for i in range(8)
        ]
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(reconciler.reconcile, records))

        assert all(result.ok for result in results)
        assert catalog.count() == 1
        view = catalog.get("Acme", "Gadget")
        assert sorted(v.version for v in view.versions) == [f"{i}.0" for i in range(8)]
        assert sorted(view.platforms) == ["platform-0", "platform-1"]
        assert sorted(view.advisories) == [f"CVE-2024-{1000 + i}" for i in range(8)]
        assert view.revision == 8


class TestProductCatalog:
    """Tests for ProductCatalog queries."""

    def test_unknown_product(self, catalog: ProductCatalog) -> None:
        assert catalog.get("Nobody", "Nothing") is None

    def test_list_products(self, reconciler: ProductReconciler, catalog: ProductCatalog) -> None:
        reconciler.reconcile(
            _record(
                "CVE-2024-0001",
                affected_entry(product="Zeta"),
                affected_entry(vendor="Beta", product="Alpha"),
                affected_entry(product="Alpha"),
            )
        )
        names = [(p.vendor, p.product) for p in catalog.list_products()]
        assert names == [("Acme", "Alpha"), ("Acme", "Zeta"), ("Beta", "Alpha")]
        assert [p.product for p in catalog.list_products(vendor="Acme", limit=1)] == ["Alpha"]
        assert catalog.count() == 3

    def test_default_status_unknown_when_not_supplied(
        self, reconciler: ProductReconciler, catalog: ProductCatalog
    ) -> None:
        reconciler.reconcile(_record("CVE-2024-0001", affected_entry()))
        assert catalog.get("Acme", "Widget").default_status == "unknown"
