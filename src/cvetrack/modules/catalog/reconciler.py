"""Product reconciler.

Merges affected-product entries from advisories into the product catalog.
Every step is one ``INSERT ... ON CONFLICT`` (or one targeted ``UPDATE``)
addressed by the row's match key, in its own transaction. No step reads a
product aggregate and writes it back, so concurrent reconciliations of the
same product only ever add rows or touch the row they name.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from cvetrack.db.models import (
    Product,
    ProductAdvisory,
    ProductFact,
    ProductVersion,
    VersionChange as VersionChangeRow,
)
from cvetrack.db.statements import upsert_insert
from cvetrack.errors import PersistenceError
from cvetrack.modules.records import AdvisoryRecord, AffectedProduct
from cvetrack.modules.records.models import VersionChange, VersionRange

logger = logging.getLogger(__name__)

_SCALAR_FIELDS = ("collection_url", "package_name", "repo", "default_status")
_RANGE_FIELDS = ("status", "version_type", "less_than", "less_than_or_equal")


@dataclass
class ReconcileResult:
    """Outcome of reconciling one advisory."""

    advisory_id: str | None
    products: list[tuple[str, str]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[PersistenceError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _affected_entries(record: AdvisoryRecord):
    if "cna.affected" not in record.defaults_applied:
        for i, entry in enumerate(record.cna.affected or []):
            yield f"containers.cna.affected[{i}]", entry
    for c, container in enumerate(record.adp or []):
        for i, entry in enumerate(container.affected or []):
            yield f"containers.adp[{c}].affected[{i}]", entry


def entry_facts(entry: AffectedProduct) -> list[tuple[str, str]]:
    """(kind, value) pairs for every list-valued identity fact of ``entry``."""
    facts = []
    for kind, values in (
        ("cpe", entry.cpes),
        ("module", entry.modules),
        ("program_file", entry.program_files),
        ("platform", entry.platforms),
    ):
        facts.extend((kind, value) for value in values or [])
    facts.extend(("program_routine", routine.name) for routine in entry.program_routines or [])
    return facts


class ProductReconciler:
    """Merge advisory product facts into the catalog with atomic, keyed statements."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def reconcile(self, record: AdvisoryRecord) -> ReconcileResult:
        """Reconcile every affected entry of ``record``.

        Entries without a vendor or product are skipped with a warning, as is
        the placeholder entry of an advisory that lists no products. A
        persistence failure on one product is recorded and the remaining
        products are still processed.
        """
        result = ReconcileResult(advisory_id=record.advisory_id)
        if not record.advisory_id:
            result.warnings.append("advisory has no identifier; products not reconciled")
            logger.warning("Skipping reconciliation of an advisory without identifier")
            return result

        if "cna.affected" in record.defaults_applied:
            message = "containers.cna.affected: no affected products listed"
            result.warnings.append(message)
            logger.warning("%s: %s", record.advisory_id, message)
        for path, entry in _affected_entries(record):
            if not entry.vendor or not entry.product:
                message = f"{path}: missing vendor or product, entry skipped"
                result.warnings.append(message)
                logger.warning("%s: %s", record.advisory_id, message)
                continue
            try:
                self.reconcile_entry(entry, record.advisory_id)
            except PersistenceError as e:
                logger.warning("%s: %s", record.advisory_id, e)
                result.errors.append(e)
                continue
            result.products.append((entry.vendor, entry.product))
        return result

    def reconcile_entry(self, entry: AffectedProduct, advisory_id: str) -> int:
        """Merge one affected entry into its product. Returns the product id."""
        target = f"product {entry.vendor}/{entry.product}"
        try:
            product_id = self._ensure_product(entry)
            for kind, value in entry_facts(entry):
                self._add_fact(product_id, kind, value)
            for version in entry.versions or []:
                self._merge_version(product_id, version)
                for change in version.changes or []:
                    self._merge_change(product_id, version.version, change)
            self._add_advisory(product_id, advisory_id)
            self._bump_revision(product_id)
        except SQLAlchemyError as e:
            raise PersistenceError(target, e) from e
        return product_id

    def _ensure_product(self, entry: AffectedProduct) -> int:
        """Insert the product if absent; overwrite only the non-empty incoming scalars."""
        now = datetime.now(UTC)
        scalars = {name: getattr(entry, name) for name in _SCALAR_FIELDS if getattr(entry, name)}
        with self.engine.begin() as conn:
            stmt = upsert_insert(conn, Product.__table__).values(
                vendor=entry.vendor,
                product=entry.product,
                revision=0,
                created_at=now,
                updated_at=now,
                **scalars,
            )
            if scalars:
                stmt = stmt.on_conflict_do_update(
                    index_elements=["vendor", "product"],
                    set_={**scalars, "updated_at": now},
                )
            else:
                stmt = stmt.on_conflict_do_nothing(index_elements=["vendor", "product"])
            conn.execute(stmt)
            return conn.execute(
                select(Product.id).where(
                    Product.vendor == entry.vendor, Product.product == entry.product
                )
            ).scalar_one()

    def _add_fact(self, product_id: int, kind: str, value: str) -> None:
        with self.engine.begin() as conn:
            stmt = upsert_insert(conn, ProductFact.__table__).values(
                product_id=product_id, kind=kind, value=value
            )
            conn.execute(
                stmt.on_conflict_do_nothing(index_elements=["product_id", "kind", "value"])
            )

    def _merge_version(self, product_id: int, version: VersionRange) -> None:
        """Append the range, or update only the fields the incoming range supplies."""
        supplied = {name: getattr(version, name) for name in _RANGE_FIELDS if getattr(version, name)}
        with self.engine.begin() as conn:
            stmt = upsert_insert(conn, ProductVersion.__table__).values(
                product_id=product_id, version=version.version, **supplied
            )
            if supplied:
                stmt = stmt.on_conflict_do_update(
                    index_elements=["product_id", "version"], set_=supplied
                )
            else:
                stmt = stmt.on_conflict_do_nothing(index_elements=["product_id", "version"])
            conn.execute(stmt)

    def _merge_change(self, product_id: int, version: str, change: VersionChange) -> None:
        with self.engine.begin() as conn:
            stmt = upsert_insert(conn, VersionChangeRow.__table__).values(
                product_id=product_id, version=version, at=change.at, status=change.status
            )
            conn.execute(
                stmt.on_conflict_do_update(
                    index_elements=["product_id", "version", "at"],
                    set_={"status": change.status},
                )
            )

    def _add_advisory(self, product_id: int, advisory_id: str) -> None:
        with self.engine.begin() as conn:
            stmt = upsert_insert(conn, ProductAdvisory.__table__).values(
                product_id=product_id, advisory_id=advisory_id
            )
            conn.execute(
                stmt.on_conflict_do_nothing(index_elements=["product_id", "advisory_id"])
            )

    def _bump_revision(self, product_id: int) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(revision=Product.revision + 1, updated_at=datetime.now(UTC))
            )
