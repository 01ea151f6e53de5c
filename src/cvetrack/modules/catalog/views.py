"""Read-side views over the product catalog."""

from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, selectinload

from cvetrack.db.models import Product
from cvetrack.modules.records.models import VersionChange, VersionRange


@dataclass
class ProductView:
    """A catalog product with its accumulated facts, in insertion order."""

    vendor: str
    product: str
    collection_url: str | None = None
    package_name: str | None = None
    repo: str | None = None
    default_status: str | None = None
    revision: int = 0
    cpes: list[str] = field(default_factory=list)
    modules: list[str] = field(default_factory=list)
    program_files: list[str] = field(default_factory=list)
    platforms: list[str] = field(default_factory=list)
    program_routines: list[str] = field(default_factory=list)
    versions: list[VersionRange] = field(default_factory=list)
    advisories: list[str] = field(default_factory=list)

    def version(self, key: str) -> VersionRange | None:
        for item in self.versions:
            if item.version == key:
                return item
        return None


_FACT_ATTRS = {
    "cpe": "cpes",
    "module": "modules",
    "program_file": "program_files",
    "platform": "platforms",
    "program_routine": "program_routines",
}


def _to_view(row: Product) -> ProductView:
    view = ProductView(
        vendor=row.vendor,
        product=row.product,
        collection_url=row.collection_url,
        package_name=row.package_name,
        repo=row.repo,
        default_status=row.default_status,
        revision=row.revision,
    )
    for fact in row.facts:
        getattr(view, _FACT_ATTRS[fact.kind]).append(fact.value)

    changes: dict[str, list[VersionChange]] = {}
    for change in row.changes:
        changes.setdefault(change.version, []).append(
            VersionChange(at=change.at, status=change.status)
        )
    view.versions = [
        VersionRange(
            version=v.version,
            status=v.status,
            version_type=v.version_type,
            less_than=v.less_than,
            less_than_or_equal=v.less_than_or_equal,
            changes=changes.get(v.version, []),
        )
        for v in row.versions
    ]
    view.advisories = [link.advisory_id for link in row.advisories]
    return view


class ProductCatalog:
    """Query products by their (vendor, product) identity."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _query(self):
        return select(Product).options(
            selectinload(Product.facts),
            selectinload(Product.versions),
            selectinload(Product.changes),
            selectinload(Product.advisories),
        )

    def get(self, vendor: str, product: str) -> ProductView | None:
        with Session(self.engine) as session:
            row = session.scalars(
                self._query().where(Product.vendor == vendor, Product.product == product)
            ).one_or_none()
            return _to_view(row) if row is not None else None

    def list_products(self, vendor: str | None = None, limit: int | None = None) -> list[ProductView]:
        stmt = self._query().order_by(Product.vendor, Product.product)
        if vendor is not None:
            stmt = stmt.where(Product.vendor == vendor)
        if limit is not None:
            stmt = stmt.limit(limit)
        with Session(self.engine) as session:
            return [_to_view(row) for row in session.scalars(stmt)]

    def count(self) -> int:
        with Session(self.engine) as session:
            return session.scalar(select(func.count()).select_from(Product))
