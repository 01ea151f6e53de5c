"""Database models for cvetrack using SQLAlchemy.

Advisories are stored as whole canonical documents. The product catalog is
split into one row per array element so that every merge step can target a
single element through its unique match key.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship


def _utc_now() -> datetime:
    return datetime.now(UTC)


Base = declarative_base()

# Kinds stored in product_facts; each maps to a list field on the product.
FACT_KINDS = ("cpe", "module", "program_file", "platform", "program_routine")


class Advisory(Base):
    """A canonical advisory record keyed by its advisory identifier."""

    __tablename__ = "advisories"

    id = Column(Integer, primary_key=True)
    advisory_id = Column(String(32), nullable=False, unique=True, index=True)
    state = Column(String(16))
    serial = Column(Integer)
    date_updated = Column(String(40))
    document = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utc_now)
    updated_at = Column(DateTime(timezone=True), default=_utc_now, onupdate=_utc_now)


class Product(Base):
    """A catalog product identified by its (vendor, product) pair."""

    __tablename__ = "products"
    __table_args__ = (UniqueConstraint("vendor", "product", name="uq_products_vendor_product"),)

    id = Column(Integer, primary_key=True)
    vendor = Column(String(512), nullable=False, index=True)
    product = Column(String(2048), nullable=False, index=True)
    collection_url = Column(String(2048))
    package_name = Column(String(2048))
    repo = Column(String(2048))
    default_status = Column(String(16), default="unknown")
    revision = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utc_now)
    updated_at = Column(DateTime(timezone=True), default=_utc_now, onupdate=_utc_now)

    facts = relationship("ProductFact", cascade="all, delete-orphan", order_by="ProductFact.id")
    versions = relationship(
        "ProductVersion", cascade="all, delete-orphan", order_by="ProductVersion.id"
    )
    changes = relationship("VersionChange", cascade="all, delete-orphan", order_by="VersionChange.id")
    advisories = relationship(
        "ProductAdvisory", cascade="all, delete-orphan", order_by="ProductAdvisory.id"
    )


class ProductFact(Base):
    """One list-valued identity fact (cpe, module, file, platform or routine name)."""

    __tablename__ = "product_facts"
    __table_args__ = (
        UniqueConstraint("product_id", "kind", "value", name="uq_product_facts_value"),
    )

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    kind = Column(String(32), nullable=False)
    value = Column(String(4096), nullable=False)


class ProductVersion(Base):
    """A version range on a product, matched by its version string."""

    __tablename__ = "product_versions"
    __table_args__ = (
        UniqueConstraint("product_id", "version", name="uq_product_versions_version"),
    )

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    version = Column(String(1024), nullable=False)
    status = Column(String(16), nullable=False, default="unknown")
    version_type = Column(String(128))
    less_than = Column(String(1024))
    less_than_or_equal = Column(String(1024))


class VersionChange(Base):
    """A status change inside a version range, matched by its ``at`` marker."""

    __tablename__ = "version_changes"
    __table_args__ = (
        UniqueConstraint("product_id", "version", "at", name="uq_version_changes_at"),
    )

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    version = Column(String(1024), nullable=False)
    at = Column(String(1024), nullable=False)
    status = Column(String(16), nullable=False, default="unknown")


class ProductAdvisory(Base):
    """Back-reference from a product to an advisory that named it."""

    __tablename__ = "product_advisories"
    __table_args__ = (
        UniqueConstraint("product_id", "advisory_id", name="uq_product_advisories_advisory"),
    )

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    advisory_id = Column(String(32), nullable=False, index=True)
