"""Record store adapter: advisory documents keyed by advisory identifier."""

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from cvetrack.config import UPSERT_POLICIES
from cvetrack.db.models import Advisory
from cvetrack.db.statements import upsert_insert
from cvetrack.errors import PersistenceError

from .merge import TOMBSTONE, deep_merge, strip_tombstones
from .models import AdvisoryRecord

logger = logging.getLogger(__name__)


def tombstone_overlay(paths) -> dict[str, Any]:
    """Build an overlay that deletes each dotted path, e.g. ``("adp", "cna.title")``."""
    overlay: dict[str, Any] = {}
    for path in paths:
        node = overlay
        *parents, leaf = path.split(".")
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = TOMBSTONE
    return overlay


class AdvisoryStore:
    """Persist advisory records with a merge or replace policy.

    ``merge`` keeps stored keys the incoming document omits; ``replace``
    overwrites the whole document. Concurrent upserts of one advisory are
    last-write-wins.
    """

    def __init__(self, engine: Engine, policy: str = "merge"):
        if policy not in UPSERT_POLICIES:
            raise ValueError(f"Unknown upsert policy {policy!r}; expected one of {UPSERT_POLICIES}")
        self.engine = engine
        self.policy = policy

    def upsert(self, record: AdvisoryRecord, remove=()) -> bool:
        """Insert or update ``record``. Returns True when the advisory was new.

        ``remove`` lists dotted paths to delete from the stored document.
        """
        if not record.advisory_id:
            raise ValueError("record has no advisory identifier")
        document = record.to_document()
        if remove:
            document = _combine(document, tombstone_overlay(remove))
        return self.upsert_document(record.advisory_id, document)

    def upsert_document(self, advisory_id: str, document: dict[str, Any]) -> bool:
        """Store a canonical document, which may carry ``TOMBSTONE`` markers."""
        try:
            with self.engine.begin() as conn:
                prior = conn.execute(
                    select(Advisory.document).where(Advisory.advisory_id == advisory_id)
                ).scalar_one_or_none()

                if prior is None or self.policy == "replace":
                    stored = strip_tombstones(document)
                else:
                    stored = deep_merge(prior, document)

                metadata = stored.get("metadata", {})
                values = {
                    "advisory_id": advisory_id,
                    "state": metadata.get("state"),
                    "serial": metadata.get("serial"),
                    "date_updated": metadata.get("date_updated"),
                    "document": stored,
                }
                stmt = upsert_insert(conn, Advisory.__table__).values(
                    **values, created_at=datetime.now(UTC), updated_at=datetime.now(UTC)
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["advisory_id"],
                    set_={**values, "updated_at": datetime.now(UTC)},
                )
                conn.execute(stmt)
        except SQLAlchemyError as e:
            logger.warning("Upsert of %s failed", advisory_id, exc_info=True)
            raise PersistenceError(advisory_id, e) from e

        logger.debug("Stored %s (%s, policy=%s)", advisory_id, "new" if prior is None else "update", self.policy)
        return prior is None

    def get_document(self, advisory_id: str) -> dict[str, Any] | None:
        with self.engine.connect() as conn:
            return conn.execute(
                select(Advisory.document).where(Advisory.advisory_id == advisory_id)
            ).scalar_one_or_none()

    def get(self, advisory_id: str) -> AdvisoryRecord | None:
        """Return the stored record, or None when the advisory is unknown."""
        document = self.get_document(advisory_id)
        if document is None:
            return None
        return AdvisoryRecord.from_document(document)

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(Advisory)).scalar_one()

    def list_ids(self, limit: int | None = None) -> list[str]:
        stmt = select(Advisory.advisory_id).order_by(Advisory.advisory_id)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.engine.connect() as conn:
            return list(conn.execute(stmt).scalars())


def _combine(document: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Lay tombstones from ``overlay`` into ``document`` without merging them away."""
    combined = dict(document)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(combined.get(key), dict):
            combined[key] = _combine(combined[key], value)
        else:
            combined[key] = value
    return combined
