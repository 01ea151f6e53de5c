"""Batch ingestion: validate, normalize, store and reconcile each document.

Failures are isolated per document. Only a store that is unreachable at
startup stops a run, and that happens before the pipeline is built.
"""

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy.engine import Engine

from cvetrack.errors import MalformedInputError, PersistenceError
from cvetrack.modules.catalog import ProductReconciler
from cvetrack.modules.records import AdvisoryStore, normalize
from cvetrack.modules.validation import SchemaValidator

from .parsing import load_document, parse_document

logger = logging.getLogger(__name__)

# A pipeline item: (source label, raw payload or path to read)
Item = tuple[str, str | bytes | Path]


@dataclass
class IngestResult:
    """Outcome for one input document."""

    source: str
    advisory_id: str | None = None
    valid: bool = False
    validation_errors: int = 0
    created: bool = False
    products: int = 0
    warnings: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class IngestSummary:
    results: list[IngestResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def invalid(self) -> int:
        return sum(1 for r in self.results if r.ok and not r.valid)

    @property
    def created(self) -> int:
        return sum(1 for r in self.results if r.created)

    @property
    def products(self) -> int:
        return sum(r.products for r in self.results)


class IngestPipeline:
    """Run documents through validation, normalization, storage and reconciliation."""

    def __init__(
        self,
        engine: Engine,
        validator: SchemaValidator | None = None,
        policy: str = "merge",
        workers: int = 1,
    ):
        self.validator = validator or SchemaValidator()
        self.store = AdvisoryStore(engine, policy=policy)
        self.reconciler = ProductReconciler(engine)
        self.workers = max(1, workers)

    def process_document(self, document: dict[str, Any], source: str) -> IngestResult:
        """Ingest an already-parsed document.

        Raises MalformedInputError when the document has no advisory identifier
        and PersistenceError when the advisory cannot be stored.
        """
        report = self.validator.validate(document)
        record = normalize(document, report)
        result = IngestResult(
            source=source,
            advisory_id=record.advisory_id,
            valid=report.valid,
            validation_errors=len(report.errors),
        )
        if not report.valid:
            logger.info(
                "%s has %d validation error(s); ingesting anyway", source, len(report.errors)
            )
        if not record.advisory_id:
            raise MalformedInputError(source, "missing cveMetadata.cveId")

        result.created = self.store.upsert(record)
        reconciled = self.reconciler.reconcile(record)
        result.products = len(reconciled.products)
        result.warnings.extend(reconciled.warnings)
        if reconciled.errors:
            result.warnings.extend(str(e) for e in reconciled.errors)
        return result

    def process(self, source: str, payload: str | bytes | Path) -> IngestResult:
        """Ingest one raw payload, turning per-item failures into a failed result."""
        try:
            if isinstance(payload, Path):
                document = load_document(payload)
            else:
                document = parse_document(payload, source)
            return self.process_document(document, source)
        except (MalformedInputError, PersistenceError) as e:
            logger.warning("Skipping %s: %s", source, e)
            return IngestResult(source=source, error=str(e))
        except Exception as e:
            logger.warning("Unexpected failure on %s", source, exc_info=True)
            return IngestResult(source=source, error=f"{type(e).__name__}: {e}")

    def run(self, items: Iterable[Item]) -> IngestSummary:
        """Ingest every item, sequentially or on a worker pool."""
        items = list(items)
        if self.workers == 1 or len(items) <= 1:
            return IngestSummary(results=[self.process(source, payload) for source, payload in items])

        results: list[IngestResult | None] = [None] * len(items)
        with ThreadPoolExecutor(max_workers=min(self.workers, len(items))) as pool:
            futures = {
                pool.submit(self.process, source, payload): index
                for index, (source, payload) in enumerate(items)
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    results[index] = future.result()
                except Exception as exc:
                    logger.warning("Worker failed on %s", items[index][0], exc_info=True)
                    results[index] = IngestResult(source=items[index][0], error=str(exc))
        return IngestSummary(results=results)
