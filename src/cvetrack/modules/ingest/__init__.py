"""Advisory ingestion: parsing, sources and the batch pipeline."""

from .parsing import load_document, parse_document
from .pipeline import IngestPipeline, IngestResult, IngestSummary
from .sources import RemoteSource, advisory_path, iter_json_files

__all__ = [
    "IngestPipeline",
    "IngestResult",
    "IngestSummary",
    "RemoteSource",
    "advisory_path",
    "iter_json_files",
    "load_document",
    "parse_document",
]
