"""Tabular statement ingestion: delimited uploads to validated candidates."""

from .headers import infer_mapping, looks_like_header_row
from .ingestor import IngestOptions, IngestResult, IngestSession, ingest
from .normalizers import normalize_amount, normalize_date
from .types import ColumnMapping, ColumnRole, ParsedTransactionCandidate

__all__ = [
    "ColumnMapping",
    "ColumnRole",
    "IngestOptions",
    "IngestResult",
    "IngestSession",
    "ParsedTransactionCandidate",
    "infer_mapping",
    "ingest",
    "looks_like_header_row",
    "normalize_amount",
    "normalize_date",
]
