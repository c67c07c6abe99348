"""Project-wide custom exceptions."""

from __future__ import annotations


class FinIngestError(Exception):
    """Base exception for the statement ingestion suite."""


class ConfigurationError(FinIngestError):
    """Raised when configuration loading or validation fails."""


class IngestError(FinIngestError):
    """Raised when an upload cannot be ingested as a whole."""


class MalformedInputError(IngestError):
    """Raised when an upload cannot be decoded or split into rows."""


class MappingError(IngestError):
    """Raised when a column mapping is missing a required role."""


class AccountSelectionError(IngestError):
    """Raised when no usable target account was selected for a commit."""


class ExtractionError(FinIngestError):
    """Raised when statement text cannot be loaded from a document."""


class DatabaseError(FinIngestError):
    """Raised for database-related issues."""
