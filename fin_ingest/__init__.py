"""Statement ingestion toolkit: CSV/text parsing and ledger reconciliation."""

__all__ = ["__version__"]

__version__ = "0.1.0"
