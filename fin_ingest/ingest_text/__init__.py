"""Statement-text ingestion: line patterns over extracted document text."""
