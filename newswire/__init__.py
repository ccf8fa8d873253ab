"""Scheduled news ingestion: fetch, enrich, deduplicate, persist and republish."""

__version__ = "0.1.0"
