"""Strict schema detection."""

from edges_ingestion.detection.schema_detector import (
    DEFAULT_IGNORED_COLUMNS,
    SchemaDetector,
    header_set,
    repeated_headers,
)

__all__ = ["DEFAULT_IGNORED_COLUMNS", "SchemaDetector", "header_set", "repeated_headers"]
