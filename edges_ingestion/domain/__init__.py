"""
edges_ingestion.domain -- Pure types and value objects for sheet ingestion.

ZERO I/O. Imports only from the standard library.
"""

from edges_ingestion.domain.types import (
    NULL,
    ColumnSpec,
    ConversionResult,
    DetectedEntity,
    EntitySchema,
    NormalizedColumn,
    NormalizedTable,
    SemanticType,
    SourceTable,
    WriteResult,
    default_value,
)

__all__ = [
    "NULL",
    "ColumnSpec",
    "ConversionResult",
    "DetectedEntity",
    "EntitySchema",
    "NormalizedColumn",
    "NormalizedTable",
    "SemanticType",
    "SourceTable",
    "WriteResult",
    "default_value",
]
