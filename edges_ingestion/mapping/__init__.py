"""Mapping: sheet header to property names and pure cell coercion."""

from edges_ingestion.mapping.coercion import (
    CoercionResult,
    coerce_value,
    parse_date,
    parse_datetime,
    parse_time,
)
from edges_ingestion.mapping.column_mapper import ColumnNameMapper, validate_column_name

__all__ = [
    "CoercionResult",
    "ColumnNameMapper",
    "coerce_value",
    "parse_date",
    "parse_datetime",
    "parse_time",
    "validate_column_name",
]
