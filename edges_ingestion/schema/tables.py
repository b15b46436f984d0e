"""
SQLAlchemy Core tables for registered entities.

Entity tables are not ORM classes. Each qualified name gets one ``Table`` on
the shared metadata, holding the union of the columns declared by every
registered version of that entity. Columns are keyed by property name, so
bind parameters stay ASCII even when the stored column name is Japanese or
contains punctuation. When versions disagree about a property, the last
registered version decides its storage name and type.
"""

from __future__ import annotations

import re
from typing import Sequence
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Double,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    Time,
)
from sqlalchemy.types import TypeEngine

from edges_kernel.db.base import StringifiedValue, UUIDString
from edges_kernel.exceptions import SchemaDefinitionError
from edges_ingestion.domain.types import ColumnSpec, EntitySchema, SemanticType

_NUMERIC_ARGS = re.compile(r"\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)")


def _numeric_type(storage_type: str | None) -> Numeric:
    m = _NUMERIC_ARGS.search(storage_type or "")
    if m is None:
        return Numeric(asdecimal=True)
    precision = int(m.group(1))
    scale = int(m.group(2)) if m.group(2) is not None else 0
    return Numeric(precision, scale, asdecimal=True)


def column_type(spec: ColumnSpec) -> TypeEngine:
    """SQLAlchemy type for one column spec."""
    match spec.semantic_type:
        case SemanticType.TEXT:
            return String(spec.max_length) if spec.max_length else Text()
        case SemanticType.INT32:
            return Integer()
        case SemanticType.INT64:
            # SQLite only auto-increments INTEGER PRIMARY KEY
            return BigInteger().with_variant(Integer(), "sqlite")
        case SemanticType.DECIMAL:
            return _numeric_type(spec.storage_type)
        case SemanticType.DOUBLE:
            return Double()
        case SemanticType.BOOL:
            return Boolean()
        case SemanticType.DATETIME:
            return DateTime(timezone=False)
        case SemanticType.DATE:
            return Date()
        case SemanticType.TIME:
            return Time()
        case SemanticType.OTHER:
            if spec.python_type is UUID:
                return UUIDString()
            return StringifiedValue()


def _column(spec: ColumnSpec) -> Column:
    args: list = [column_type(spec)]
    if spec.references:
        args.append(ForeignKey(spec.references, ondelete="CASCADE"))
    return Column(
        spec.column_name,
        *args,
        key=spec.property_name,
        primary_key=spec.is_key,
        autoincrement=spec.identity if spec.is_key else False,
        nullable=False if spec.is_key else spec.nullable,
        index=spec.indexed or None,
    )


def merged_columns(schemas: Sequence[EntitySchema]) -> list[ColumnSpec]:
    """Union of columns across versions, in order of first appearance."""
    merged: dict[str, ColumnSpec] = {}
    for schema in schemas:
        for spec in schema.columns:
            merged[spec.property_name] = spec

    seen: dict[str, str] = {}
    for spec in merged.values():
        folded = spec.column_name.casefold()
        if folded in seen:
            raise SchemaDefinitionError(
                schemas[0].qualified_name,
                f"properties '{seen[folded]}' and '{spec.property_name}' "
                f"both store into column '{spec.column_name}'",
            )
        seen[folded] = spec.property_name
    return list(merged.values())


def entity_table(schemas: Sequence[EntitySchema], metadata: MetaData) -> Table:
    """
    Build (or return the already built) table for one qualified name.

    All ``schemas`` must share the same qualified name.
    """
    if not schemas:
        raise ValueError("entity_table requires at least one schema")
    first = schemas[0]
    existing = metadata.tables.get(first.qualified_name)
    if existing is not None:
        return existing

    return Table(
        first.name,
        metadata,
        *(_column(spec) for spec in merged_columns(schemas)),
        schema=first.schema,
    )
