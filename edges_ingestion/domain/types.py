"""
edges_ingestion.domain.types -- Pure frozen dataclasses for sheet ingestion.

ZERO I/O. Imports only from the standard library.

Types:
    SemanticType      closed set of supported column value types
    ColumnSpec        one declared column of a target entity
    EntitySchema      one target entity (qualified table + ordered columns)
    SourceTable       untyped table as produced by a workbook parser
    NormalizedColumn  typed column of a normalized table
    NormalizedTable   fully typed rows ready for bulk load
    DetectedEntity    result of strict schema detection
    ConversionResult  normalized tables of one dataset
    WriteResult       processing record id and row counts of a committed write
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

# Explicit-null marker for cells. Whitespace-only text is treated the same way.
NULL = None


# =============================================================================
# Semantic types
# =============================================================================


class SemanticType(str, Enum):
    """Supported column value types."""

    TEXT = "text"
    INT32 = "int32"
    INT64 = "int64"
    DECIMAL = "decimal"
    DOUBLE = "double"
    BOOL = "bool"
    DATETIME = "datetime"
    DATE = "date"
    TIME = "time"
    OTHER = "other"

    @property
    def is_reference(self) -> bool:
        """Reference-like types are nullable regardless of the required flag."""
        return self in (SemanticType.TEXT, SemanticType.OTHER)

    @property
    def python_type(self) -> type | None:
        return _PYTHON_TYPES.get(self)

    @classmethod
    def from_storage_type(cls, storage_type: str) -> SemanticType:
        """Derive the tag from a PostgreSQL column type such as ``numeric(12,0)``."""
        s = storage_type.strip().lower()
        base = re.sub(r"\(.*\)", "", s).strip()
        if base in ("integer", "int", "int4", "smallint", "int2", "serial"):
            return cls.INT32
        if base in ("bigint", "int8", "bigserial"):
            return cls.INT64
        if base in ("numeric", "decimal", "money"):
            return cls.DECIMAL
        if base in ("double precision", "float8", "float", "real", "float4"):
            return cls.DOUBLE
        if base in ("boolean", "bool"):
            return cls.BOOL
        if base.startswith("timestamp"):
            return cls.DATETIME
        if base == "date":
            return cls.DATE
        if base.startswith("time"):
            return cls.TIME
        if base in ("text", "varchar", "character varying", "char", "character", "citext"):
            return cls.TEXT
        return cls.OTHER


_PYTHON_TYPES: dict[SemanticType, type] = {
    SemanticType.TEXT: str,
    SemanticType.INT32: int,
    SemanticType.INT64: int,
    SemanticType.DECIMAL: Decimal,
    SemanticType.DOUBLE: float,
    SemanticType.BOOL: bool,
    SemanticType.DATETIME: datetime,
    SemanticType.DATE: date,
    SemanticType.TIME: time,
}


def default_value(semantic_type: SemanticType, python_type: type | None = None) -> Any:
    """
    Value substituted for a null cell in a non-nullable column.

    OTHER columns default to ``python_type()`` when the declared type can be
    constructed without arguments, otherwise to None.
    """
    match semantic_type:
        case SemanticType.TEXT:
            return ""
        case SemanticType.INT32 | SemanticType.INT64:
            return 0
        case SemanticType.DECIMAL:
            return Decimal("0")
        case SemanticType.DOUBLE:
            return 0.0
        case SemanticType.BOOL:
            return False
        case SemanticType.DATETIME:
            return datetime.min
        case SemanticType.DATE:
            return date.min
        case SemanticType.TIME:
            return time.min
        case SemanticType.OTHER:
            if python_type is None:
                return None
            try:
                return python_type()
            except TypeError:
                return None


# =============================================================================
# Schema description
# =============================================================================


@dataclass(frozen=True)
class ColumnSpec:
    """
    One declared column of a target entity.

    ``column_name`` is both the storage column name and the header expected in
    the source sheet. ``required`` marks a non-optional property: required
    value-typed columns are non-nullable and receive the type's default for
    null cells.
    """

    property_name: str
    column_name: str
    semantic_type: SemanticType
    storage_type: str | None = None
    required: bool = False
    is_key: bool = False
    identity: bool = False
    max_length: int | None = None
    indexed: bool = False
    python_type: type | None = None  # OTHER only
    references: str | None = None  # "schema.table.column" for bookkeeping foreign keys

    @property
    def nullable(self) -> bool:
        return not self.required or self.semantic_type.is_reference


@dataclass(frozen=True)
class EntitySchema:
    """One target entity: qualified table name plus ordered column specs."""

    name: str
    columns: tuple[ColumnSpec, ...]
    schema: str | None = None
    sheet_name: str | None = None
    version: str = "1"

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}" if self.schema else self.name

    @property
    def property_names(self) -> tuple[str, ...]:
        return tuple(c.property_name for c in self.columns)

    def column(self, property_name: str) -> ColumnSpec | None:
        """Column spec by property name (exact match after trim)."""
        wanted = (property_name or "").strip()
        for c in self.columns:
            if c.property_name == wanted:
                return c
        return None

    def column_by_name(self, column_name: str) -> ColumnSpec | None:
        """Column spec by storage column name (case-insensitive)."""
        wanted = (column_name or "").strip().casefold()
        for c in self.columns:
            if c.column_name.casefold() == wanted:
                return c
        return None

    def column_mappings(self) -> dict[str, str]:
        """Storage column name -> property name."""
        return {c.column_name: c.property_name for c in self.columns}


# =============================================================================
# Tables
# =============================================================================


@dataclass(frozen=True)
class SourceTable:
    """Untyped table: header row plus rows of raw cell values (None = null)."""

    name: str
    columns: tuple[str, ...]
    rows: tuple[tuple[Any, ...], ...] = ()

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @classmethod
    def from_records(cls, name: str, columns: list[str] | tuple[str, ...], rows: list[Any]) -> SourceTable:
        """Build from lists; short rows are padded with nulls."""
        width = len(columns)
        return cls(
            name=name,
            columns=tuple(columns),
            rows=tuple(tuple(r) + (NULL,) * (width - len(r)) for r in rows),
        )


@dataclass(frozen=True)
class NormalizedColumn:
    """Typed column: ``name`` is the storage column name."""

    name: str
    property_name: str
    semantic_type: SemanticType
    nullable: bool


@dataclass(frozen=True)
class NormalizedTable:
    """Fully typed table conforming to one entity schema."""

    qualified_name: str
    columns: tuple[NormalizedColumn, ...]
    rows: tuple[tuple[Any, ...], ...] = ()
    source_name: str | None = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    def as_dicts(self, key: str = "name") -> list[dict[str, Any]]:
        """Rows as dicts keyed by column ``name`` or ``property_name``."""
        keys = [getattr(c, key) for c in self.columns]
        return [dict(zip(keys, row)) for row in self.rows]


@dataclass(frozen=True)
class DetectedEntity:
    """Result of strict schema detection."""

    qualified_name: str
    schema: EntitySchema


@dataclass(frozen=True)
class ConversionResult:
    """Normalized tables of one dataset in source order, plus skipped empty sheets."""

    tables: tuple[NormalizedTable, ...] = ()
    skipped: tuple[str, ...] = field(default_factory=tuple)

    @property
    def total_rows(self) -> int:
        return sum(t.row_count for t in self.tables)

    def by_name(self) -> dict[str, NormalizedTable]:
        return {t.qualified_name: t for t in self.tables}


@dataclass(frozen=True)
class WriteResult:
    """Outcome of one successful transactional dataset write."""

    processed_file_id: UUID
    record_count: int
    table_counts: dict[str, int] = field(default_factory=dict)
