"""
TableNormalizer -- untyped sheet rows to typed rows for one matched schema.

Pure and deterministic: the same SourceTable and schema always produce an
equal NormalizedTable.

Nullability per column:
    nullable  <=> the property is optional, or its type is reference-like
                  (text, other)

Per cell:
    None, or whitespace-only text in a non-text column
        -> None when the column is nullable, else the type's default
    text in a text column
        -> kept verbatim, blank or not
    anything else
        -> coerced to the column's SemanticType; a null-equivalent result in
           a non-nullable column also becomes the type's default
    coercion failure
        -> TypeConversionError (column, raw value, target type, sheet, row)
"""

from __future__ import annotations

from typing import Any

from edges_kernel.exceptions import SchemaMismatchError, TypeConversionError
from edges_kernel.logging_config import get_logger
from edges_ingestion.domain.types import (
    ColumnSpec,
    EntitySchema,
    NormalizedColumn,
    NormalizedTable,
    SemanticType,
    SourceTable,
    default_value,
)
from edges_ingestion.mapping.coercion import coerce_value
from edges_ingestion.mapping.column_mapper import ColumnNameMapper

logger = get_logger("ingestion.normalization")

# Row numbers in errors are 1-based sheet rows; row 1 is the header.
_FIRST_DATA_ROW = 2


def is_null_marker(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def convert_cell(
    value: Any,
    column: NormalizedColumn,
    spec: ColumnSpec,
    *,
    sheet_name: str | None = None,
    row_number: int | None = None,
) -> Any:
    """Convert one cell for ``column``. Raises TypeConversionError."""
    if value is None or (spec.semantic_type is not SemanticType.TEXT and is_null_marker(value)):
        return None if column.nullable else default_value(spec.semantic_type, spec.python_type)

    result = coerce_value(value, spec.semantic_type, spec.python_type)
    if not result.success:
        raise TypeConversionError(
            column.name,
            value,
            spec.semantic_type.value,
            result.reason,
            sheet_name=sheet_name,
            row_number=row_number,
        )
    if result.value is None and not column.nullable:
        return default_value(spec.semantic_type, spec.python_type)
    return result.value


class TableNormalizer:
    """Builds NormalizedTables using a sheet-scoped ColumnNameMapper."""

    def __init__(self, column_mapper: ColumnNameMapper) -> None:
        self._mapper = column_mapper

    def _target_columns(
        self, schema: EntitySchema, table: SourceTable
    ) -> list[tuple[int, NormalizedColumn, ColumnSpec]]:
        targets: list[tuple[int, NormalizedColumn, ColumnSpec]] = []
        for index, header in enumerate(table.columns):
            if header is None or not str(header).strip():
                continue
            property_name = self._mapper.map_column_name(table.name, header)
            # The matched schema's own column wins over the sheet-wide mapping.
            spec = schema.column_by_name(header) or schema.column(property_name)
            if spec is None:
                continue
            if any(target.property_name == spec.property_name for _, target, _ in targets):
                raise SchemaMismatchError(
                    table.name, headers=table.columns, duplicates=(str(header).strip().casefold(),)
                )
            column = NormalizedColumn(
                name=str(header).strip(),
                property_name=spec.property_name,
                semantic_type=spec.semantic_type,
                nullable=spec.nullable,
            )
            targets.append((index, column, spec))
        return targets

    def normalize(self, qualified_name: str, schema: EntitySchema, table: SourceTable) -> NormalizedTable:
        """
        Convert ``table`` into a NormalizedTable conforming to ``schema``.

        Raises:
            UnknownColumnError: a header has no property mapping for the sheet.
            InvalidColumnNameError: a header is not a usable identifier.
            SchemaMismatchError: two headers resolve to the same column.
            TypeConversionError: a cell cannot be converted.
        """
        targets = self._target_columns(schema, table)
        rows: list[tuple[Any, ...]] = []
        for offset, source_row in enumerate(table.rows):
            row_number = offset + _FIRST_DATA_ROW
            rows.append(tuple(
                convert_cell(
                    source_row[index] if index < len(source_row) else None,
                    column,
                    spec,
                    sheet_name=table.name,
                    row_number=row_number,
                )
                for index, column, spec in targets
            ))

        normalized = NormalizedTable(
            qualified_name=qualified_name,
            columns=tuple(column for _, column, _ in targets),
            rows=tuple(rows),
            source_name=table.name,
        )
        logger.debug(
            "table_normalized",
            extra={
                "sheet": table.name,
                "entity": qualified_name,
                "row_count": normalized.row_count,
                "column_count": len(normalized.columns),
            },
        )
        return normalized
