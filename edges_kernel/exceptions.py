"""
Typed exception hierarchy for the edges ingestion kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from EdgesKernelError:

    EdgesKernelError (base)
    |
    +-- SchemaError
    |   +-- SchemaMismatchError
    |   +-- AmbiguousSchemaMatchError
    |   +-- UnknownEntityError
    |   +-- UnknownColumnError
    |   +-- InvalidColumnNameError
    |
    +-- SchemaDefinitionError
    |
    +-- ConversionError
    |   +-- TypeConversionError
    |
    +-- PersistenceError
        +-- TransactionFailureError
        +-- InvalidTableNameError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                       | When Raised
-------------|----------------------------|------------------------------------------
Schema       | SCHEMA_MISMATCH            | No candidate header set equals the sheet's
             | AMBIGUOUS_SCHEMA_MATCH     | More than one candidate matches exactly
             | UNKNOWN_ENTITY             | Entity not in the schema registry
             | UNKNOWN_COLUMN             | Property/column absent from the schema
             | INVALID_COLUMN_NAME        | Header is not a usable PostgreSQL identifier
-------------|----------------------------|------------------------------------------
Definition   | SCHEMA_DEFINITION_INVALID  | Malformed YAML entity definition
-------------|----------------------------|------------------------------------------
Conversion   | TYPE_CONVERSION_FAILED     | Cell text cannot be parsed as column type
-------------|----------------------------|------------------------------------------
Persistence  | TRANSACTION_FAILED         | Metadata insert / bulk load / update failed
             | INVALID_TABLE_NAME         | Qualified table name cannot be quoted

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        tables = converter.convert(source_tables)
    except SchemaMismatchError as e:
        log.error("unknown_sheet_layout", extra={"sheet": e.sheet_name})
    except TypeConversionError as e:
        report(code=e.code, column=e.column_name, value=e.raw_value)

None of these are retried inside the kernel. Re-processing a whole source
file is the caller's decision.
"""

from __future__ import annotations

from typing import Any, Iterable


class EdgesKernelError(Exception):
    """
    Base exception for all edges kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "EDGES_KERNEL_ERROR"


# Schema detection and lookup


class SchemaError(EdgesKernelError):
    """Base exception for schema registry and detection errors."""

    code: str = "SCHEMA_ERROR"


class SchemaMismatchError(SchemaError):
    """No candidate schema's expected header set equals the table's header set."""

    code: str = "SCHEMA_MISMATCH"

    def __init__(
        self,
        sheet_name: str,
        headers: Iterable[str] = (),
        candidates: Iterable[str] = (),
        duplicates: Iterable[str] = (),
    ):
        self.sheet_name = sheet_name
        self.headers = tuple(headers)
        self.candidates = tuple(candidates)
        self.duplicates = tuple(duplicates)
        if self.duplicates:
            detail = f" Columns repeated (case-insensitive): {', '.join(self.duplicates)}."
        elif self.candidates:
            detail = f" Candidates tried: {', '.join(self.candidates)}."
        else:
            detail = " No entity schema is registered for this sheet name."
        super().__init__(
            f"No strict schema match found for sheet '{sheet_name}'. "
            f"The provided columns do not match any known entity configuration for this sheet name.{detail}"
        )


class AmbiguousSchemaMatchError(SchemaError):
    """More than one registered schema matches the table's header set exactly."""

    code: str = "AMBIGUOUS_SCHEMA_MATCH"

    def __init__(self, sheet_name: str, matches: Iterable[str]):
        self.sheet_name = sheet_name
        self.matches = tuple(matches)
        super().__init__(
            f"Sheet '{sheet_name}' matches more than one entity schema exactly: "
            f"{', '.join(self.matches)}"
        )


class UnknownEntityError(SchemaError):
    """Entity name is not registered."""

    code: str = "UNKNOWN_ENTITY"

    def __init__(self, entity_name: str):
        self.entity_name = entity_name
        super().__init__(f"No entity mapping found for table '{entity_name}'")


class UnknownColumnError(SchemaError):
    """Requested property or column is absent from the matched schema."""

    code: str = "UNKNOWN_COLUMN"

    def __init__(self, entity_name: str, property_name: str, known: Iterable[str] = ()):
        self.entity_name = entity_name
        self.property_name = property_name
        self.known = tuple(known)
        super().__init__(
            f"Column '{property_name}' not found in entity '{entity_name}'. "
            f"Available properties: {', '.join(self.known)}"
        )


class InvalidColumnNameError(SchemaError):
    """Source header cannot be used as a PostgreSQL identifier."""

    code: str = "INVALID_COLUMN_NAME"

    def __init__(self, column_name: str, reason: str):
        self.column_name = column_name
        self.reason = reason
        super().__init__(f"Invalid column name '{column_name}': {reason}")


class SchemaDefinitionError(EdgesKernelError):
    """A YAML entity definition is malformed."""

    code: str = "SCHEMA_DEFINITION_INVALID"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid schema definition in {source}: {reason}")


# Conversion


class ConversionError(EdgesKernelError):
    """Base exception for cell conversion errors."""

    code: str = "CONVERSION_ERROR"


class TypeConversionError(ConversionError):
    """A cell's text cannot be parsed into its column's declared type."""

    code: str = "TYPE_CONVERSION_FAILED"

    def __init__(
        self,
        column_name: str,
        raw_value: Any,
        target_type: str,
        reason: str = "",
        *,
        sheet_name: str | None = None,
        row_number: int | None = None,
    ):
        self.column_name = column_name
        self.raw_value = raw_value
        self.target_type = target_type
        self.reason = reason
        self.sheet_name = sheet_name
        self.row_number = row_number
        where = ""
        if sheet_name is not None:
            where = f" (sheet '{sheet_name}'"
            where += f", row {row_number})" if row_number is not None else ")"
        suffix = f": {reason}" if reason else ""
        super().__init__(
            f"Failed to convert value '{raw_value}' in column '{column_name}' "
            f"to type {target_type}{where}{suffix}"
        )


# Persistence


class PersistenceError(EdgesKernelError):
    """Base exception for database write errors."""

    code: str = "PERSISTENCE_ERROR"


class TransactionFailureError(PersistenceError):
    """The single-transaction write failed and was rolled back."""

    code: str = "TRANSACTION_FAILED"

    def __init__(self, step: str, label: str, table_name: str | None = None, cause: BaseException | None = None):
        self.step = step
        self.label = label
        self.table_name = table_name
        self.cause_type = type(cause).__name__ if cause is not None else None
        target = f" table '{table_name}'" if table_name else ""
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Failed to write dataset '{label}' during {step}{target} - transaction rolled back{detail}"
        )


class InvalidTableNameError(PersistenceError):
    """Qualified table name is empty or malformed."""

    code: str = "INVALID_TABLE_NAME"

    def __init__(self, table_name: str, reason: str):
        self.table_name = table_name
        self.reason = reason
        super().__init__(f"Invalid table name '{table_name}': {reason}")
