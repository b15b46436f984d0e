"""
ColumnNameMapper -- sheet header to entity property, scoped by sheet name.

Headers are validated as PostgreSQL identifiers before lookup. Quoted
identifiers are used throughout, so Unicode, parentheses and hyphens are
accepted; only names PostgreSQL cannot store are rejected.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Mapping

from edges_kernel.exceptions import InvalidColumnNameError, UnknownColumnError

POSTGRES_IDENTIFIER_MAX_LENGTH = 63

POSTGRES_RESERVED_KEYWORDS = frozenset({
    "select", "from", "where", "insert", "update", "delete", "create", "drop", "alter",
    "table", "column", "index", "primary", "foreign", "key", "constraint", "null", "not",
    "unique", "default", "check", "references", "on", "cascade", "restrict", "set", "user",
    "order", "group", "having", "union", "join", "inner", "left", "right", "full", "outer",
    "cross", "natural", "using", "as", "distinct", "all", "any", "some", "exists", "in",
    "between", "like", "ilike", "similar", "is", "and", "or", "case", "when", "then",
    "else", "end", "grant", "revoke", "commit", "rollback", "transaction", "begin",
    "declare", "if", "while", "for", "loop", "return", "function", "procedure", "trigger",
    "view", "database", "schema", "sequence", "domain", "type", "cast", "analyze", "vacuum",
    "explain", "copy", "truncate", "lock", "unlock", "with", "recursive", "lateral",
    "offset", "limit", "fetch", "first", "last", "only", "rows", "row", "value", "values",
    "interval", "timestamp", "date", "time", "boolean", "integer", "bigint", "smallint",
    "decimal", "numeric", "real", "double", "precision", "varchar", "char", "text", "bytea",
})


def validate_column_name(column_name: str | None) -> str:
    """Return the trimmed name, or raise InvalidColumnNameError."""
    name = (column_name or "").strip()
    if not name:
        raise InvalidColumnNameError(column_name or "", "column name cannot be empty")
    if len(name) > POSTGRES_IDENTIFIER_MAX_LENGTH:
        raise InvalidColumnNameError(
            name,
            f"PostgreSQL identifiers are limited to {POSTGRES_IDENTIFIER_MAX_LENGTH} characters "
            f"(got {len(name)})",
        )
    if name[0].isdigit():
        raise InvalidColumnNameError(name, "PostgreSQL identifiers cannot start with a digit")
    if name.lower() in POSTGRES_RESERVED_KEYWORDS:
        raise InvalidColumnNameError(name, f"'{name.lower()}' is a PostgreSQL reserved keyword")
    for ch in name:
        if ch != "\t" and unicodedata.category(ch) == "Cc":
            raise InvalidColumnNameError(name, f"control character U+{ord(ch):04X} is not allowed")
    return name


class ColumnNameMapper:
    """Maps ``(sheet_name, column_name)`` to a property name."""

    def __init__(self, column_mappings: Mapping[str, Mapping[str, str]]) -> None:
        self._mappings: dict[str, dict[str, str]] = {
            sheet.strip(): {column.casefold(): prop for column, prop in columns.items()}
            for sheet, columns in column_mappings.items()
        }
        self._known: dict[str, tuple[str, ...]] = {
            sheet.strip(): tuple(columns) for sheet, columns in column_mappings.items()
        }

    @classmethod
    def from_registry(cls, registry) -> ColumnNameMapper:
        return cls(registry.all_column_mappings())

    def has_sheet(self, sheet_name: str) -> bool:
        return (sheet_name or "").strip() in self._mappings

    def map_column_name(self, sheet_name: str, column_name: str) -> str:
        sheet = (sheet_name or "").strip()
        name = validate_column_name(column_name)
        columns = self._mappings.get(sheet)
        if columns is None:
            raise UnknownColumnError(sheet, name)
        prop = columns.get(name.casefold())
        if prop is None:
            raise UnknownColumnError(sheet, name, self._known.get(sheet, ()))
        return prop
