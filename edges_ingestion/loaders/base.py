"""
Bulk table loader protocol and identifier quoting.

Contract:
    BulkTableLoader.load() writes every row of one typed table through the
    caller's Connection, inside the caller's open transaction. It never
    commits, rolls back, or opens a connection of its own.

Rows arrive as tuples in ``keys`` order, where ``keys`` are the column keys
(property names) of the SQLAlchemy ``Table``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import Connection, Table

from edges_kernel.exceptions import InvalidTableNameError


@runtime_checkable
class BulkTableLoader(Protocol):
    """Loads one fully typed table through the fastest path for its dialect."""

    def load(
        self,
        connection: Connection,
        target: Table,
        keys: Sequence[str],
        rows: Sequence[Sequence[Any]],
    ) -> int:
        """Write ``rows`` into ``target``; return the number of rows written."""
        ...


def quote_identifier(name: str) -> str:
    """Double-quote a PostgreSQL identifier, doubling embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


def quote_table_name(qualified_name: str) -> str:
    """
    Quote ``schema.table`` or ``table``.

    Raises:
        InvalidTableNameError: empty name, empty part, or more than two parts.
    """
    name = (qualified_name or "").strip()
    if not name:
        raise InvalidTableNameError(qualified_name or "", "table name is empty")
    parts = name.split(".")
    if len(parts) > 2:
        raise InvalidTableNameError(name, "expected 'schema.table' or 'table'")
    if any(not p.strip() for p in parts):
        raise InvalidTableNameError(name, "schema and table parts must be non-empty")
    return ".".join(quote_identifier(p.strip()) for p in parts)


def qualified_table_name(target: Table) -> str:
    return f"{target.schema}.{target.name}" if target.schema else target.name
