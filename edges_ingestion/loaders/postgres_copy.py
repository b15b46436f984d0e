"""
PostgreSQL bulk loader: ``COPY ... FROM STDIN`` in CSV format via psycopg2.

The COPY runs on the DBAPI connection underneath the caller's SQLAlchemy
Connection, so it is part of the caller's transaction and is undone by its
rollback.

CSV encoding:
    None                -> unquoted empty field (PostgreSQL's CSV NULL)
    every other value   -> quoted text, so "" stays an empty string
"""

from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from datetime import date, datetime, time
from enum import Enum
from typing import Any

from sqlalchemy import Connection, Table

from edges_kernel.logging_config import get_logger
from edges_ingestion.loaders.base import qualified_table_name, quote_identifier, quote_table_name

logger = get_logger("ingestion.loaders.copy")


def copy_text(value: Any) -> Any:
    """Text form of one value for COPY CSV input; None is kept as None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def build_copy_statement(target: Table, keys: Sequence[str]) -> str:
    columns = ", ".join(quote_identifier(target.c[key].name) for key in keys)
    return (
        f"COPY {quote_table_name(qualified_table_name(target))} ({columns}) "
        "FROM STDIN WITH (FORMAT csv)"
    )


def encode_rows(rows: Sequence[Sequence[Any]]) -> io.StringIO:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NOTNULL, lineterminator="\n")
    for row in rows:
        writer.writerow([copy_text(v) for v in row])
    buffer.seek(0)
    return buffer


class PostgresCopyLoader:
    """COPY-based loader; requires the psycopg2 driver."""

    def load(
        self,
        connection: Connection,
        target: Table,
        keys: Sequence[str],
        rows: Sequence[Sequence[Any]],
    ) -> int:
        if not rows:
            return 0
        statement = build_copy_statement(target, keys)
        dbapi_connection = connection.connection.dbapi_connection
        with dbapi_connection.cursor() as cursor:
            cursor.copy_expert(statement, encode_rows(rows))
        logger.debug(
            "table_loaded",
            extra={"table": qualified_table_name(target), "row_count": len(rows), "loader": "copy"},
        )
        return len(rows)
