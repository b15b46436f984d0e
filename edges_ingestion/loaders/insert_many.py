"""Portable bulk loader: Core ``insert()`` executed with parameter lists."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import Connection, Table, insert

from edges_kernel.logging_config import get_logger
from edges_ingestion.loaders.base import qualified_table_name

logger = get_logger("ingestion.loaders.insert")


class InsertManyLoader:
    """
    executemany-style insert in fixed-size batches.

    SQLAlchemy 2.x sends each batch as multi-row VALUES where the driver
    supports it ("insertmanyvalues"). Used for SQLite and other non-PostgreSQL
    dialects.
    """

    def __init__(self, batch_size: int = 5000) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.batch_size = batch_size

    def load(
        self,
        connection: Connection,
        target: Table,
        keys: Sequence[str],
        rows: Sequence[Sequence[Any]],
    ) -> int:
        if not rows:
            return 0
        statement = insert(target)
        for start in range(0, len(rows), self.batch_size):
            batch = rows[start:start + self.batch_size]
            connection.execute(statement, [dict(zip(keys, row)) for row in batch])
        logger.debug(
            "table_loaded",
            extra={"table": qualified_table_name(target), "row_count": len(rows), "loader": "insert_many"},
        )
        return len(rows)
