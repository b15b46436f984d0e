"""
DatasetWriter -- one transaction for the processing record and every table.

Steps, all on the caller's Session and its single connection:

    1. insert ProcessingRecord(status=Processing, record_count=0)
    2. bulk-load each NormalizedTable (COPY on PostgreSQL), stamping the
       record id into the entity's processed_file_id column
    3. sum the loaded row counts
    4. update the record to Success with that count
    5. commit

Any exception before the commit rolls the whole transaction back: the
record insert and every table load are undone together, so no committed
Processing record or partial table remains. The original error is chained as
``__cause__`` of the TransactionFailureError. Interrupts (KeyboardInterrupt,
task cancellation) also roll back and then propagate unchanged.

The writer makes exactly one attempt. Retrying a file is the import
service's decision.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import MetaData, Table
from sqlalchemy.orm import Session

from edges_kernel.db.base import Base
from edges_kernel.domain.clock import Clock, SystemClock
from edges_kernel.domain.processing import ProcessingRecord, ProcessingStatus
from edges_kernel.exceptions import TransactionFailureError
from edges_kernel.logging_config import LogContext, get_logger
from edges_ingestion.domain.types import ConversionResult, NormalizedTable, WriteResult
from edges_ingestion.loaders import BulkTableLoader, select_loader
from edges_ingestion.repositories.processed_file_repository import ProcessedFileRepository
from edges_ingestion.schema.registry import SchemaRegistry

logger = get_logger("ingestion.writer")

BOOKKEEPING_COLUMN = "processed_file_id"


class DatasetWriter:
    """Writes a converted dataset and its processing record atomically."""

    def __init__(
        self,
        registry: SchemaRegistry,
        *,
        metadata: MetaData | None = None,
        clock: Clock | None = None,
        loader: BulkTableLoader | None = None,
        bookkeeping_column: str = BOOKKEEPING_COLUMN,
    ) -> None:
        self._registry = registry
        self._metadata = metadata if metadata is not None else Base.metadata
        self._clock = clock or SystemClock()
        self._loader = loader
        self._bookkeeping_column = bookkeeping_column.casefold()

    def _bookkeeping_key(self, target: Table) -> str | None:
        for column in target.columns:
            if column.name.casefold() == self._bookkeeping_column:
                return column.key
        return None

    def _prepare(
        self, table: NormalizedTable, target: Table, record_id: UUID
    ) -> tuple[list[str], list[Sequence[Any]]]:
        """Column keys and rows for the loader, with the record id stamped in."""
        keys = [c.property_name for c in table.columns]
        stamp_key = self._bookkeeping_key(target)
        if stamp_key is None or stamp_key in keys:
            return keys, list(table.rows)
        return keys + [stamp_key], [tuple(row) + (record_id,) for row in table.rows]

    def write(
        self,
        tables: Iterable[NormalizedTable] | ConversionResult,
        session: Session,
        label: str,
        *,
        file_hash: str | None = None,
        file_size: int | None = None,
        source_item_id: str | None = None,
    ) -> WriteResult:
        """
        Run the five steps and commit.

        Raises:
            TransactionFailureError: any failure before the commit completed;
                the session has been rolled back.
        """
        if isinstance(tables, ConversionResult):
            tables = tables.tables
        tables = tuple(tables)

        step = "metadata_insert"
        current_table: str | None = None
        try:
            repository = ProcessedFileRepository(session)
            record = repository.add(ProcessingRecord(
                id=uuid4(),
                label=label,
                processed_at=self._clock.now(),
                status=ProcessingStatus.PROCESSING,
                record_count=0,
                source_item_id=source_item_id,
                file_hash=file_hash,
                file_size_bytes=file_size,
            ))

            with LogContext.bind(processed_file_id=str(record.id)):
                logger.info("dataset_write_started", extra={"label": label, "table_count": len(tables)})

                step = "bulk_load"
                connection = session.connection()
                loader = self._loader or select_loader(connection.dialect.name)
                table_counts: dict[str, int] = {}
                for table in tables:
                    current_table = table.qualified_name
                    target = self._registry.table(table.qualified_name, self._metadata)
                    keys, rows = self._prepare(table, target, record.id)
                    loaded = loader.load(connection, target, keys, rows)
                    table_counts[table.qualified_name] = table_counts.get(table.qualified_name, 0) + loaded
                current_table = None

                record_count = sum(t.row_count for t in tables)

                step = "metadata_update"
                repository.update(record.id, status=ProcessingStatus.SUCCESS, record_count=record_count)

                step = "commit"
                session.commit()

                logger.info(
                    "dataset_write_committed",
                    extra={"label": label, "record_count": record_count, "table_counts": table_counts},
                )
        except Exception as exc:
            session.rollback()
            logger.error(
                "dataset_write_rolled_back",
                exc_info=True,
                extra={"label": label, "step": step, "table": current_table},
            )
            raise TransactionFailureError(step, label, current_table, exc) from exc
        except BaseException:
            session.rollback()
            logger.warning("dataset_write_interrupted", extra={"label": label, "step": step})
            raise

        return WriteResult(processed_file_id=record.id, record_count=record_count, table_counts=table_counts)
