"""
File import service: hash -> dedup -> read -> convert -> write.

Orchestrates the workbook adapter, the dataset converter and the dataset
writer for one source file. Uses structured logging (LogContext,
get_logger("ingestion.*")).

Dedup: a file whose SHA-256 and byte size match a Success record is not
imported again. Failed attempts do not block a retry.

Failure audit: when reading, conversion or the write fails, the data
transaction has already been rolled back; a Failed processing record with
the error message is then committed in a separate short transaction and the
original exception is re-raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from edges_kernel.domain.clock import Clock, SystemClock
from edges_kernel.domain.processing import ProcessingRecord, ProcessingStatus
from edges_kernel.logging_config import LogContext, get_logger
from edges_ingestion.adapters.xlsx_adapter import XlsxWorkbookAdapter
from edges_ingestion.detection.schema_detector import DEFAULT_IGNORED_COLUMNS
from edges_ingestion.repositories.processed_file_repository import (
    ProcessedFileRepository,
    compute_file_hash,
)
from edges_ingestion.schema.registry import SchemaRegistry
from edges_ingestion.services.dataset_converter import DatasetConverter
from edges_ingestion.services.dataset_writer import DatasetWriter

logger = get_logger("ingestion.import_service")

# processed_file.error_message is TEXT; keep audit rows readable.
_MAX_ERROR_MESSAGE = 4000


@dataclass(frozen=True)
class ImportOutcome:
    """Result of one import_file call."""

    label: str
    file_hash: str
    file_size: int
    skipped: bool
    processed_file_id: UUID | None = None
    record_count: int = 0
    table_counts: dict[str, int] = field(default_factory=dict)
    skipped_sheets: tuple[str, ...] = ()


class FileImportService:
    """Imports workbook files; each file gets its own session and transaction."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        registry: SchemaRegistry,
        *,
        clock: Clock | None = None,
        adapter: XlsxWorkbookAdapter | None = None,
        converter: DatasetConverter | None = None,
        writer: DatasetWriter | None = None,
        ignored_columns: tuple[str, ...] = DEFAULT_IGNORED_COLUMNS,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._adapter = adapter or XlsxWorkbookAdapter()
        self._converter = converter or DatasetConverter.from_registry(registry, ignored_columns)
        self._writer = writer or DatasetWriter(registry, clock=self._clock)

    def find_successful_import(self, file_hash: str, file_size: int) -> ProcessingRecord | None:
        with self._session_factory() as session:
            return ProcessedFileRepository(session).get_by_hash(
                file_hash, file_size, ProcessingStatus.SUCCESS
            )

    def import_file(
        self,
        path: str | Path,
        *,
        label: str | None = None,
        source_item_id: str | None = None,
    ) -> ImportOutcome:
        """
        Import one workbook file.

        Raises:
            Whatever reading, conversion or the write raised (after the
            Failed record has been written).
        """
        source = Path(path)
        data = source.read_bytes()
        file_hash = compute_file_hash(data)
        file_size = len(data)
        label = label or source.name

        with LogContext.bind(correlation_id=str(uuid4()), source_file=label, producer="ingestion"):
            existing = self.find_successful_import(file_hash, file_size)
            if existing is not None:
                logger.info(
                    "file_already_imported",
                    extra={"processed_file_id": str(existing.id), "file_hash": file_hash},
                )
                return ImportOutcome(
                    label=label,
                    file_hash=file_hash,
                    file_size=file_size,
                    skipped=True,
                    processed_file_id=existing.id,
                    record_count=existing.record_count,
                )

            logger.info("file_import_started", extra={"file_hash": file_hash, "file_size": file_size})
            try:
                tables = self._adapter.read_tables(data)
                conversion = self._converter.convert(tables)
                with self._session_factory() as session:
                    result = self._writer.write(
                        conversion,
                        session,
                        label,
                        file_hash=file_hash,
                        file_size=file_size,
                        source_item_id=source_item_id,
                    )
            except Exception as exc:
                self._record_failure(label, file_hash, file_size, source_item_id, exc)
                raise

            logger.info(
                "file_import_completed",
                extra={"processed_file_id": str(result.processed_file_id), "record_count": result.record_count},
            )
            return ImportOutcome(
                label=label,
                file_hash=file_hash,
                file_size=file_size,
                skipped=False,
                processed_file_id=result.processed_file_id,
                record_count=result.record_count,
                table_counts=dict(result.table_counts),
                skipped_sheets=conversion.skipped,
            )

    def _record_failure(
        self,
        label: str,
        file_hash: str,
        file_size: int,
        source_item_id: str | None,
        exc: Exception,
    ) -> None:
        message = f"{type(exc).__name__}: {exc}"[:_MAX_ERROR_MESSAGE]
        logger.error("file_import_failed", exc_info=True, extra={"file_hash": file_hash})
        with self._session_factory() as session:
            ProcessedFileRepository(session).add(ProcessingRecord(
                id=uuid4(),
                label=label,
                processed_at=self._clock.now(),
                status=ProcessingStatus.FAILED,
                record_count=0,
                source_item_id=source_item_id,
                error_message=message,
                file_hash=file_hash,
                file_size_bytes=file_size,
            ))
            session.commit()
