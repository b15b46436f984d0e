"""
ProcessedFileRepository -- ProcessingRecord persistence on a caller's Session.

The repository flushes but never commits: the dataset writer owns the
transaction, so a record inserted here commits or rolls back together with
the sheet data it describes.

Dedup lookups (``exists_by_hash`` / ``get_by_hash``) match on content hash
and byte size, the pair the import service computes for each source file.
"""

from __future__ import annotations

import hashlib
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from edges_kernel.domain.processing import ProcessingRecord, ProcessingStatus
from edges_kernel.models.processed_file import ProcessedFileModel


def compute_file_hash(data: bytes) -> str:
    """Hex SHA-256 of a source file's bytes."""
    return hashlib.sha256(data).hexdigest()


class ProcessedFileRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, record: ProcessingRecord) -> ProcessingRecord:
        model = ProcessedFileModel.from_dto(record)
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def _model(self, record_id: UUID) -> ProcessedFileModel:
        model = self._session.get(ProcessedFileModel, record_id)
        if model is None:
            raise LookupError(f"Processed file record {record_id} not found")
        return model

    def update(
        self,
        record_id: UUID,
        *,
        status: ProcessingStatus,
        record_count: int | None = None,
        error_message: str | None = None,
    ) -> ProcessingRecord:
        model = self._model(record_id)
        model.status = status.value
        if record_count is not None:
            model.record_count = record_count
        if error_message is not None:
            model.error_message = error_message
        self._session.flush()
        return model.to_dto()

    def mark_failed(self, record_id: UUID, message: str) -> ProcessingRecord:
        return self.update(record_id, status=ProcessingStatus.FAILED, error_message=message)

    def get_by_id(self, record_id: UUID) -> ProcessingRecord | None:
        model = self._session.get(ProcessedFileModel, record_id)
        return model.to_dto() if model is not None else None

    def _by_hash(self, file_hash: str, file_size: int, status: ProcessingStatus | None):
        stmt = select(ProcessedFileModel).where(
            ProcessedFileModel.file_hash == file_hash,
            ProcessedFileModel.file_size_bytes == file_size,
        )
        if status is not None:
            stmt = stmt.where(ProcessedFileModel.status == status.value)
        return stmt.order_by(ProcessedFileModel.processed_at.desc())

    def exists_by_hash(
        self, file_hash: str, file_size: int, status: ProcessingStatus | None = None
    ) -> bool:
        return self._session.scalars(self._by_hash(file_hash, file_size, status).limit(1)).first() is not None

    def get_by_hash(
        self, file_hash: str, file_size: int, status: ProcessingStatus | None = None
    ) -> ProcessingRecord | None:
        """Most recent record for the file, optionally restricted to one status."""
        model = self._session.scalars(self._by_hash(file_hash, file_size, status).limit(1)).first()
        return model.to_dto() if model is not None else None

    def list_recent(self, limit: int = 20) -> list[ProcessingRecord]:
        stmt = select(ProcessedFileModel).order_by(ProcessedFileModel.processed_at.desc()).limit(limit)
        return [m.to_dto() for m in self._session.scalars(stmt)]
