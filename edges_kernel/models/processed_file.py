"""
Processed-file ORM model.

Contract:
    One row per source file load attempt. The writer inserts it with status
    Processing and flips it to Success (with the summed row count) in the same
    transaction as the bulk load, so a committed row is never left in
    Processing. Rows are never deleted by the ingestion pipeline.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from edges_kernel.db.base import RAW_SCHEMA, TrackedBase
from edges_kernel.domain.processing import ProcessingRecord, ProcessingStatus


class ProcessedFileModel(TrackedBase):
    """Bookkeeping row for a processed source file."""

    __tablename__ = "processed_file"
    __table_args__ = (
        Index("ix_processed_file_hash_size", "file_hash", "file_size_bytes"),
        {"schema": RAW_SCHEMA},
    )

    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    source_item_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    record_count: Mapped[int] = mapped_column(default=0, nullable=False)
    file_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    file_size_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    def to_dto(self) -> ProcessingRecord:
        return ProcessingRecord(
            id=self.id,
            label=self.file_name,
            processed_at=self.processed_at,
            status=ProcessingStatus(self.status),
            record_count=self.record_count,
            source_item_id=self.source_item_id,
            error_message=self.error_message,
            file_hash=self.file_hash,
            file_size_bytes=self.file_size_bytes,
        )

    @classmethod
    def from_dto(cls, dto: ProcessingRecord) -> ProcessedFileModel:
        return cls(
            id=dto.id,
            file_name=dto.label,
            source_item_id=dto.source_item_id,
            processed_at=dto.processed_at,
            status=dto.status.value,
            error_message=dto.error_message,
            record_count=dto.record_count,
            file_hash=dto.file_hash,
            file_size_bytes=dto.file_size_bytes,
        )
