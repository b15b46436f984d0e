"""
Processing record DTO and status enum.

The processing record is the bookkeeping row written in the same transaction
as a dataset's bulk-loaded tables.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class ProcessingStatus(str, Enum):
    """Lifecycle status of one processed source file."""

    PROCESSING = "Processing"  # Inserted before the bulk load; never visible after commit
    SUCCESS = "Success"
    FAILED = "Failed"  # Written in its own transaction after a rolled-back attempt


@dataclass(frozen=True)
class ProcessingRecord:
    """Immutable snapshot of a processed-file row."""

    id: UUID
    label: str
    processed_at: datetime
    status: ProcessingStatus
    record_count: int = 0
    source_item_id: str | None = None
    error_message: str | None = None
    file_hash: str | None = None
    file_size_bytes: int | None = None
