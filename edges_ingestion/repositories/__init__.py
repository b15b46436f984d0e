"""Persistence of processing records."""

from edges_ingestion.repositories.processed_file_repository import (
    ProcessedFileRepository,
    compute_file_hash,
)

__all__ = ["ProcessedFileRepository", "compute_file_hash"]
