"""ORM models for kernel bookkeeping tables."""

from edges_kernel.models.processed_file import ProcessedFileModel

__all__ = ["ProcessedFileModel"]
