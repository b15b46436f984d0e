"""Typed normalization of detected sheets."""

from edges_ingestion.normalization.table_normalizer import (
    TableNormalizer,
    convert_cell,
    is_null_marker,
)

__all__ = ["TableNormalizer", "convert_cell", "is_null_marker"]
