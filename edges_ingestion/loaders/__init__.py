"""Bulk table loaders (one per database dialect)."""

from edges_ingestion.loaders.base import (
    BulkTableLoader,
    qualified_table_name,
    quote_identifier,
    quote_table_name,
)
from edges_ingestion.loaders.insert_many import InsertManyLoader
from edges_ingestion.loaders.postgres_copy import PostgresCopyLoader


def select_loader(dialect_name: str) -> BulkTableLoader:
    """Fastest available loader for a SQLAlchemy dialect name."""
    if dialect_name == "postgresql":
        return PostgresCopyLoader()
    return InsertManyLoader()


__all__ = [
    "BulkTableLoader",
    "InsertManyLoader",
    "PostgresCopyLoader",
    "qualified_table_name",
    "quote_identifier",
    "quote_table_name",
    "select_loader",
]
