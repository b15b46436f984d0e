"""Schema registry and the SQLAlchemy tables built from it."""

from edges_ingestion.schema.registry import SchemaRegistry
from edges_ingestion.schema.tables import column_type, entity_table, merged_columns

__all__ = ["SchemaRegistry", "column_type", "entity_table", "merged_columns"]
