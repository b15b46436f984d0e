"""
SchemaRegistry -- read-only lookup of every registered target entity.

Built once at startup from an ordered list of ``EntitySchema`` (usually loaded
from YAML by ``edges_config``) and shared by every import pipeline. Nothing
mutates it after construction, so concurrent pipelines may query it freely.

Lookups:
    * by entity: qualified name (``schema.table``) or bare table name
    * by source sheet name: the candidate schemas for strict detection,
      in registration order

Several schemas may share one qualified name. These are versions of the same
table (different sheet layouts loaded into one physical table); ``get``
returns the first registered, ``build_tables`` stores their union.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from edges_kernel.exceptions import UnknownColumnError, UnknownEntityError
from edges_kernel.logging_config import get_logger
from edges_ingestion.domain.types import ColumnSpec, EntitySchema, SemanticType
from edges_ingestion.schema.tables import entity_table

if TYPE_CHECKING:
    from sqlalchemy import MetaData, Table

logger = get_logger("ingestion.registry")


class SchemaRegistry:
    """Immutable registry of entity schemas."""

    def __init__(self, schemas: Iterable[EntitySchema]) -> None:
        self._schemas: tuple[EntitySchema, ...] = tuple(schemas)
        self._by_entity: dict[str, list[EntitySchema]] = {}
        self._by_bare_name: dict[str, list[EntitySchema]] = {}
        self._by_sheet: dict[str, list[EntitySchema]] = {}

        for schema in self._schemas:
            self._by_entity.setdefault(schema.qualified_name, []).append(schema)
            self._by_bare_name.setdefault(schema.name, []).append(schema)
            sheet = (schema.sheet_name or schema.name).strip()
            self._by_sheet.setdefault(sheet, []).append(schema)

    @classmethod
    def from_yaml(cls, paths: Iterable[str | Path]) -> SchemaRegistry:
        """Load entity definitions from YAML files, in the order given."""
        from edges_config.loader import load_entity_schemas

        schemas: list[EntitySchema] = []
        for path in paths:
            schemas.extend(load_entity_schemas(Path(path)))
        registry = cls(schemas)
        logger.info(
            "schema_registry_loaded",
            extra={
                "entity_count": len(registry.entities()),
                "schema_count": len(schemas),
                "sheet_names": registry.sheet_names(),
            },
        )
        return registry

    # -------------------------------------------------------------------------
    # Entity lookups
    # -------------------------------------------------------------------------

    def _versions(self, entity: str) -> list[EntitySchema]:
        key = (entity or "").strip()
        versions = self._by_entity.get(key) or self._by_bare_name.get(key)
        if not versions:
            raise UnknownEntityError(key)
        return versions

    def has_entity(self, entity: str) -> bool:
        key = (entity or "").strip()
        return key in self._by_entity or key in self._by_bare_name

    def get(self, entity: str) -> EntitySchema:
        """First registered schema for an entity."""
        return self._versions(entity)[0]

    def versions(self, entity: str) -> tuple[EntitySchema, ...]:
        return tuple(self._versions(entity))

    def get_qualified_name(self, entity: str) -> str:
        return self.get(entity).qualified_name

    def get_schema_namespace(self, entity: str) -> str | None:
        return self.get(entity).schema

    def get_column_specs(self, entity: str) -> tuple[ColumnSpec, ...]:
        return self.get(entity).columns

    def _find_property(self, entity: str, property_name: str) -> ColumnSpec | None:
        for schema in self._versions(entity):
            spec = schema.column(property_name)
            if spec is not None:
                return spec
        return None

    def has_property(self, entity: str, property_name: str) -> bool:
        """True if any registered version of the entity declares the property."""
        return self._find_property(entity, property_name) is not None

    def get_property_type(self, entity: str, property_name: str) -> SemanticType:
        spec = self._find_property(entity, property_name)
        if spec is None:
            known: list[str] = []
            for schema in self._versions(entity):
                known.extend(p for p in schema.property_names if p not in known)
            raise UnknownColumnError(self.get_qualified_name(entity), property_name, known)
        return spec.semantic_type

    def entities(self) -> list[str]:
        """Distinct qualified names in registration order."""
        return list(self._by_entity)

    def schemas(self) -> tuple[EntitySchema, ...]:
        return self._schemas

    # -------------------------------------------------------------------------
    # Sheet lookups
    # -------------------------------------------------------------------------

    def candidates_for_sheet(self, sheet_name: str) -> tuple[EntitySchema, ...]:
        """Candidate schemas for a source sheet, in registration order. Empty if none."""
        return tuple(self._by_sheet.get((sheet_name or "").strip(), ()))

    def sheet_names(self) -> list[str]:
        return list(self._by_sheet)

    def column_mappings(self, sheet_name: str) -> dict[str, str]:
        """Sheet column name -> property name, merged across the sheet's candidates."""
        merged: dict[str, str] = {}
        for schema in self.candidates_for_sheet(sheet_name):
            for column_name, property_name in schema.column_mappings().items():
                merged.setdefault(column_name, property_name)
        return merged

    def all_column_mappings(self) -> dict[str, dict[str, str]]:
        return {sheet: self.column_mappings(sheet) for sheet in self._by_sheet}

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    def build_tables(self, metadata: MetaData) -> dict[str, Table]:
        """Register one Core table per qualified name on ``metadata``."""
        return {
            name: entity_table(versions, metadata)
            for name, versions in self._by_entity.items()
        }

    def table(self, entity: str, metadata: MetaData) -> Table:
        versions: Sequence[EntitySchema] = self._versions(entity)
        return entity_table(versions, metadata)

    def __len__(self) -> int:
        return len(self._schemas)

    def __repr__(self) -> str:
        return f"SchemaRegistry(entities={self.entities()!r})"
