"""
Schema Loader (``edges_config.loader``).

Responsibility
--------------
Loads YAML entity definition files and parses them into frozen
``edges_ingestion.domain.types.EntitySchema`` instances.  The registry is
built from these once at startup; nothing re-reads YAML per import.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Consumed by
``SchemaRegistry.from_yaml`` and ``edges_config.load_default_registry``.
Depends only on the pure ingestion domain types.

File format
-----------
::

    entities:
      - name: contract_renewal          # table name
        schema: corch_edges_raw         # namespace (optional)
        sheet_name: 更新to業務管理       # source sheet (defaults to name)
        version: v1                     # label (optional)
        columns:
          - {property: Id, column: id, storage_type: integer,
             required: true, key: true, identity: true}
          - {property: RenewalDate, column: 更新日, storage_type: date}

A column's semantic ``type`` may be given explicitly (``int32``, ``date``,
``other`` ...); otherwise it is derived from ``storage_type``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass.
* Property names and column names are unique within one entity.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  definitions for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing keys, unknown type tags, duplicates  -> ``SchemaDefinitionError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from edges_kernel.exceptions import SchemaDefinitionError
from edges_ingestion.domain.types import ColumnSpec, EntitySchema, SemanticType

# Declared Python types for OTHER columns, by YAML name.
PYTHON_TYPES: dict[str, type] = {
    "uuid": UUID,
    "str": str,
    "dict": dict,
    "list": list,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _require(data: dict[str, Any], key: str, source: str) -> Any:
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise SchemaDefinitionError(source, f"missing required key '{key}'")
    return value


def parse_semantic_type(data: dict[str, Any], source: str) -> SemanticType:
    """Explicit ``type`` tag, else derived from ``storage_type``."""
    tag = data.get("type")
    if tag is not None:
        try:
            return SemanticType(str(tag).strip().lower())
        except ValueError:
            raise SchemaDefinitionError(source, f"unknown column type '{tag}'") from None
    storage_type = data.get("storage_type")
    if not storage_type:
        raise SchemaDefinitionError(source, "column needs either 'type' or 'storage_type'")
    return SemanticType.from_storage_type(str(storage_type))


def parse_column(data: dict[str, Any], source: str) -> ColumnSpec:
    """Parse a ``ColumnSpec`` from a dict."""
    property_name = str(_require(data, "property", source)).strip()
    where = f"{source} column '{property_name}'"
    semantic_type = parse_semantic_type(data, where)

    python_type = None
    if data.get("python_type") is not None:
        if semantic_type is not SemanticType.OTHER:
            raise SchemaDefinitionError(where, "'python_type' is only allowed on 'other' columns")
        name = str(data["python_type"]).strip().lower()
        if name not in PYTHON_TYPES:
            raise SchemaDefinitionError(where, f"unknown python_type '{name}'")
        python_type = PYTHON_TYPES[name]

    max_length = data.get("max_length")
    return ColumnSpec(
        property_name=property_name,
        column_name=str(_require(data, "column", where)).strip(),
        semantic_type=semantic_type,
        storage_type=data.get("storage_type"),
        required=bool(data.get("required", False)),
        is_key=bool(data.get("key", False)),
        identity=bool(data.get("identity", False)),
        max_length=int(max_length) if max_length is not None else None,
        indexed=bool(data.get("indexed", False)),
        python_type=python_type,
        references=data.get("references"),
    )


def parse_entity(data: dict[str, Any], source: str) -> EntitySchema:
    """
    Parse an ``EntitySchema`` from a dict.

    Raises:
        SchemaDefinitionError: if required keys are missing or the column
            list is empty or contains duplicates.
    """
    name = str(_require(data, "name", source)).strip()
    where = f"{source} entity '{name}'"
    raw_columns = data.get("columns") or []
    if not raw_columns:
        raise SchemaDefinitionError(where, "entity declares no columns")

    columns = tuple(parse_column(c, where) for c in raw_columns)

    seen_properties: set[str] = set()
    seen_columns: set[str] = set()
    for c in columns:
        if c.property_name in seen_properties:
            raise SchemaDefinitionError(where, f"duplicate property '{c.property_name}'")
        if c.column_name.casefold() in seen_columns:
            raise SchemaDefinitionError(where, f"duplicate column '{c.column_name}'")
        seen_properties.add(c.property_name)
        seen_columns.add(c.column_name.casefold())

    return EntitySchema(
        name=name,
        columns=columns,
        schema=data.get("schema"),
        sheet_name=data.get("sheet_name"),
        version=str(data.get("version", "1")),
    )


def load_entity_schemas(path: Path) -> list[EntitySchema]:
    """Load every entity declared in one YAML file, in file order."""
    data = load_yaml_file(path)
    entities = data.get("entities")
    if not isinstance(entities, list):
        raise SchemaDefinitionError(str(path), "top-level 'entities' list is missing")
    return [parse_entity(e, str(path)) for e in entities]


def compute_checksum(paths: list[Path]) -> str:
    """
    Deterministic SHA-256 of the parsed YAML content of ``paths``.

    Formatting and comments do not affect the result; reordering files does.
    """
    payload = [load_yaml_file(p) for p in paths]
    canonical = json.dumps(payload, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
