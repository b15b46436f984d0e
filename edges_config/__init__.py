"""
edges_config -- entity schema definitions and runtime settings.

Responsibility:
    Turns YAML entity definitions into a ``SchemaRegistry`` and reads the
    process settings from the environment. The shipped schema pack in
    ``edges_config/schemas`` describes the contract sheets exported to
    業務管理.

Architecture position:
    Configuration. Sits above ``edges_kernel`` and the pure ingestion domain
    types. The kernel never imports from ``edges_config``.

Failure modes:
    - ``FileNotFoundError`` -- a configured schema path does not exist.
    - ``SchemaDefinitionError`` -- a YAML definition is malformed.
"""

from __future__ import annotations

from pathlib import Path

from edges_kernel.logging_config import get_logger
from edges_config.loader import compute_checksum
from edges_config.settings import EdgesSettings

_logger = get_logger("config")

DEFAULT_SCHEMA_DIR = Path(__file__).parent / "schemas"


def default_schema_files() -> list[Path]:
    return sorted(DEFAULT_SCHEMA_DIR.glob("*.yaml"))


def load_default_registry(settings: EdgesSettings | None = None):
    """
    Build the SchemaRegistry for this process.

    Uses ``settings.schema_paths`` when given, otherwise the shipped pack.
    Logs the definition checksum so every import can be tied to the exact
    schema definitions that governed it.
    """
    from edges_ingestion.schema.registry import SchemaRegistry

    files = settings.resolve_schema_files() if settings and settings.schema_paths else default_schema_files()
    for f in files:
        if not f.exists():
            raise FileNotFoundError(f"Schema definition file not found: {f}")

    registry = SchemaRegistry.from_yaml(files)
    _logger.info(
        "schema_definitions_loaded",
        extra={
            "files": [f.name for f in files],
            "checksum": compute_checksum(files),
        },
    )
    return registry


__all__ = [
    "DEFAULT_SCHEMA_DIR",
    "EdgesSettings",
    "default_schema_files",
    "load_default_registry",
]
