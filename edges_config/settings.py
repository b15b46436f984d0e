"""
Runtime settings (``edges_config.settings``).

Read once from environment variables by the CLI and the import service
factory. Library code receives an ``EdgesSettings`` instance instead of
reading the environment itself.

Variables:
    EDGES_DATABASE_URL     SQLAlchemy URL (default: local SQLite file)
    EDGES_SCHEMA_PATHS     os.pathsep-separated YAML files or directories;
                           empty means the shipped default schema pack
    EDGES_LOG_LEVEL        logging level name (default INFO)
    EDGES_IGNORED_COLUMNS  comma-separated column names left out of strict
                           header matching (default: id,processed_file_id)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DATABASE_URL = "sqlite:///edges.db"
DEFAULT_IGNORED_COLUMNS: tuple[str, ...] = ("id", "processed_file_id")


@dataclass(frozen=True)
class EdgesSettings:
    database_url: str = DEFAULT_DATABASE_URL
    schema_paths: tuple[Path, ...] = ()
    log_level: int = logging.INFO
    ignored_columns: tuple[str, ...] = DEFAULT_IGNORED_COLUMNS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EdgesSettings:
        env = os.environ if environ is None else environ

        raw_paths = env.get("EDGES_SCHEMA_PATHS", "")
        schema_paths = tuple(Path(p) for p in raw_paths.split(os.pathsep) if p.strip())

        level_name = env.get("EDGES_LOG_LEVEL", "INFO").strip().upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level_name!r}")

        raw_ignored = env.get("EDGES_IGNORED_COLUMNS")
        ignored = (
            tuple(c.strip() for c in raw_ignored.split(",") if c.strip())
            if raw_ignored is not None
            else DEFAULT_IGNORED_COLUMNS
        )

        return cls(
            database_url=env.get("EDGES_DATABASE_URL", DEFAULT_DATABASE_URL),
            schema_paths=schema_paths,
            log_level=level,
            ignored_columns=ignored,
        )

    def resolve_schema_files(self) -> list[Path]:
        """Expand directories to their ``*.yaml`` files (sorted)."""
        files: list[Path] = []
        for path in self.schema_paths:
            if path.is_dir():
                files.extend(sorted(path.glob("*.yaml")))
            else:
                files.append(path)
        return files
