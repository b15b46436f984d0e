"""
Strict schema detection.

A sheet matches a candidate schema only when its header set (trimmed,
case-insensitive) is exactly equal to the schema's expected header set: the
declared column names minus the ignored bookkeeping columns. One extra or one
missing column is a mismatch.

Every candidate registered under the sheet name is evaluated. Exactly one
match is returned; none raises SchemaMismatchError; several raise
AmbiguousSchemaMatchError, since two layouts that cannot be told apart would
otherwise load into whichever happened to be registered first.
"""

from __future__ import annotations

from collections.abc import Iterable

from edges_kernel.exceptions import AmbiguousSchemaMatchError, SchemaMismatchError
from edges_kernel.logging_config import get_logger
from edges_ingestion.domain.types import DetectedEntity, EntitySchema, SourceTable
from edges_ingestion.schema.registry import SchemaRegistry

logger = get_logger("ingestion.detection")

DEFAULT_IGNORED_COLUMNS: tuple[str, ...] = ("id", "processed_file_id")


def header_set(names: Iterable[str | None]) -> frozenset[str]:
    """Trimmed, case-folded set of non-blank header names."""
    return frozenset(n.strip().casefold() for n in names if n is not None and n.strip())


def repeated_headers(names: Iterable[str | None]) -> tuple[str, ...]:
    """Non-blank headers that repeat after trimming and case-folding."""
    seen: set[str] = set()
    repeated: list[str] = []
    for name in names:
        if name is None or not name.strip():
            continue
        key = name.strip().casefold()
        if key in seen and key not in repeated:
            repeated.append(key)
        seen.add(key)
    return tuple(repeated)


class SchemaDetector:
    """Picks the one registered schema whose headers equal a sheet's headers."""

    def __init__(
        self,
        registry: SchemaRegistry,
        ignored_columns: Iterable[str] = DEFAULT_IGNORED_COLUMNS,
    ) -> None:
        self._registry = registry
        self._ignored = header_set(ignored_columns)

    @property
    def ignored_columns(self) -> frozenset[str]:
        return self._ignored

    def expected_headers(self, schema: EntitySchema) -> frozenset[str]:
        return header_set(c.column_name for c in schema.columns) - self._ignored

    def detect(self, table: SourceTable) -> DetectedEntity:
        """
        Raises:
            SchemaMismatchError: no candidate matches, none is registered, or
                a header occurs twice ignoring case.
            AmbiguousSchemaMatchError: more than one candidate matches.
        """
        incoming = header_set(table.columns)
        candidates = self._registry.candidates_for_sheet(table.name)

        repeated = repeated_headers(table.columns)
        if repeated:
            logger.warning("duplicate_headers", extra={"sheet": table.name, "headers": repeated})
            raise SchemaMismatchError(table.name, headers=table.columns, duplicates=repeated)

        matches = [
            schema
            for schema in candidates
            if (expected := self.expected_headers(schema)) and expected == incoming
        ]

        if not matches:
            logger.warning(
                "schema_detection_failed",
                extra={
                    "sheet": table.name,
                    "header_count": len(incoming),
                    "candidate_count": len(candidates),
                },
            )
            raise SchemaMismatchError(
                table.name,
                headers=table.columns,
                candidates=[f"{s.qualified_name} ({s.version})" for s in candidates],
            )

        if len(matches) > 1:
            raise AmbiguousSchemaMatchError(
                table.name,
                [f"{s.qualified_name} ({s.version})" for s in matches],
            )

        schema = matches[0]
        logger.debug(
            "schema_detected",
            extra={
                "sheet": table.name,
                "entity": schema.qualified_name,
                "version": schema.version,
            },
        )
        return DetectedEntity(qualified_name=schema.qualified_name, schema=schema)
