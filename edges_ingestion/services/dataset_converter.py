"""
DatasetConverter -- detection plus normalization for every sheet of a dataset.

Sheets with zero data rows are skipped and left out of the result. The first
detection or conversion error aborts the whole conversion: a dataset with an
unidentified sheet is never partially written. Sheets are processed in source
order so errors are reported in the order a user sees them.
"""

from __future__ import annotations

from collections.abc import Iterable

from edges_kernel.logging_config import LogContext, get_logger
from edges_ingestion.detection.schema_detector import DEFAULT_IGNORED_COLUMNS, SchemaDetector
from edges_ingestion.domain.types import ConversionResult, NormalizedTable, SourceTable
from edges_ingestion.mapping.column_mapper import ColumnNameMapper
from edges_ingestion.normalization.table_normalizer import TableNormalizer
from edges_ingestion.schema.registry import SchemaRegistry

logger = get_logger("ingestion.converter")


class DatasetConverter:
    def __init__(self, detector: SchemaDetector, normalizer: TableNormalizer) -> None:
        self._detector = detector
        self._normalizer = normalizer

    @classmethod
    def from_registry(
        cls,
        registry: SchemaRegistry,
        ignored_columns: Iterable[str] = DEFAULT_IGNORED_COLUMNS,
    ) -> DatasetConverter:
        return cls(
            SchemaDetector(registry, ignored_columns),
            TableNormalizer(ColumnNameMapper.from_registry(registry)),
        )

    def convert_table(self, table: SourceTable) -> NormalizedTable:
        detected = self._detector.detect(table)
        return self._normalizer.normalize(detected.qualified_name, detected.schema, table)

    def convert(self, tables: Iterable[SourceTable]) -> ConversionResult:
        """
        Convert every non-empty table, fail-fast.

        Raises:
            SchemaMismatchError, AmbiguousSchemaMatchError,
            UnknownColumnError, InvalidColumnNameError, TypeConversionError
        """
        converted: list[NormalizedTable] = []
        skipped: list[str] = []
        for table in tables:
            if table.row_count == 0:
                logger.info("sheet_skipped_empty", extra={"sheet": table.name})
                skipped.append(table.name)
                continue
            with LogContext.bind(sheet_name=table.name):
                normalized = self.convert_table(table)
                logger.info(
                    "sheet_converted",
                    extra={"entity": normalized.qualified_name, "row_count": normalized.row_count},
                )
            converted.append(normalized)

        result = ConversionResult(tables=tuple(converted), skipped=tuple(skipped))
        logger.info(
            "dataset_converted",
            extra={
                "table_count": len(result.tables),
                "skipped_count": len(result.skipped),
                "total_rows": result.total_rows,
            },
        )
        return result
