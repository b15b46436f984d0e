"""
XLSX workbook adapter: every sheet of an .xlsx file as an untyped SourceTable.

Layout rules:
  - row 1 is the header row; columns whose header cell is blank are dropped
  - sheets without any usable header are skipped
  - rows whose kept cells are all blank are skipped
  - empty cells become None (the null marker)
  - date cells become "yyyy/MM/dd" at midnight, else "yyyy/MM/dd HH:mm:ss"
  - integral floats become ints (Excel stores every number as a float)

File I/O only; no database or registry access.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Iterator

from edges_kernel.logging_config import get_logger
from edges_ingestion.domain.types import SourceTable

logger = get_logger("ingestion.adapters.xlsx")

WorkbookSource = str | Path | bytes


@dataclass(frozen=True)
class SheetProbe:
    """Quick look at one sheet: header names and data row count."""

    name: str
    columns: tuple[str, ...]
    row_count: int


def _header_value(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    s = str(value).strip()
    return s or None


def format_date_cell(value: datetime | date) -> str:
    if not isinstance(value, datetime):
        return value.strftime("%Y/%m/%d")
    if value.time() == time.min:
        return value.strftime("%Y/%m/%d")
    return value.strftime("%Y/%m/%d %H:%M:%S")


def cell_value(value: Any) -> Any:
    """Normalize one openpyxl cell value; blank cells become None."""
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return format_date_cell(value)
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value == "":
        return None
    return value


class XlsxWorkbookAdapter:
    """Reads every worksheet of an .xlsx workbook (openpyxl, read-only mode)."""

    def _open(self, source: WorkbookSource) -> Any:
        try:
            import openpyxl
        except ImportError as e:
            raise ImportError("XLSX support requires openpyxl. Install with: pip install openpyxl") from e

        target = io.BytesIO(source) if isinstance(source, bytes) else source
        return openpyxl.load_workbook(target, read_only=True, data_only=True)

    def _sheet_table(self, sheet: Any) -> SourceTable | None:
        rows: Iterator[tuple[Any, ...]] = sheet.iter_rows(values_only=True)
        header_row = next(rows, None)
        if header_row is None:
            return None

        kept: list[tuple[int, str]] = []
        for index, raw in enumerate(header_row):
            header = _header_value(raw)
            if header is None:
                continue
            if any(header == name for _, name in kept):
                raise ValueError(f"Duplicate column header '{header}' in sheet '{sheet.title}'")
            kept.append((index, header))
        if not kept:
            return None

        data: list[tuple[Any, ...]] = []
        for row in rows:
            values = tuple(cell_value(row[i]) if i < len(row) else None for i, _ in kept)
            if all(v is None or (isinstance(v, str) and not v.strip()) for v in values):
                continue
            data.append(values)

        return SourceTable(name=sheet.title, columns=tuple(h for _, h in kept), rows=tuple(data))

    def read_tables(self, source: WorkbookSource) -> list[SourceTable]:
        """All sheets with a usable header row, in workbook order."""
        wb = self._open(source)
        try:
            tables: list[SourceTable] = []
            for sheet in wb.worksheets:
                table = self._sheet_table(sheet)
                if table is None:
                    logger.debug("sheet_without_header_skipped", extra={"sheet": sheet.title})
                    continue
                tables.append(table)
            logger.info(
                "workbook_read",
                extra={"sheet_count": len(tables), "row_count": sum(t.row_count for t in tables)},
            )
            return tables
        finally:
            wb.close()

    def probe(self, source: WorkbookSource) -> list[SheetProbe]:
        """Header names and data row counts per sheet."""
        return [
            SheetProbe(name=t.name, columns=t.columns, row_count=t.row_count)
            for t in self.read_tables(source)
        ]
