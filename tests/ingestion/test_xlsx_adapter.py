"""Tests for the XLSX workbook adapter (openpyxl, read-only)."""

from datetime import date, datetime, time

import openpyxl
import pytest

from edges_ingestion.adapters import SheetProbe, XlsxWorkbookAdapter
from edges_ingestion.adapters.xlsx_adapter import cell_value, format_date_cell


def write_workbook(path, sheets: dict[str, list[list]]):
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(row)
    wb.save(path)
    return path


class TestCellValue:
    def test_midnight_datetime_is_date_text(self):
        assert cell_value(datetime(2025, 5, 7)) == "2025/05/07"

    def test_datetime_with_time(self):
        assert cell_value(datetime(2025, 5, 7, 9, 10, 4)) == "2025/05/07 09:10:04"

    def test_date_and_time(self):
        assert format_date_cell(date(2025, 5, 7)) == "2025/05/07"
        assert cell_value(time(13, 45)) == "13:45:00"

    def test_integral_float_becomes_int(self):
        assert cell_value(3.0) == 3
        assert isinstance(cell_value(3.0), int)
        assert cell_value(3.5) == 3.5

    def test_empty_string_is_null(self):
        assert cell_value("") is None
        assert cell_value(None) is None
        assert cell_value(" x ") == " x "


class TestReadTables:
    def test_reads_every_sheet_in_order(self, tmp_path):
        path = write_workbook(tmp_path / "book.xlsx", {
            "Orders": [["注文番号", "数量"], ["A-001", 3], ["A-002", 5]],
            "Returns": [["注文番号"], ["A-001"]],
        })
        tables = XlsxWorkbookAdapter().read_tables(path)
        assert [t.name for t in tables] == ["Orders", "Returns"]
        assert tables[0].columns == ("注文番号", "数量")
        assert tables[0].rows == (("A-001", 3), ("A-002", 5))

    def test_reads_from_bytes(self, tmp_path):
        path = write_workbook(tmp_path / "book.xlsx", {"S": [["a"], ["x"]]})
        tables = XlsxWorkbookAdapter().read_tables(path.read_bytes())
        assert tables[0].rows == (("x",),)

    def test_date_cells_become_text(self, tmp_path):
        path = write_workbook(tmp_path / "book.xlsx", {
            "S": [["受注日", "受注日時"], [datetime(2025, 5, 7), datetime(2025, 5, 7, 9, 10, 4)]],
        })
        table = XlsxWorkbookAdapter().read_tables(path)[0]
        assert table.rows == (("2025/05/07", "2025/05/07 09:10:04"),)

    def test_blank_header_columns_dropped(self, tmp_path):
        path = write_workbook(tmp_path / "book.xlsx", {
            "S": [["a", None, "b"], [1, "ignored", 2]],
        })
        table = XlsxWorkbookAdapter().read_tables(path)[0]
        assert table.columns == ("a", "b")
        assert table.rows == ((1, 2),)

    def test_blank_rows_skipped_and_empty_cells_null(self, tmp_path):
        path = write_workbook(tmp_path / "book.xlsx", {
            "S": [["a", "b"], [1, None], [None, None], ["  ", None], [None, 4]],
        })
        table = XlsxWorkbookAdapter().read_tables(path)[0]
        assert table.rows == ((1, None), (None, 4))

    def test_headers_trimmed(self, tmp_path):
        path = write_workbook(tmp_path / "book.xlsx", {"S": [[" 契約ID ", 2025], ["x", "y"]]})
        assert XlsxWorkbookAdapter().read_tables(path)[0].columns == ("契約ID", "2025")

    def test_duplicate_headers_rejected(self, tmp_path):
        path = write_workbook(tmp_path / "book.xlsx", {"S": [["a", "a"], [1, 2]]})
        with pytest.raises(ValueError, match="Duplicate column header"):
            XlsxWorkbookAdapter().read_tables(path)

    def test_sheet_without_header_skipped(self, tmp_path):
        path = write_workbook(tmp_path / "book.xlsx", {"Empty": [], "S": [["a"], [1]]})
        assert [t.name for t in XlsxWorkbookAdapter().read_tables(path)] == ["S"]

    def test_header_only_sheet_has_zero_rows(self, tmp_path):
        path = write_workbook(tmp_path / "book.xlsx", {"S": [["a", "b"]]})
        table = XlsxWorkbookAdapter().read_tables(path)[0]
        assert table.row_count == 0


class TestProbe:
    def test_probe(self, tmp_path):
        path = write_workbook(tmp_path / "book.xlsx", {"S": [["a", "b"], [1, 2], [3, 4]]})
        assert XlsxWorkbookAdapter().probe(path) == [SheetProbe(name="S", columns=("a", "b"), row_count=2)]
