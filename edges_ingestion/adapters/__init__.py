"""Workbook adapters (file I/O only, no DB)."""

from edges_ingestion.adapters.xlsx_adapter import SheetProbe, XlsxWorkbookAdapter

__all__ = ["SheetProbe", "XlsxWorkbookAdapter"]
