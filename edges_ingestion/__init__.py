"""
edges_ingestion -- Schema-driven spreadsheet ingestion.

Detects which registered entity a sheet belongs to, coerces its untyped cells
into typed rows, and loads every table of a workbook together with its
processing record in a single database transaction.

Architecture:
    edges_ingestion/ is a top-level package. It imports from edges_kernel
    (errors, logging, database) and is configured by edges_config. Nothing
    in edges_kernel imports from ingestion.
"""
