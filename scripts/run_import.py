#!/usr/bin/env python3
"""
Import workbook files into the raw contract tables.

Each file is hashed, checked against earlier successful imports, converted
sheet by sheet against the registered entity schemas, and written together
with its processing record in one transaction.

Settings come from the environment (EDGES_DATABASE_URL, EDGES_SCHEMA_PATHS,
EDGES_LOG_LEVEL, EDGES_IGNORED_COLUMNS); flags override them.

Usage:
    python3 scripts/run_import.py --file <path> [--file <path> ...] [options]

Examples:
    # Import one export into the configured database
    python3 scripts/run_import.py --file 新規to業務管理_20250507.xlsx

    # Create the schema and tables first (local SQLite)
    python3 scripts/run_import.py --db-url sqlite:///edges.db --create-tables --file export.xlsx

    # Show which entity each sheet matches, without touching the database
    python3 scripts/run_import.py --file export.xlsx --probe-only
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Import .xlsx exports: detect -> normalize -> write (single transaction per file).",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--file",
        dest="files",
        action="append",
        required=True,
        type=Path,
        help="Path to an .xlsx workbook. Repeat for several files.",
    )
    parser.add_argument(
        "--probe-only",
        action="store_true",
        help="Detect the entity of each sheet and print row counts. No DB access.",
    )
    parser.add_argument(
        "--schema",
        dest="schemas",
        action="append",
        type=Path,
        default=None,
        help="YAML schema file or directory (default: EDGES_SCHEMA_PATHS or the shipped pack).",
    )
    parser.add_argument(
        "--db-url",
        default=None,
        help="Database URL (default: EDGES_DATABASE_URL).",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create schemas and tables before importing.",
    )
    parser.add_argument(
        "--label",
        default=None,
        help="Processing record label (default: the file name). Only valid with one --file.",
    )
    parser.add_argument(
        "--source-item-id",
        default=None,
        help="External identifier of the source document, stored on the processing record.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: EDGES_LOG_LEVEL or INFO).",
    )
    args = parser.parse_args(argv)
    if args.label and len(args.files) > 1:
        parser.error("--label can only be used with a single --file")
    return args


def _probe(files: list[Path], registry, ignored_columns) -> int:
    from edges_ingestion.adapters import XlsxWorkbookAdapter
    from edges_ingestion.detection import SchemaDetector
    from edges_kernel.exceptions import SchemaError

    adapter = XlsxWorkbookAdapter()
    detector = SchemaDetector(registry, ignored_columns)
    exit_code = 0
    for path in files:
        print(f"{path.name}:")
        for table in adapter.read_tables(path):
            try:
                detected = detector.detect(table)
                target = f"{detected.qualified_name} ({detected.schema.version})"
            except SchemaError as e:
                target = f"NO MATCH [{e.code}]"
                exit_code = 2
            print(f"  {table.name}: {table.row_count} rows -> {target}")
    return exit_code


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    missing = [p for p in args.files if not p.is_file()]
    if missing:
        for p in missing:
            print(f"ERROR: File not found: {p}", file=sys.stderr)
        return 1

    # Lazy imports so we fail fast on args first
    from dataclasses import replace

    from edges_config import EdgesSettings, load_default_registry
    from edges_kernel.logging_config import configure_logging

    settings = EdgesSettings.from_env()
    if args.schemas:
        settings = replace(settings, schema_paths=tuple(args.schemas))
    if args.db_url:
        settings = replace(settings, database_url=args.db_url)
    configure_logging(level=(args.log_level or "").upper() or settings.log_level)

    try:
        registry = load_default_registry(settings)
    except Exception as e:
        print(f"ERROR: Failed to load schema definitions: {e}", file=sys.stderr)
        return 1

    if args.probe_only:
        return _probe(args.files, registry, settings.ignored_columns)

    from edges_ingestion.services import FileImportService
    from edges_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
    from edges_kernel.exceptions import EdgesKernelError

    init_engine_from_url(settings.database_url)
    if args.create_tables:
        create_tables(registry)

    service = FileImportService(
        get_session_factory(),
        registry,
        ignored_columns=settings.ignored_columns,
    )

    failures = 0
    for path in args.files:
        try:
            outcome = service.import_file(path, label=args.label, source_item_id=args.source_item_id)
        except EdgesKernelError as e:
            failures += 1
            print(f"FAILED {path.name} [{e.code}]: {e}", file=sys.stderr)
            continue
        if outcome.skipped:
            print(f"SKIPPED {path.name}: already imported as {outcome.processed_file_id}")
            continue
        print(f"OK {path.name}: {outcome.record_count} rows (processed_file {outcome.processed_file_id})")
        for name, count in outcome.table_counts.items():
            print(f"  {name}: {count}")
        for sheet in outcome.skipped_sheets:
            print(f"  {sheet}: empty, skipped")

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
