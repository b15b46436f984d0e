"""
Pytest fixtures for the edges ingestion test suite.

Provides:
- Structured logging configured once per session, plus log capture
- In-memory SQLite engines with the raw-data schema attached
- The shipped schema registry and a small sample registry
- Session factories and a deterministic clock

Environment Variables:
- EDGES_TEST_POSTGRES_URL: PostgreSQL URL for tests marked ``postgres``.
  Those tests are skipped when it is not set.
"""

import json
import logging
import os
from io import StringIO
from typing import Generator
from uuid import UUID

import pytest
from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from edges_config import load_default_registry
from edges_ingestion.domain.types import ColumnSpec, EntitySchema, SemanticType, SourceTable
from edges_ingestion.schema.registry import SchemaRegistry
from edges_kernel.db.base import RAW_SCHEMA, Base
from edges_kernel.db.engine import build_engine, create_tables
from edges_kernel.domain.clock import DeterministicClock
from edges_kernel.logging_config import (
    LOGGER_NAMESPACE,
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """JSON logs at DEBUG for the whole run, so every event reaches captured_logs."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """No import context leaks from one test into the next."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture edges_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, writer):
            writer.write(...)
            logs = captured_logs()
            assert any(r["message"] == "dataset_write_committed" for r in logs)
    """
    buffer = StringIO()
    capture = logging.StreamHandler(buffer)
    capture.setFormatter(StructuredFormatter())
    namespace = logging.getLogger(LOGGER_NAMESPACE)
    namespace.addHandler(capture)

    yield lambda: [json.loads(line) for line in buffer.getvalue().splitlines() if line]

    namespace.removeHandler(capture)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL (EDGES_TEST_POSTGRES_URL)"
    )


# =============================================================================
# Sample entities
# =============================================================================

ORDERS_SHEET = "Orders"
RETURNS_SHEET = "Returns"


def _bookkeeping() -> ColumnSpec:
    return ColumnSpec(
        property_name="ProcessedFileId",
        column_name="processed_file_id",
        semantic_type=SemanticType.OTHER,
        python_type=UUID,
        references=f"{RAW_SCHEMA}.processed_file.id",
        indexed=True,
    )


def _identity() -> ColumnSpec:
    return ColumnSpec(
        property_name="Id",
        column_name="id",
        semantic_type=SemanticType.INT32,
        storage_type="integer",
        required=True,
        is_key=True,
        identity=True,
    )


SAMPLE_ORDERS = EntitySchema(
    name="sample_orders",
    schema=RAW_SCHEMA,
    sheet_name=ORDERS_SHEET,
    version="v1",
    columns=(
        _identity(),
        ColumnSpec("OrderNo", "注文番号", SemanticType.TEXT, storage_type="text"),
        ColumnSpec("Quantity", "数量", SemanticType.INT32, storage_type="integer", required=True),
        ColumnSpec("Amount", "金額(税込)", SemanticType.DECIMAL, storage_type="numeric(12,0)"),
        ColumnSpec("Shipped", "出荷済", SemanticType.BOOL, storage_type="boolean", required=True),
        ColumnSpec("OrderDate", "受注日", SemanticType.DATE, storage_type="date"),
        ColumnSpec("OrderedAt", "受注日時", SemanticType.DATETIME, storage_type="timestamp"),
        _bookkeeping(),
    ),
)

SAMPLE_RETURNS = EntitySchema(
    name="sample_returns",
    schema=RAW_SCHEMA,
    sheet_name=RETURNS_SHEET,
    version="v1",
    columns=(
        _identity(),
        ColumnSpec("OrderNo", "注文番号", SemanticType.TEXT, storage_type="text"),
        ColumnSpec("ReturnedQuantity", "返品数", SemanticType.INT32, storage_type="integer"),
        ColumnSpec("ReturnTime", "返品時刻", SemanticType.TIME, storage_type="time"),
        _bookkeeping(),
    ),
)

ORDERS_HEADERS = ("注文番号", "数量", "金額(税込)", "出荷済", "受注日", "受注日時")
RETURNS_HEADERS = ("注文番号", "返品数", "返品時刻")


def orders_table(rows: list[tuple] | None = None, name: str = ORDERS_SHEET) -> SourceTable:
    """Orders sheet with three valid rows by default."""
    if rows is None:
        rows = [
            ("A-001", "3", "1,200", "yes", "2025/05/07", "2025/05/07 9:10:04"),
            ("A-002", 5, 980, "no", "2025-05-08", None),
            ("A-003", None, None, None, None, "2025-05-09T10:00:00"),
        ]
    return SourceTable.from_records(name, list(ORDERS_HEADERS), rows)


def returns_table(rows: list[tuple] | None = None) -> SourceTable:
    """Returns sheet with two valid rows by default."""
    if rows is None:
        rows = [
            ("A-001", "1", "13:45:00"),
            ("A-002", "2", "2025/05/09 08:30:00"),
        ]
    return SourceTable.from_records(RETURNS_SHEET, list(RETURNS_HEADERS), rows)


def count_rows(session: Session, registry: SchemaRegistry, entity: str) -> int:
    table = registry.table(entity, Base.metadata)
    return session.execute(select(func.count()).select_from(table)).scalar_one()


# =============================================================================
# Registry fixtures
# =============================================================================


@pytest.fixture(scope="session")
def default_registry() -> SchemaRegistry:
    """Registry built from the shipped YAML schema pack."""
    return load_default_registry()


@pytest.fixture(scope="session")
def sample_registry() -> SchemaRegistry:
    return SchemaRegistry([SAMPLE_ORDERS, SAMPLE_RETURNS])


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(scope="function")
def engine(default_registry, sample_registry) -> Generator[Engine, None, None]:
    """Fresh in-memory SQLite database with every known table created."""
    eng = build_engine("sqlite://")
    create_tables(default_registry, engine=eng)
    create_tables(sample_registry, engine=eng)
    yield eng
    eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture(scope="function")
def session(session_factory) -> Generator[Session, None, None]:
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture(scope="session")
def postgres_url() -> str:
    url = os.environ.get("EDGES_TEST_POSTGRES_URL")
    if not url:
        pytest.skip("EDGES_TEST_POSTGRES_URL not set")
    return url
