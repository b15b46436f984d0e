"""
Tests for DatasetWriter: processing record and table loads in one transaction.

Runs against in-memory SQLite with the raw-data schema attached; the bulk
path is InsertManyLoader.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from edges_ingestion.domain.types import NormalizedTable
from edges_ingestion.loaders import InsertManyLoader
from edges_ingestion.services import DatasetConverter, DatasetWriter
from edges_kernel.db.base import Base
from edges_kernel.domain.processing import ProcessingStatus
from edges_kernel.exceptions import TransactionFailureError
from edges_kernel.models.processed_file import ProcessedFileModel

from conftest import SAMPLE_ORDERS, SAMPLE_RETURNS, count_rows, orders_table, returns_table


class FailingLoader:
    """Delegates to InsertManyLoader and fails on the n-th table."""

    def __init__(self, fail_on_call: int):
        self._inner = InsertManyLoader()
        self._fail_on_call = fail_on_call
        self.calls = 0

    def load(self, connection, target, keys, rows):
        self.calls += 1
        if self.calls == self._fail_on_call:
            raise RuntimeError("connection reset during load")
        return self._inner.load(connection, target, keys, rows)


@pytest.fixture
def conversion(sample_registry):
    converter = DatasetConverter.from_registry(sample_registry)
    return converter.convert([orders_table(), returns_table()])


@pytest.fixture
def writer(sample_registry, clock) -> DatasetWriter:
    return DatasetWriter(sample_registry, clock=clock)


class TestSuccessfulWrite:
    def test_rows_and_record_committed(self, writer, conversion, session, session_factory, sample_registry, clock):
        empty = NormalizedTable(
            qualified_name=SAMPLE_RETURNS.qualified_name,
            columns=conversion.tables[1].columns,
        )
        result = writer.write(
            list(conversion.tables) + [empty],
            session,
            "orders.xlsx",
            file_hash="ab" * 32,
            file_size=1234,
            source_item_id="item-1",
        )

        assert result.record_count == 5
        assert result.table_counts == {
            SAMPLE_ORDERS.qualified_name: 3,
            SAMPLE_RETURNS.qualified_name: 2,
        }

        with session_factory() as check:
            record = check.get(ProcessedFileModel, result.processed_file_id).to_dto()
            assert record.status is ProcessingStatus.SUCCESS
            assert record.record_count == 5
            assert record.label == "orders.xlsx"
            assert record.file_hash == "ab" * 32
            assert record.file_size_bytes == 1234
            assert record.source_item_id == "item-1"
            assert record.processed_at.replace(tzinfo=None) == clock.now().replace(tzinfo=None)
            assert count_rows(check, sample_registry, "sample_orders") == 3
            assert count_rows(check, sample_registry, "sample_returns") == 2

    def test_rows_stamped_with_record_id(self, writer, conversion, session, session_factory, sample_registry):
        result = writer.write(conversion, session, "orders.xlsx")

        orders = sample_registry.table("sample_orders", Base.metadata)
        with session_factory() as check:
            rows = check.execute(select(orders).order_by(orders.c.Id)).mappings().all()
        assert {r["ProcessedFileId"] for r in rows} == {result.processed_file_id}
        assert [r["Id"] for r in rows] == [1, 2, 3]
        assert rows[0]["Amount"] == Decimal("1200")
        assert rows[0]["OrderDate"] == date(2025, 5, 7)
        assert rows[2]["Quantity"] == 0
        assert rows[2]["OrderNo"] is None

    def test_two_writes_get_distinct_records(self, writer, conversion, session, session_factory):
        first = writer.write(conversion, session, "a.xlsx")
        second = writer.write(conversion, session, "b.xlsx")
        assert first.processed_file_id != second.processed_file_id
        with session_factory() as check:
            assert len(check.scalars(select(ProcessedFileModel)).all()) == 2

    def test_empty_dataset_records_zero_rows(self, writer, session, session_factory):
        result = writer.write([], session, "empty.xlsx")
        assert result.record_count == 0
        with session_factory() as check:
            assert check.get(ProcessedFileModel, result.processed_file_id).status == "Success"

    def test_commit_is_logged(self, writer, conversion, session, captured_logs):
        result = writer.write(conversion, session, "orders.xlsx")
        committed = [r for r in captured_logs() if r["message"] == "dataset_write_committed"]
        assert committed[0]["record_count"] == 5
        assert committed[0]["processed_file_id"] == str(result.processed_file_id)


class TestRollback:
    def test_failure_on_second_table_rolls_back_everything(
        self, sample_registry, clock, conversion, session, session_factory
    ):
        loader = FailingLoader(fail_on_call=2)
        writer = DatasetWriter(sample_registry, clock=clock, loader=loader)

        with pytest.raises(TransactionFailureError) as exc_info:
            writer.write(conversion, session, "orders.xlsx")

        exc = exc_info.value
        assert exc.step == "bulk_load"
        assert exc.table_name == SAMPLE_RETURNS.qualified_name
        assert isinstance(exc.__cause__, RuntimeError)
        assert loader.calls == 2

        with session_factory() as check:
            assert check.scalars(select(ProcessedFileModel)).all() == []
            assert count_rows(check, sample_registry, "sample_orders") == 0
            assert count_rows(check, sample_registry, "sample_returns") == 0

    def test_unknown_entity_fails_in_bulk_load(self, writer, session, session_factory):
        stray = NormalizedTable(qualified_name="corch_edges_raw.nowhere", columns=())
        with pytest.raises(TransactionFailureError) as exc_info:
            writer.write([stray], session, "stray.xlsx")
        assert exc_info.value.step == "bulk_load"
        with session_factory() as check:
            assert check.scalars(select(ProcessedFileModel)).all() == []

    def test_rollback_is_logged(self, sample_registry, clock, conversion, session, captured_logs):
        writer = DatasetWriter(sample_registry, clock=clock, loader=FailingLoader(fail_on_call=1))
        with pytest.raises(TransactionFailureError):
            writer.write(conversion, session, "orders.xlsx")
        rolled_back = [r for r in captured_logs() if r["message"] == "dataset_write_rolled_back"]
        assert rolled_back[0]["step"] == "bulk_load"
        assert rolled_back[0]["exc_type"] == "RuntimeError"

    def test_interrupt_rolls_back_and_propagates(self, sample_registry, clock, conversion, session, session_factory):
        class InterruptingLoader:
            def load(self, connection, target, keys, rows):
                raise KeyboardInterrupt

        writer = DatasetWriter(sample_registry, clock=clock, loader=InterruptingLoader())
        with pytest.raises(KeyboardInterrupt):
            writer.write(conversion, session, "orders.xlsx")
        with session_factory() as check:
            assert check.scalars(select(ProcessedFileModel)).all() == []
