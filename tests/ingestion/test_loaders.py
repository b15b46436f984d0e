"""Tests for bulk table loaders and identifier quoting."""

from datetime import date, datetime, time
from decimal import Decimal
from types import SimpleNamespace
from uuid import UUID

import pytest
from sqlalchemy import Column, Integer, MetaData, Table, Text, select

from edges_ingestion.loaders import (
    BulkTableLoader,
    InsertManyLoader,
    PostgresCopyLoader,
    quote_identifier,
    quote_table_name,
    select_loader,
)
from edges_ingestion.loaders.postgres_copy import build_copy_statement, copy_text, encode_rows
from edges_kernel.db.base import RAW_SCHEMA
from edges_kernel.exceptions import InvalidTableNameError


def _target() -> Table:
    return Table(
        "scratch",
        MetaData(),
        Column("id", Integer, key="Id", primary_key=True),
        Column("名前(漢字)", Text, key="Name"),
        Column('say "hi"', Text, key="Quote"),
        schema=RAW_SCHEMA,
    )


class TestQuoting:
    def test_quote_identifier_doubles_quotes(self):
        assert quote_identifier('a"b') == '"a""b"'

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("corch_edges_raw.contract_creation", '"corch_edges_raw"."contract_creation"'),
            ("plain", '"plain"'),
            (" raw . t ", '"raw"."t"'),
        ],
    )
    def test_quote_table_name(self, name, expected):
        assert quote_table_name(name) == expected

    @pytest.mark.parametrize("name", ["", "   ", "a.b.c", ".t", "raw."])
    def test_invalid_table_names(self, name):
        with pytest.raises(InvalidTableNameError):
            quote_table_name(name)


class TestSelectLoader:
    def test_postgres_uses_copy(self):
        assert isinstance(select_loader("postgresql"), PostgresCopyLoader)

    @pytest.mark.parametrize("dialect", ["sqlite", "mysql"])
    def test_others_use_insert(self, dialect):
        assert isinstance(select_loader(dialect), InsertManyLoader)

    def test_loaders_satisfy_protocol(self):
        assert isinstance(InsertManyLoader(), BulkTableLoader)
        assert isinstance(PostgresCopyLoader(), BulkTableLoader)


class TestCopyEncoding:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, None),
            (True, "true"),
            (False, "false"),
            (Decimal("1200"), "1200"),
            (date(2025, 5, 7), "2025-05-07"),
            (time(9, 10, 4), "09:10:04"),
            (datetime(2025, 5, 7, 9, 10, 4), "2025-05-07 09:10:04"),
            (UUID("6f1c1f6e-3a5e-4a43-9f0b-6c7e2d0e8b11"), "6f1c1f6e-3a5e-4a43-9f0b-6c7e2d0e8b11"),
        ],
    )
    def test_copy_text(self, value, expected):
        assert copy_text(value) == expected

    def test_null_and_empty_string_are_distinct(self):
        buffer = encode_rows([(1, None, ""), (2, 'a,"b"', "line\nbreak")])
        assert buffer.getvalue() == '"1",,""\n"2","a,""b""","line\nbreak"\n'

    def test_copy_statement_uses_storage_names(self):
        statement = build_copy_statement(_target(), ["Id", "Name", "Quote"])
        assert statement == (
            'COPY "corch_edges_raw"."scratch" ("id", "名前(漢字)", "say ""hi""") '
            "FROM STDIN WITH (FORMAT csv)"
        )


class _RecordingCursor:
    def __init__(self):
        self.statements: list[tuple[str, str]] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def copy_expert(self, sql, file):
        self.statements.append((sql, file.read()))


class TestPostgresCopyLoader:
    def test_copies_through_dbapi_connection(self):
        cursor = _RecordingCursor()
        connection = SimpleNamespace(
            connection=SimpleNamespace(dbapi_connection=SimpleNamespace(cursor=lambda: cursor))
        )
        loaded = PostgresCopyLoader().load(connection, _target(), ["Id", "Name"], [(1, "a"), (2, None)])

        assert loaded == 2
        sql, payload = cursor.statements[0]
        assert sql.startswith('COPY "corch_edges_raw"."scratch" ("id", "名前(漢字)")')
        assert payload == '"1","a"\n"2",\n'

    def test_no_rows_no_copy(self):
        cursor = _RecordingCursor()
        connection = SimpleNamespace(
            connection=SimpleNamespace(dbapi_connection=SimpleNamespace(cursor=lambda: cursor))
        )
        assert PostgresCopyLoader().load(connection, _target(), ["Id"], []) == 0
        assert cursor.statements == []


class TestInsertManyLoader:
    def test_batches(self, engine):
        target = _target()
        target.create(engine)
        rows = [(i, f"n{i}", None) for i in range(1, 8)]
        with engine.begin() as conn:
            loaded = InsertManyLoader(batch_size=3).load(conn, target, ["Id", "Name", "Quote"], rows)
        assert loaded == 7
        with engine.connect() as conn:
            names = conn.execute(select(target.c.Name).order_by(target.c.Id)).scalars().all()
        assert names == [f"n{i}" for i in range(1, 8)]

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            InsertManyLoader(batch_size=0)


@pytest.mark.postgres
class TestPostgresCopyRoundTrip:
    def test_null_and_empty_text_survive_copy(self, postgres_url):
        from sqlalchemy import text

        from edges_kernel.db.engine import build_engine

        eng = build_engine(postgres_url)
        target = _target()
        try:
            with eng.begin() as conn:
                conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{RAW_SCHEMA}"'))
                target.create(conn, checkfirst=True)
                conn.execute(target.delete())
                PostgresCopyLoader().load(conn, target, ["Id", "Name", "Quote"], [(1, None, ""), (2, "x", None)])
            with eng.connect() as conn:
                rows = conn.execute(select(target.c.Name, target.c.Quote).order_by(target.c.Id)).all()
            assert rows == [(None, ""), ("x", None)]
        finally:
            with eng.begin() as conn:
                target.drop(conn, checkfirst=True)
            eng.dispose()
