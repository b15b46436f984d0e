"""Tests for engine construction and the SQLite schema emulation."""

import pytest
from sqlalchemy import inspect, text

from edges_kernel.db import engine as engine_module
from edges_kernel.db.base import RAW_SCHEMA
from edges_kernel.db.engine import build_engine, create_tables, drop_tables


class TestBuildEngine:
    def test_in_memory_sqlite_attaches_raw_schema(self):
        eng = build_engine("sqlite://")
        try:
            with eng.connect() as conn:
                names = [row[1] for row in conn.execute(text("PRAGMA database_list"))]
            assert RAW_SCHEMA in names
        finally:
            eng.dispose()

    def test_file_sqlite_attaches_sibling_file(self, tmp_path):
        db_path = tmp_path / "edges.db"
        eng = build_engine(f"sqlite:///{db_path}")
        try:
            create_tables(engine=eng)
            assert (tmp_path / f"edges.{RAW_SCHEMA}.db").exists()
        finally:
            eng.dispose()


class TestCreateTables:
    def test_bookkeeping_and_entity_tables_created(self, engine, default_registry):
        tables = inspect(engine).get_table_names(schema=RAW_SCHEMA)
        assert "processed_file" in tables
        for entity in default_registry.entities():
            assert entity.split(".")[1] in tables

    def test_drop_tables(self, engine):
        drop_tables(engine)
        assert inspect(engine).get_table_names(schema=RAW_SCHEMA) == []


class TestModuleState:
    def test_session_before_init_raises(self):
        engine_module.reset_engine()
        with pytest.raises(RuntimeError):
            engine_module.get_session()
        with pytest.raises(RuntimeError):
            engine_module.get_session_factory()

    def test_init_and_session_scope_commits(self):
        engine_module.init_engine_from_url("sqlite://")
        try:
            create_tables()
            with engine_module.session_scope() as session:
                session.execute(text(f'CREATE TABLE "{RAW_SCHEMA}".scratch (x INTEGER)'))
                session.execute(text(f'INSERT INTO "{RAW_SCHEMA}".scratch VALUES (1)'))
            with engine_module.session_scope() as session:
                count = session.execute(text(f'SELECT count(*) FROM "{RAW_SCHEMA}".scratch')).scalar_one()
            assert count == 1
            assert engine_module.is_postgres() is False
        finally:
            engine_module.reset_engine()

    def test_session_scope_rolls_back(self):
        engine_module.init_engine_from_url("sqlite://")
        try:
            with engine_module.session_scope() as session:
                session.execute(text(f'CREATE TABLE "{RAW_SCHEMA}".scratch (x INTEGER)'))
            with pytest.raises(ValueError):
                with engine_module.session_scope() as session:
                    session.execute(text(f'INSERT INTO "{RAW_SCHEMA}".scratch VALUES (1)'))
                    raise ValueError("boom")
            with engine_module.session_scope() as session:
                count = session.execute(text(f'SELECT count(*) FROM "{RAW_SCHEMA}".scratch')).scalar_one()
            assert count == 0
        finally:
            engine_module.reset_engine()
