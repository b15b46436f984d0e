"""
Engine and session management for the ingestion database.

PostgreSQL is the production target: schemas are real, and the dataset writer
bulk-loads with COPY. SQLite serves local runs and the test suite; there the
``corch_edges_raw`` schema is emulated by ATTACHing a second database under
that name on every new connection, so schema-qualified names work unchanged.
In-memory SQLite uses a single shared connection so the attached database
outlives individual sessions.

Module state (one engine and its session factory) is set by
``init_engine_from_url`` and cleared by ``reset_engine``. Callers that manage
their own engine (tests, the import service) use ``build_engine`` and pass
the engine around explicitly.
"""

from __future__ import annotations

import atexit
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from sqlalchemy import MetaData, create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from edges_kernel.db.base import RAW_SCHEMA, Base
from edges_kernel.logging_config import get_logger

logger = get_logger("db.engine")


class TableProvider(Protocol):
    """Registers entity tables on a MetaData; implemented by SchemaRegistry."""

    def build_tables(self, metadata: MetaData) -> Any: ...


@dataclass
class _EngineState:
    engine: Engine | None = None
    session_factory: sessionmaker[Session] | None = None

    def require_factory(self) -> sessionmaker[Session]:
        if self.session_factory is None:
            raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
        return self.session_factory


_state = _EngineState()


def _sqlite_engine(url: str, echo: bool, schemas: tuple[str, ...]) -> Engine:
    parsed = make_url(url)
    in_memory = parsed.database in (None, "", ":memory:")
    if in_memory:
        attach_to = {schema: ":memory:" for schema in schemas}
        engine = create_engine(
            url, echo=echo, poolclass=StaticPool, connect_args={"check_same_thread": False}
        )
    else:
        main = Path(parsed.database)
        attach_to = {schema: str(main.with_name(f"{main.stem}.{schema}.db")) for schema in schemas}
        engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _attach_schemas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        try:
            for schema, path in attach_to.items():
                cursor.execute(f"ATTACH DATABASE '{path}' AS \"{schema}\"")
        finally:
            cursor.close()

    return engine


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    schemas: tuple[str, ...] = (RAW_SCHEMA,),
) -> Engine:
    """
    Create an Engine for ``database_url`` without touching module state.

    ``pool_size``/``max_overflow`` apply to PostgreSQL; ``schemas`` are the
    namespaces emulated on SQLite.
    """
    if make_url(database_url).get_backend_name() == "sqlite":
        return _sqlite_engine(database_url, echo, schemas)
    return create_engine(
        database_url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        isolation_level="READ COMMITTED",
    )


def init_engine_from_url(database_url: str, echo: bool = False, **kwargs: Any) -> Engine:
    """Set the module engine and session factory, replacing any previous one."""
    reset_engine()
    engine = build_engine(database_url, echo=echo, **kwargs)
    _state.engine = engine
    _state.session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    logger.info("engine_initialized", extra={"dialect": engine.dialect.name})
    return engine


def get_engine() -> Engine:
    if _state.engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _state.engine


def get_session_factory() -> sessionmaker[Session]:
    return _state.require_factory()


def get_session() -> Session:
    return _state.require_factory()()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit on normal exit; roll back on any exception or interrupt; always close."""
    session = get_session()
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        logger.warning("session_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(registry: TableProvider | None = None, engine: Engine | None = None) -> None:
    """
    Create the processed_file table and every entity table of ``registry``.

    PostgreSQL schemas are created first when missing.
    """
    import edges_kernel.models  # noqa: F401

    engine = engine or get_engine()
    if registry is not None:
        registry.build_tables(Base.metadata)

    if engine.dialect.name == "postgresql":
        namespaces = sorted({t.schema for t in Base.metadata.tables.values() if t.schema})
        with engine.begin() as conn:
            for namespace in namespaces:
                conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{namespace}"'))

    Base.metadata.create_all(engine)
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables(engine: Engine | None = None) -> None:
    """Drop every table on ``Base.metadata``. Test and local-reset helper."""
    Base.metadata.drop_all(engine or get_engine())


def reset_engine() -> None:
    if _state.engine is not None:
        _state.engine.dispose()
    _state.engine = None
    _state.session_factory = None


def is_postgres() -> bool:
    return _state.engine is not None and _state.engine.dialect.name == "postgresql"


atexit.register(reset_engine)
