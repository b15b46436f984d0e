"""
Declarative base and column types shared by the bookkeeping model and the
registry-built entity tables.

Everything the pipeline writes lives in the ``corch_edges_raw`` schema so
that sheet rows and their processing record commit in one transaction.
Entity tables are Core ``Table`` objects placed on ``Base.metadata``; only the
processing record is an ORM class.
"""

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.types import TypeDecorator

RAW_SCHEMA = "corch_edges_raw"


class UUIDString(TypeDecorator):
    """UUIDs as 36-character text, so SQLite and PostgreSQL share one column type."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> str | None:
        return None if value is None else str(UUID(str(value)))

    def process_result_value(self, value: Any, dialect) -> UUID | None:
        if value is None or isinstance(value, UUID):
            return value
        return UUID(value)


class StringifiedValue(TypeDecorator):
    """Text storage for ``other``-typed cells: enums by value, the rest by ``str()``."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> str | None:
        if value is None:
            return None
        return str(value.value if isinstance(value, Enum) else value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
    }


class TrackedBase(Base):
    """
    Abstract base for bookkeeping rows in the raw-data schema.

    Adds a uuid4 primary key and server-maintained created/updated stamps.
    """

    __abstract__ = True

    @declared_attr.directive
    def __table_args__(cls) -> dict:
        return {"schema": RAW_SCHEMA}

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())
