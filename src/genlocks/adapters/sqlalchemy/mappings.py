"""SQLAlchemy Core tables for the settings document, chat metadata and groups."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Column, DateTime, Dialect, MetaData, String, Table, TypeDecorator

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

metadata = MetaData()


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


settings_document_table = Table(
    "settings_document",
    metadata,
    Column("namespace", String(64), primary_key=True),
    Column("payload", JSON, nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

# Chat metadata is a free-form mapping; lock records sit under a namespaced key.
chat_metadata_table = Table(
    "chat_metadata",
    metadata,
    Column("chat_id", String(255), primary_key=True),
    Column("character_name", String(255), nullable=True),
    Column("payload", JSON, nullable=False, default=dict),
    Column("updated_at", UTCDateTime(), nullable=False),
)

chat_group_table = Table(
    "chat_group",
    metadata,
    Column("group_id", String(255), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("chat_id", String(255), nullable=True),
    Column("payload", JSON, nullable=False, default=dict),
    Column("updated_at", UTCDateTime(), nullable=False),
)


def create_all_tables(engine: Engine) -> None:
    log.debug("Creating lock storage tables on %s", engine.url)
    metadata.create_all(engine)
