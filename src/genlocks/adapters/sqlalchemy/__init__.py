"""SQLAlchemy adapter package for genlocks."""

from __future__ import annotations

from .mappings import (
    chat_group_table,
    chat_metadata_table,
    create_all_tables,
    metadata,
    settings_document_table,
)
from .repositories import (
    ChatRow,
    GroupRow,
    SqlAlchemyChatRepository,
    SqlAlchemyGroupRepository,
    SqlAlchemySettingsRepository,
)
from .stores import SqlAlchemyChatMetadataStore, SqlAlchemyGroupStore, SqlAlchemySettingsStore
from .unit_of_work import (
    LockStorageRepositories,
    SqlAlchemyUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "ChatRow",
    "GroupRow",
    "LockStorageRepositories",
    "SqlAlchemyChatMetadataStore",
    "SqlAlchemyChatRepository",
    "SqlAlchemyGroupRepository",
    "SqlAlchemyGroupStore",
    "SqlAlchemySettingsRepository",
    "SqlAlchemySettingsStore",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "chat_group_table",
    "chat_metadata_table",
    "create_all_tables",
    "is_started",
    "metadata",
    "settings_document_table",
    "shutdown",
    "startup",
]
