"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, cast

from sqlalchemy import insert, select, update

from genlocks.adapters.sqlalchemy.mappings import (
    chat_group_table,
    chat_metadata_table,
    settings_document_table,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ChatRow:
    chat_id: str
    character_name: str | None
    metadata: dict[str, object]


@dataclass(frozen=True, slots=True)
class GroupRow:
    group_id: str
    name: str
    chat_id: str | None
    metadata: dict[str, object]


class SqlAlchemySettingsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, namespace: str) -> dict[str, object] | None:
        stmt = select(settings_document_table.c.payload).where(
            settings_document_table.c.namespace == namespace
        )
        payload = self.session.execute(stmt).scalar_one_or_none()
        return cast("dict[str, object] | None", payload)

    def put(self, namespace: str, payload: dict[str, object]) -> None:
        values = {"payload": payload, "updated_at": _utcnow()}
        if self.get(namespace) is None:
            self.session.execute(
                insert(settings_document_table).values(namespace=namespace, **values)
            )
        else:
            self.session.execute(
                update(settings_document_table)
                .where(settings_document_table.c.namespace == namespace)
                .values(**values)
            )


class SqlAlchemyChatRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, chat_id: str) -> ChatRow | None:
        stmt = select(chat_metadata_table).where(chat_metadata_table.c.chat_id == chat_id)
        row = self.session.execute(stmt).mappings().one_or_none()
        if row is None:
            return None
        return ChatRow(
            chat_id=row["chat_id"],
            character_name=row["character_name"],
            metadata=dict(row["payload"] or {}),
        )

    def add(self, chat_id: str, *, character_name: str | None = None) -> ChatRow:
        self.session.execute(
            insert(chat_metadata_table).values(
                chat_id=chat_id,
                character_name=character_name,
                payload={},
                updated_at=_utcnow(),
            )
        )
        return ChatRow(chat_id=chat_id, character_name=character_name, metadata={})

    def put_metadata(self, chat_id: str, metadata: dict[str, object]) -> None:
        if self.get(chat_id) is None:
            self.add(chat_id)
        self.session.execute(
            update(chat_metadata_table)
            .where(chat_metadata_table.c.chat_id == chat_id)
            .values(payload=metadata, updated_at=_utcnow())
        )


class SqlAlchemyGroupRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, group_id: str) -> GroupRow | None:
        stmt = select(chat_group_table).where(chat_group_table.c.group_id == group_id)
        row = self.session.execute(stmt).mappings().one_or_none()
        if row is None:
            return None
        return GroupRow(
            group_id=row["group_id"],
            name=row["name"],
            chat_id=row["chat_id"],
            metadata=dict(row["payload"] or {}),
        )

    def add(self, group_id: str, *, name: str, chat_id: str | None = None) -> GroupRow:
        self.session.execute(
            insert(chat_group_table).values(
                group_id=group_id,
                name=name,
                chat_id=chat_id,
                payload={},
                updated_at=_utcnow(),
            )
        )
        return GroupRow(group_id=group_id, name=name, chat_id=chat_id, metadata={})

    def put_metadata(self, group_id: str, metadata: dict[str, object]) -> None:
        self.session.execute(
            update(chat_group_table)
            .where(chat_group_table.c.group_id == group_id)
            .values(payload=metadata, updated_at=_utcnow())
        )
