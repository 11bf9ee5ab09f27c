"""Persistence ports implemented on top of the SQLAlchemy unit of work."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from genlocks.adapters.translator import (
    lock_to_payload,
    parse_lock,
    settings_from_payload,
    settings_to_payload,
)
from genlocks.config.engine import DEFAULT_SETTINGS_NAMESPACE
from genlocks.domain.errors import StorageUnavailableError
from genlocks.domain.model import Dimension

from .unit_of_work import SqlAlchemyUnitOfWork

if TYPE_CHECKING:
    from genlocks.domain.model import LockRecord, SettingsDocument

    from .repositories import ChatRow, GroupRow

UnitOfWorkFactory = Callable[[], SqlAlchemyUnitOfWork]

log = logging.getLogger(__name__)


def _read_namespaced_lock(metadata: dict[str, object], namespace: str) -> LockRecord | None:
    try:
        return parse_lock(metadata.get(namespace))
    except ValidationError:
        log.warning("Ignoring malformed lock payload under %r", namespace)
        return None


def _with_namespaced_lock(
    metadata: dict[str, object], namespace: str, record: LockRecord | None
) -> dict[str, object]:
    updated = dict(metadata)
    if record is None:
        updated.pop(namespace, None)
    else:
        updated[namespace] = lock_to_payload(record)
    return updated


class SqlAlchemySettingsStore:
    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory = SqlAlchemyUnitOfWork,
        *,
        namespace: str = DEFAULT_SETTINGS_NAMESPACE,
    ) -> None:
        self._uow = unit_of_work_factory
        self._namespace = namespace

    def load(self) -> SettingsDocument | None:
        try:
            with self._uow() as uow:
                payload = uow.repositories.settings.get(self._namespace)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("Could not load the settings document") from exc
        if payload is None:
            return None
        try:
            return settings_from_payload(payload)
        except ValidationError as exc:
            raise StorageUnavailableError(
                f"Stored settings under {self._namespace!r} are malformed"
            ) from exc

    def save(self, document: SettingsDocument) -> None:
        try:
            with self._uow() as uow:
                uow.repositories.settings.put(self._namespace, settings_to_payload(document))
                uow.commit()
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("Could not save the settings document") from exc


class SqlAlchemyChatMetadataStore:
    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory = SqlAlchemyUnitOfWork,
        *,
        namespace: str = DEFAULT_SETTINGS_NAMESPACE,
    ) -> None:
        self._uow = unit_of_work_factory
        self._namespace = namespace

    def _row(self, chat_id: str) -> ChatRow | None:
        try:
            with self._uow() as uow:
                return uow.repositories.chats.get(chat_id)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(
                f"Could not read chat metadata for {chat_id}", dimension=Dimension.CHAT
            ) from exc

    def read(self, chat_id: str) -> LockRecord | None:
        row = self._row(chat_id)
        if row is None:
            return None
        return _read_namespaced_lock(row.metadata, self._namespace)

    def register(self, chat_id: str, *, character_name: str | None = None) -> None:
        """Record a chat (and the character it belongs to) if it is not known yet."""

        try:
            with self._uow() as uow:
                if uow.repositories.chats.get(chat_id) is None:
                    uow.repositories.chats.add(chat_id, character_name=character_name)
                    uow.commit()
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(
                f"Could not register chat {chat_id}", dimension=Dimension.CHAT
            ) from exc

    def character_name(self, chat_id: str) -> str | None:
        row = self._row(chat_id)
        return row.character_name if row is not None else None

    async def write(self, chat_id: str, record: LockRecord | None) -> None:
        try:
            with self._uow() as uow:
                row = uow.repositories.chats.get(chat_id)
                metadata = row.metadata if row is not None else {}
                uow.repositories.chats.put_metadata(
                    chat_id, _with_namespaced_lock(metadata, self._namespace, record)
                )
                uow.commit()
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(
                f"Could not save chat metadata for {chat_id}", dimension=Dimension.CHAT
            ) from exc


class SqlAlchemyGroupStore:
    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory = SqlAlchemyUnitOfWork,
        *,
        namespace: str = DEFAULT_SETTINGS_NAMESPACE,
    ) -> None:
        self._uow = unit_of_work_factory
        self._namespace = namespace

    def _row(self, group_id: str) -> GroupRow | None:
        try:
            with self._uow() as uow:
                return uow.repositories.groups.get(group_id)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(
                f"Could not read group {group_id}", dimension=Dimension.GROUP
            ) from exc

    def register(self, group_id: str, *, name: str, chat_id: str | None = None) -> None:
        try:
            with self._uow() as uow:
                if uow.repositories.groups.get(group_id) is None:
                    uow.repositories.groups.add(group_id, name=name, chat_id=chat_id)
                    uow.commit()
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(
                f"Could not register group {group_id}", dimension=Dimension.GROUP
            ) from exc

    def exists(self, group_id: str) -> bool:
        return self._row(group_id) is not None

    def read(self, group_id: str) -> LockRecord | None:
        row = self._row(group_id)
        if row is None:
            return None
        return _read_namespaced_lock(row.metadata, self._namespace)

    async def write(self, group_id: str, record: LockRecord | None) -> None:
        try:
            with self._uow() as uow:
                row = uow.repositories.groups.get(group_id)
                if row is None:
                    raise StorageUnavailableError(
                        f"Unknown group: {group_id!r}", dimension=Dimension.GROUP
                    )
                uow.repositories.groups.put_metadata(
                    group_id, _with_namespaced_lock(row.metadata, self._namespace, record)
                )
                uow.commit()
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(
                f"Could not save group {group_id}", dimension=Dimension.GROUP
            ) from exc
