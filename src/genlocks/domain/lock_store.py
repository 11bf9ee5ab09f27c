"""CRUD for lock records per dimension, templates and preferences.

Character and model locks, templates and preferences share one settings document;
chat locks live in chat metadata and group locks on the group record. Each of those
goes through its own port.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import TYPE_CHECKING

from genlocks.domain.errors import (
    InvalidConfigurationError,
    LockEngineError,
    StorageUnavailableError,
)
from genlocks.domain.model import (
    DEFAULT_PREFERENCES,
    APPLY_ORDER,
    Dimension,
    IndexKey,
    LockableItem,
    LockRecord,
    NameKey,
    Preferences,
    PromptTemplate,
    SettingsDocument,
    character_key_chain,
    validate_template,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from genlocks.domain.model import CharacterKey, SessionContext
    from genlocks.domain.ports import ChatMetadataStore, GroupStore, SettingsStore

log = logging.getLogger(__name__)


@contextmanager
def storage_errors(message: str, dimension: Dimension | None = None) -> Iterator[None]:
    """Re-raise anything a storage port throws as ``StorageUnavailableError``."""

    try:
        yield
    except LockEngineError:
        raise
    except Exception as exc:
        raise StorageUnavailableError(message, dimension=dimension) from exc


def validate_record(record: LockRecord, dimension: Dimension) -> LockRecord:
    """Reject blank lock names and profiles saved against a model."""

    for item in APPLY_ORDER:
        value = record.value_for(item)
        if value is not None and not value.strip():
            raise InvalidConfigurationError(f"Blank {item} lock for {dimension}")
    if dimension is Dimension.MODEL and record.profile is not None:
        raise InvalidConfigurationError("Model locks cannot carry a connection profile")
    return record


class SettingsDocumentHolder:
    """In-memory copy of the settings document, written through on every change.

    A failed save leaves the in-memory copy untouched.
    """

    def __init__(self, store: SettingsStore) -> None:
        self._store = store
        self._document: SettingsDocument | None = None

    @property
    def document(self) -> SettingsDocument:
        if self._document is None:
            with storage_errors("Could not load settings"):
                loaded = self._store.load()
            if loaded is None:
                log.debug("No settings document stored yet, seeding defaults")
                loaded = SettingsDocument()
            self._document = loaded
        return self._document

    def commit(self, document: SettingsDocument) -> None:
        with storage_errors("Could not save settings"):
            self._store.save(document)
        self._document = document


class CharacterLocks:
    """Character locks, looked up through the index-then-name key chain."""

    def __init__(self, holder: SettingsDocumentHolder) -> None:
        self._holder = holder

    def get(self, keys: Sequence[CharacterKey]) -> LockRecord | None:
        document = self._holder.document
        for key in keys:
            match key:
                case IndexKey(value=index):
                    record = document.character_locks_by_index.get(index)
                case NameKey(value=name):
                    record = document.character_locks_by_name.get(name)
            if record is not None:
                return record
        return None

    def set(self, keys: Sequence[CharacterKey], record: LockRecord) -> bool:
        if not keys:
            raise StorageUnavailableError("No character to lock", dimension=Dimension.CHARACTER)
        validate_record(record, Dimension.CHARACTER)
        document = self._holder.document
        by_index = dict(document.character_locks_by_index)
        by_name = dict(document.character_locks_by_name)
        match keys[0]:
            case IndexKey(value=index):
                by_index[index] = record
            case NameKey(value=name):
                by_name[name] = record
        self._holder.commit(
            replace(document, character_locks_by_index=by_index, character_locks_by_name=by_name)
        )
        return True

    def clear(self, keys: Sequence[CharacterKey]) -> bool:
        """Remove the record under every key so a name-keyed record cannot resurface."""

        document = self._holder.document
        by_index = dict(document.character_locks_by_index)
        by_name = dict(document.character_locks_by_name)
        removed = False
        for key in keys:
            match key:
                case IndexKey(value=index):
                    removed = by_index.pop(index, None) is not None or removed
                case NameKey(value=name):
                    removed = by_name.pop(name, None) is not None or removed
        if removed:
            self._holder.commit(
                replace(
                    document, character_locks_by_index=by_index, character_locks_by_name=by_name
                )
            )
        return removed


class ModelLocks:
    def __init__(self, holder: SettingsDocumentHolder) -> None:
        self._holder = holder

    def get(self, model_name: str | None) -> LockRecord | None:
        if not model_name:
            return None
        return self._holder.document.model_locks.get(model_name)

    def set(self, model_name: str | None, record: LockRecord) -> bool:
        if not model_name:
            raise StorageUnavailableError("No active model to lock", dimension=Dimension.MODEL)
        validate_record(record, Dimension.MODEL)
        document = self._holder.document
        self._holder.commit(
            replace(document, model_locks={**document.model_locks, model_name: record})
        )
        return True

    def clear(self, model_name: str | None) -> bool:
        document = self._holder.document
        if not model_name or model_name not in document.model_locks:
            return False
        remaining = {key: value for key, value in document.model_locks.items() if key != model_name}
        self._holder.commit(replace(document, model_locks=remaining))
        return True


class ChatLocks:
    """Chat locks, persisted through the host's asynchronous chat metadata save."""

    def __init__(self, store: ChatMetadataStore) -> None:
        self._store = store

    def get(self, chat_id: str | None) -> LockRecord | None:
        if not chat_id:
            return None
        with storage_errors(f"Could not read chat {chat_id}", Dimension.CHAT):
            return self._store.read(chat_id)

    def require_chat(self, chat_id: str | None) -> str:
        if not chat_id:
            raise StorageUnavailableError("No active chat to lock", dimension=Dimension.CHAT)
        return chat_id

    async def set(self, chat_id: str | None, record: LockRecord) -> bool:
        target = self.require_chat(chat_id)
        validate_record(record, Dimension.CHAT)
        with storage_errors(f"Could not save chat {target}", Dimension.CHAT):
            await self._store.write(target, record)
        return True

    async def clear(self, chat_id: str | None) -> bool:
        target = self.require_chat(chat_id)
        if self.get(target) is None:
            return False
        with storage_errors(f"Could not save chat {target}", Dimension.CHAT):
            await self._store.write(target, None)
        return True


class GroupLocks:
    def __init__(self, store: GroupStore) -> None:
        self._store = store

    def _exists(self, group_id: str) -> bool:
        with storage_errors(f"Could not read group {group_id}", Dimension.GROUP):
            return self._store.exists(group_id)

    def get(self, group_id: str | None) -> LockRecord | None:
        if not group_id or not self._exists(group_id):
            return None
        with storage_errors(f"Could not read group {group_id}", Dimension.GROUP):
            return self._store.read(group_id)

    def require_group(self, group_id: str | None) -> str:
        if not group_id or not self._exists(group_id):
            raise StorageUnavailableError(f"Unknown group: {group_id!r}", dimension=Dimension.GROUP)
        return group_id

    async def set(self, group_id: str | None, record: LockRecord) -> bool:
        target = self.require_group(group_id)
        validate_record(record, Dimension.GROUP)
        with storage_errors(f"Could not save group {target}", Dimension.GROUP):
            await self._store.write(target, record)
        return True

    async def clear(self, group_id: str | None) -> bool:
        target = self.require_group(group_id)
        if self.get(target) is None:
            return False
        with storage_errors(f"Could not save group {target}", Dimension.GROUP):
            await self._store.write(target, None)
        return True


class LockStore:
    """Single entry point over the per-dimension lock stores, templates and preferences."""

    def __init__(
        self,
        settings: SettingsStore,
        chats: ChatMetadataStore,
        groups: GroupStore,
    ) -> None:
        self._holder = SettingsDocumentHolder(settings)
        self.characters = CharacterLocks(self._holder)
        self.models = ModelLocks(self._holder)
        self.chats = ChatLocks(chats)
        self.groups = GroupLocks(groups)

    # -- context-keyed access ---------------------------------------------

    def record_for(self, dimension: Dimension, context: SessionContext) -> LockRecord | None:
        """Return the record stored under ``dimension`` for ``context`` (if any)."""

        match dimension:
            case Dimension.CHARACTER:
                if context.is_group_chat:
                    return None
                return self.characters.get(context.character_keys)
            case Dimension.MODEL:
                return self.models.get(context.model_name)
            case Dimension.CHAT:
                return self.chats.get(context.chat_id)
            case Dimension.GROUP:
                if not context.is_group_chat:
                    return None
                return self.groups.get(context.group_id)
            case Dimension.INDIVIDUAL:
                # Individual locks are the drafted member's character locks.
                return None

    def individual_record(self, index: int | None, name: str | None) -> LockRecord | None:
        """Character lock of a group member, looked up by index then name."""

        return self.characters.get(character_key_chain(index, name))

    def check_target(
        self,
        dimension: Dimension,
        context: SessionContext,
        record: LockRecord | None = None,
    ) -> None:
        """Raise the error a save (or, without ``record``, a clear) under ``dimension`` would.

        Nothing is written, so several targets can be checked before any of them is touched.
        """

        verb = "saved" if record is not None else "cleared"
        match dimension:
            case Dimension.CHARACTER:
                if context.is_group_chat:
                    raise InvalidConfigurationError(
                        f"Character locks cannot be {verb} from a group chat; use the group"
                    )
                if not context.character_keys:
                    raise StorageUnavailableError(
                        "No character to lock", dimension=Dimension.CHARACTER
                    )
            case Dimension.MODEL:
                if record is not None and not context.model_name:
                    raise StorageUnavailableError(
                        "No active model to lock", dimension=Dimension.MODEL
                    )
            case Dimension.CHAT:
                self.chats.require_chat(context.chat_id)
            case Dimension.GROUP:
                if not context.is_group_chat:
                    raise InvalidConfigurationError("Group locks need an active group chat")
                self.groups.require_group(context.group_id)
            case Dimension.INDIVIDUAL:
                raise InvalidConfigurationError(
                    f"Individual locks are {verb} as character locks outside the group"
                )
        if record is not None:
            validate_record(record, dimension)

    async def save_for(
        self, dimension: Dimension, context: SessionContext, record: LockRecord
    ) -> bool:
        self.check_target(dimension, context, record)
        match dimension:
            case Dimension.CHARACTER:
                return self.characters.set(context.character_keys, record)
            case Dimension.MODEL:
                return self.models.set(context.model_name, record)
            case Dimension.CHAT:
                return await self.chats.set(context.chat_id, record)
            case Dimension.GROUP:
                return await self.groups.set(context.group_id, record)
            case _:
                return False

    async def clear_for(self, dimension: Dimension, context: SessionContext) -> bool:
        self.check_target(dimension, context)
        match dimension:
            case Dimension.CHARACTER:
                return self.characters.clear(context.character_keys)
            case Dimension.MODEL:
                return self.models.clear(context.model_name)
            case Dimension.CHAT:
                return await self.chats.clear(context.chat_id)
            case Dimension.GROUP:
                return await self.groups.clear(context.group_id)
            case _:
                return False

    # -- templates ----------------------------------------------------------

    def get_template(self, template_id: str) -> PromptTemplate | None:
        return self._holder.document.templates.get(template_id)

    def list_templates(self) -> list[PromptTemplate]:
        return sorted(self._holder.document.templates.values(), key=lambda t: t.created_at)

    def save_template(self, template: PromptTemplate) -> PromptTemplate:
        validate_template(template)
        document = self._holder.document
        self._holder.commit(
            replace(document, templates={**document.templates, template.id: template})
        )
        return template

    def delete_template(self, template_id: str) -> bool:
        document = self._holder.document
        if template_id not in document.templates:
            return False
        remaining = {key: t for key, t in document.templates.items() if key != template_id}
        self._holder.commit(replace(document, templates=remaining))
        return True

    # -- preferences --------------------------------------------------------

    def get_preferences(self) -> Preferences:
        return self._holder.document.preferences

    def update_preference(self, key: str, value: object) -> Preferences:
        document = self._holder.document
        updated = document.preferences.with_value(key, value)
        self._holder.commit(replace(document, preferences=updated))
        log.debug("Preference %s set to %r", key, getattr(updated, key))
        return updated

    def reset_preference(self, key: str) -> Preferences:
        if key not in Preferences.keys():
            raise InvalidConfigurationError(f"Unknown preference: {key!r}")
        document = self._holder.document
        default = getattr(DEFAULT_PREFERENCES, key)
        updated = replace(document.preferences, **{key: default})
        self._holder.commit(replace(document, preferences=updated))
        return updated

    def locks_by_dimension(
        self, context: SessionContext
    ) -> dict[Dimension, dict[LockableItem, str | None]]:
        """Stored values per dimension that applies to ``context`` (for display)."""

        dimensions = (
            (Dimension.GROUP, Dimension.CHAT, Dimension.MODEL)
            if context.is_group_chat
            else (Dimension.CHARACTER, Dimension.CHAT, Dimension.MODEL)
        )
        result: dict[Dimension, dict[LockableItem, str | None]] = {}
        for dimension in dimensions:
            record = self.record_for(dimension, context) or LockRecord()
            result[dimension] = {item: record.value_for(item) for item in APPLY_ORDER}
        return result

