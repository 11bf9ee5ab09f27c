from __future__ import annotations

import asyncio

import pytest

from genlocks.adapters.memory import (
    InMemoryChatMetadataStore,
    InMemoryGroupStore,
    InMemorySettingsStore,
)
from genlocks.domain.errors import InvalidConfigurationError, StorageUnavailableError
from genlocks.domain.lock_store import LockStore
from genlocks.domain.model import (
    AutoApplyMode,
    Dimension,
    IndexKey,
    LockRecord,
    NameKey,
    Preferences,
    SessionContext,
    SettingsDocument,
)
from tests.helpers.host import make_template

ALICE = SessionContext(
    is_group_chat=False,
    character_index=3,
    character_name="Alice",
    model_name="gpt-4o",
    chat_id="chat-1",
)
GROUP = SessionContext(is_group_chat=True, group_id="group-1", chat_id="chat-g")


def _store(
    settings: InMemorySettingsStore | None = None,
) -> tuple[LockStore, InMemorySettingsStore, InMemoryChatMetadataStore, InMemoryGroupStore]:
    settings = settings or InMemorySettingsStore()
    chats = InMemoryChatMetadataStore()
    groups = InMemoryGroupStore({"group-1"})
    return LockStore(settings, chats, groups), settings, chats, groups


def test_character_lookup_falls_back_from_index_to_name() -> None:
    legacy = SettingsDocument(character_locks_by_name={"Alice": LockRecord(preset="legacy")})
    store, *_ = _store(InMemorySettingsStore(legacy))

    assert store.characters.get((IndexKey(3), NameKey("Alice"))) == LockRecord(preset="legacy")
    # Name never falls back to index.
    assert store.characters.get((NameKey("Bob"),)) is None


def test_character_writes_go_to_the_first_key() -> None:
    store, settings, *_ = _store()

    store.characters.set((IndexKey(3), NameKey("Alice")), LockRecord(preset="Q"))

    assert settings.document is not None
    assert settings.document.character_locks_by_index == {3: LockRecord(preset="Q")}
    assert settings.document.character_locks_by_name == {}


def test_character_clear_removes_every_key_in_the_chain() -> None:
    legacy = SettingsDocument(
        character_locks_by_index={3: LockRecord(preset="new")},
        character_locks_by_name={"Alice": LockRecord(preset="legacy")},
    )
    store, *_ = _store(InMemorySettingsStore(legacy))

    assert store.characters.clear(ALICE.character_keys) is True

    assert store.record_for(Dimension.CHARACTER, ALICE) is None
    assert store.characters.clear(ALICE.character_keys) is False


def test_model_record_with_profile_is_rejected() -> None:
    store, settings, *_ = _store()

    with pytest.raises(InvalidConfigurationError):
        asyncio.run(store.save_for(Dimension.MODEL, ALICE, LockRecord(profile="P", preset="Q")))

    assert settings.document is None


def test_blank_lock_values_are_rejected() -> None:
    store, _, chats, _ = _store()

    with pytest.raises(InvalidConfigurationError):
        asyncio.run(store.save_for(Dimension.CHAT, ALICE, LockRecord(preset="   ")))

    assert chats.records == {}


def test_chat_and_group_writes_go_through_their_stores() -> None:
    store, _, chats, groups = _store()

    asyncio.run(store.save_for(Dimension.CHAT, ALICE, LockRecord(preset="chat-q")))
    asyncio.run(store.save_for(Dimension.GROUP, GROUP, LockRecord(template="TG")))

    assert chats.records == {"chat-1": LockRecord(preset="chat-q")}
    assert groups.records == {"group-1": LockRecord(template="TG")}
    assert asyncio.run(store.clear_for(Dimension.CHAT, ALICE)) is True
    assert chats.records == {}


def test_missing_chat_or_group_target_is_unavailable() -> None:
    store, *_ = _store()
    no_chat = SessionContext(is_group_chat=False, character_name="Alice")
    unknown_group = SessionContext(is_group_chat=True, group_id="nope")

    with pytest.raises(StorageUnavailableError):
        asyncio.run(store.save_for(Dimension.CHAT, no_chat, LockRecord(preset="Q")))
    with pytest.raises(StorageUnavailableError):
        asyncio.run(store.save_for(Dimension.GROUP, unknown_group, LockRecord(preset="Q")))


def test_character_target_is_invalid_inside_group_chat() -> None:
    store, *_ = _store()

    with pytest.raises(InvalidConfigurationError):
        asyncio.run(store.save_for(Dimension.CHARACTER, GROUP, LockRecord(preset="Q")))
    with pytest.raises(InvalidConfigurationError):
        asyncio.run(store.save_for(Dimension.GROUP, ALICE, LockRecord(preset="Q")))


def test_preferences_are_seeded_with_defaults() -> None:
    store, *_ = _store()

    preferences = store.get_preferences()

    assert preferences == Preferences()
    assert preferences.priority_order == (Dimension.MODEL, Dimension.CHAT, Dimension.CHARACTER)
    assert preferences.prefer_individual_over_group is True
    assert preferences.auto_apply_mode is AutoApplyMode.ASK


def test_duplicate_priority_order_is_rejected_and_previous_kept() -> None:
    store, *_ = _store()
    store.update_preference("priority_order", ["chat", "model", "character"])

    with pytest.raises(InvalidConfigurationError):
        store.update_preference("priority_order", ["chat", "chat", "model"])
    with pytest.raises(InvalidConfigurationError):
        store.update_preference("priority_order", ["chat", "model", "group"])

    assert store.get_preferences().priority_order == (
        Dimension.CHAT,
        Dimension.MODEL,
        Dimension.CHARACTER,
    )


def test_unknown_or_ill_typed_preferences_are_rejected() -> None:
    store, *_ = _store()

    with pytest.raises(InvalidConfigurationError):
        store.update_preference("locking_mode", "model")
    with pytest.raises(InvalidConfigurationError):
        store.update_preference("show_notifications", "yes")
    with pytest.raises(InvalidConfigurationError):
        store.update_preference("auto_apply_mode", "sometimes")


def test_failed_settings_save_leaves_preferences_unchanged() -> None:
    store, settings, *_ = _store()
    settings.fail_saves = True

    with pytest.raises(StorageUnavailableError):
        store.update_preference("auto_apply_mode", "always")

    assert store.get_preferences().auto_apply_mode is AutoApplyMode.ASK


def test_reset_preference_restores_default() -> None:
    store, *_ = _store()
    store.update_preference("auto_apply_mode", AutoApplyMode.NEVER)

    preferences = store.reset_preference("auto_apply_mode")

    assert preferences.auto_apply_mode is AutoApplyMode.ASK


def test_template_map_roundtrip() -> None:
    store, *_ = _store()
    template = make_template("tmpl_a")

    store.save_template(template)

    assert store.get_template("tmpl_a") == template
    assert store.list_templates() == [template]
    assert store.delete_template("tmpl_a") is True
    assert store.delete_template("tmpl_a") is False


def test_locks_by_dimension_lists_applicable_dimensions() -> None:
    store, *_ = _store()
    asyncio.run(store.save_for(Dimension.CHAT, ALICE, LockRecord(preset="Q")))

    table = store.locks_by_dimension(ALICE)

    assert set(table) == {Dimension.CHARACTER, Dimension.CHAT, Dimension.MODEL}
    assert table[Dimension.CHAT]["preset"] == "Q"  # type: ignore[index]
    assert set(store.locks_by_dimension(GROUP)) == {Dimension.GROUP, Dimension.CHAT, Dimension.MODEL}


class _UnreadableSettings(InMemorySettingsStore):
    def load(self) -> SettingsDocument | None:
        raise OSError("settings file vanished")


class _UnreadableChats(InMemoryChatMetadataStore):
    def read(self, chat_id: str) -> LockRecord | None:
        raise OSError(f"metadata for {chat_id} is locked")


def test_storage_read_failures_become_unavailable_errors() -> None:
    broken_settings = LockStore(
        _UnreadableSettings(), InMemoryChatMetadataStore(), InMemoryGroupStore()
    )
    with pytest.raises(StorageUnavailableError) as settings_error:
        broken_settings.get_preferences()
    assert isinstance(settings_error.value.__cause__, OSError)

    broken_chats = LockStore(InMemorySettingsStore(), _UnreadableChats(), InMemoryGroupStore())
    with pytest.raises(StorageUnavailableError) as chat_error:
        broken_chats.record_for(Dimension.CHAT, ALICE)
    assert chat_error.value.dimension is Dimension.CHAT


def test_check_target_rejects_every_unwritable_target_without_writing() -> None:
    store, settings, chats, _ = _store()
    no_chat = SessionContext(is_group_chat=False, character_index=3, character_name="Alice")

    with pytest.raises(StorageUnavailableError):
        store.check_target(Dimension.CHAT, no_chat, LockRecord(preset="Q"))
    with pytest.raises(InvalidConfigurationError):
        store.check_target(Dimension.GROUP, ALICE, LockRecord(preset="Q"))
    with pytest.raises(InvalidConfigurationError):
        store.check_target(Dimension.MODEL, ALICE, LockRecord(profile="P"))
    store.check_target(Dimension.CHARACTER, ALICE, LockRecord(preset="Q"))
    store.check_target(Dimension.MODEL, SessionContext(is_group_chat=False))

    assert settings.saves == 0
    assert chats.records == {}
