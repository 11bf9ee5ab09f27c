"""Session context and character key types."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class IndexKey:
    """Stable numeric character index assigned by the host."""

    value: int
    kind: Literal["index"] = "index"


@dataclass(frozen=True, slots=True)
class NameKey:
    """Normalized character name, kept for records saved before indexes existed."""

    value: str
    kind: Literal["name"] = "name"


type CharacterKey = IndexKey | NameKey


def normalize_character_name(name: str | None) -> str | None:
    """Trim and NFC-normalize ``name``; blank names become ``None``."""

    if name is None:
        return None
    normalized = unicodedata.normalize("NFC", str(name).strip())
    return normalized or None


def character_key_chain(index: int | None, name: str | None) -> tuple[CharacterKey, ...]:
    """Return lookup keys in fallback order: numeric index first, then name.

    A name never falls back to an index.
    """

    keys: list[CharacterKey] = []
    if index is not None and index >= 0:
        keys.append(IndexKey(index))
    normalized = normalize_character_name(name)
    if normalized is not None:
        keys.append(NameKey(normalized))
    return tuple(keys)


type ContextToken = tuple[bool, int | None, str | None, str | None, str | None]


@dataclass(frozen=True, slots=True, kw_only=True)
class SessionContext:
    """Snapshot of which character/group/model/chat the session is pointing at."""

    is_group_chat: bool
    character_index: int | None = None
    character_name: str | None = None
    group_id: str | None = None
    group_name: str | None = None
    model_name: str | None = None
    chat_id: str | None = None

    @property
    def character_keys(self) -> tuple[CharacterKey, ...]:
        if self.is_group_chat:
            return ()
        return character_key_chain(self.character_index, self.character_name)

    @property
    def token(self) -> ContextToken:
        """Identity used to detect that the session moved on mid-apply.

        The model name is not part of the identity: switching a connection profile
        changes the active model as a side effect of a legitimate apply.
        """

        return (
            self.is_group_chat,
            None if self.is_group_chat else self.character_index,
            None if self.is_group_chat else self.character_name,
            self.group_id,
            self.chat_id,
        )

    @property
    def display_name(self) -> str:
        if self.is_group_chat:
            return self.group_name or self.group_id or "Unknown group"
        return self.character_name or "Unknown character"
