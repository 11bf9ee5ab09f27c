"""Ports for the three places lock data is persisted.

Adapters raise ``StorageUnavailableError`` when a write cannot be completed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from genlocks.domain.model import LockRecord, SettingsDocument


@runtime_checkable
class SettingsStore(Protocol):
    """Namespaced settings document (character/model locks, templates, preferences)."""

    def load(self) -> SettingsDocument | None: ...

    def save(self, document: SettingsDocument) -> None: ...


@runtime_checkable
class ChatMetadataStore(Protocol):
    """Lock record kept in a chat's metadata; writes complete asynchronously."""

    def read(self, chat_id: str) -> LockRecord | None: ...

    async def write(self, chat_id: str, record: LockRecord | None) -> None: ...


@runtime_checkable
class GroupStore(Protocol):
    """Lock record stored on the group's own record."""

    def exists(self, group_id: str) -> bool: ...

    def read(self, group_id: str) -> LockRecord | None: ...

    async def write(self, group_id: str, record: LockRecord | None) -> None: ...
