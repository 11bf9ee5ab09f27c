"""In-memory host session and stores.

Implements every host and persistence port without a running chat application. The
CLI uses it for the static session context; tests drive it directly.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from genlocks.domain.errors import StorageUnavailableError
from genlocks.domain.model import ConfirmationResult, Dimension
from genlocks.domain.ports import HostSignals

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from genlocks.domain.model import (
        LockRecord,
        PromptDefinition,
        PromptOrderEntry,
        SettingsDocument,
    )
    from genlocks.domain.ports import ConfirmationRequest, LockStatus

log = logging.getLogger(__name__)


@dataclass(slots=True)
class InMemoryHost:
    """Mutable stand-in for the live host session.

    ``profile_models`` maps connection profiles to the model they select, so a
    profile switch changes ``signals.model_name`` like the real host does.
    """

    signals: HostSignals = field(default_factory=HostSignals)
    profile: str | None = None
    preset: str | None = None
    profiles: set[str] = field(default_factory=set)
    presets: set[str] = field(default_factory=set)
    profile_models: dict[str, str] = field(default_factory=dict)
    prompt_list: list[PromptDefinition] = field(default_factory=list)
    order: list[PromptOrderEntry] = field(default_factory=list)
    order_character: int | None = None
    # Called after each switch, before control returns; lets callers move the context.
    after_switch: Callable[[str, str], None] | None = None
    switch_log: list[tuple[str, str]] = field(default_factory=list)

    # -- HostContextSource -------------------------------------------------

    def read_signals(self) -> HostSignals:
        return self.signals

    def move_to(self, **changes: object) -> None:
        self.signals = replace(self.signals, **changes)  # type: ignore[arg-type]

    # -- ProfileCommands / PresetCommands --------------------------------------

    def current_profile(self) -> str | None:
        return self.profile

    async def switch_profile(self, name: str) -> None:
        if self.profiles and name not in self.profiles:
            raise LookupError(f"Unknown connection profile: {name}")
        await asyncio.sleep(0)
        self.profile = name
        if name in self.profile_models:
            self.signals = replace(self.signals, model_name=self.profile_models[name])
        self._switched("profile", name)

    def current_preset(self) -> str | None:
        return self.preset

    async def switch_preset(self, name: str) -> None:
        if self.presets and name not in self.presets:
            raise LookupError(f"Unknown preset: {name}")
        await asyncio.sleep(0)
        self.preset = name
        self._switched("preset", name)

    # -- PromptStructure -------------------------------------------------------

    def prompts(self) -> Sequence[PromptDefinition]:
        return tuple(self.prompt_list)

    def prompt_order(self) -> Sequence[PromptOrderEntry]:
        return tuple(self.order)

    def order_character_id(self) -> int | None:
        return self.order_character

    async def replace_structure(
        self,
        prompts: Mapping[str, PromptDefinition],
        order: Sequence[PromptOrderEntry],
        order_character_id: int | None,
    ) -> None:
        await asyncio.sleep(0)
        self.prompt_list = list(prompts.values())
        if order:
            self.order = list(order)
            self.order_character = order_character_id
        self._switched("template", ",".join(prompts))

    def _switched(self, kind: str, value: str) -> None:
        self.switch_log.append((kind, value))
        if self.after_switch is not None:
            self.after_switch(kind, value)


@dataclass(slots=True)
class StaticConfirmation:
    answer: ConfirmationResult = ConfirmationResult.AFFIRMATIVE
    requests: list[ConfirmationRequest] = field(default_factory=list)

    async def confirm(self, request: ConfirmationRequest) -> ConfirmationResult:
        self.requests.append(request)
        return self.answer


@dataclass(slots=True)
class RecordingNotifier:
    """Keeps notifications and mirrors them to the log."""

    messages: list[tuple[str, str]] = field(default_factory=list)

    def info(self, message: str) -> None:
        log.info(message)
        self.messages.append(("info", message))

    def success(self, message: str) -> None:
        log.info(message)
        self.messages.append(("success", message))

    def error(self, message: str) -> None:
        log.error(message)
        self.messages.append(("error", message))

    def of_kind(self, kind: str) -> list[str]:
        return [message for level, message in self.messages if level == kind]


@dataclass(slots=True)
class RecordingDisplay:
    statuses: list[LockStatus] = field(default_factory=list)

    def refresh(self, status: LockStatus) -> None:
        self.statuses.append(status)

    @property
    def latest(self) -> LockStatus | None:
        return self.statuses[-1] if self.statuses else None


@dataclass(slots=True)
class InMemorySettingsStore:
    document: SettingsDocument | None = None
    fail_saves: bool = False
    saves: int = 0

    def load(self) -> SettingsDocument | None:
        return self.document

    def save(self, document: SettingsDocument) -> None:
        if self.fail_saves:
            raise StorageUnavailableError("Settings storage is unavailable")
        self.document = document
        self.saves += 1


@dataclass(slots=True)
class InMemoryChatMetadataStore:
    records: dict[str, LockRecord] = field(default_factory=dict)

    def read(self, chat_id: str) -> LockRecord | None:
        return self.records.get(chat_id)

    async def write(self, chat_id: str, record: LockRecord | None) -> None:
        await asyncio.sleep(0)
        if record is None:
            self.records.pop(chat_id, None)
        else:
            self.records[chat_id] = record


@dataclass(slots=True)
class InMemoryGroupStore:
    groups: set[str] = field(default_factory=set)
    records: dict[str, LockRecord] = field(default_factory=dict)

    def exists(self, group_id: str) -> bool:
        return group_id in self.groups

    def read(self, group_id: str) -> LockRecord | None:
        return self.records.get(group_id)

    async def write(self, group_id: str, record: LockRecord | None) -> None:
        if group_id not in self.groups:
            raise StorageUnavailableError(f"Unknown group: {group_id!r}", dimension=Dimension.GROUP)
        await asyncio.sleep(0)
        if record is None:
            self.records.pop(group_id, None)
        else:
            self.records[group_id] = record
