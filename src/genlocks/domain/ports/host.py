"""Ports to the live host session (the chat application the locks are applied to)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from genlocks.domain.model import (
        ChangeReason,
        ConfirmationResult,
        Dimension,
        LockableItem,
        PromptDefinition,
        PromptOrderEntry,
        ResolvedSet,
    )


@dataclass(frozen=True, slots=True, kw_only=True)
class HostSignals:
    """Raw values read from the host before normalisation."""

    group_id: str | None = None
    group_name: str | None = None
    character_index: int | None = None
    character_name: str | None = None
    model_name: str | None = None
    chat_id: str | None = None
    # Character name recorded in the chat itself; used when the live one is a placeholder.
    chat_character_name: str | None = None


@runtime_checkable
class HostContextSource(Protocol):
    def read_signals(self) -> HostSignals: ...


@dataclass(frozen=True, slots=True, kw_only=True)
class ConfirmationRequest:
    reason: ChangeReason
    resolved: ResolvedSet
    # Items whose resolved value differs from what is currently live.
    changed: tuple[LockableItem, ...] = ()

    @property
    def title(self) -> str:
        return "Preset Changed" if self.reason == "preset" else "Chat Changed"


@runtime_checkable
class ConfirmationPrompt(Protocol):
    async def confirm(self, request: ConfirmationRequest) -> ConfirmationResult: ...


@runtime_checkable
class ProfileCommands(Protocol):
    def current_profile(self) -> str | None: ...

    async def switch_profile(self, name: str) -> None: ...


@runtime_checkable
class PresetCommands(Protocol):
    def current_preset(self) -> str | None: ...

    async def switch_preset(self, name: str) -> None: ...


@runtime_checkable
class PromptStructure(Protocol):
    """Live prompt list and ordering of the active preset."""

    def prompts(self) -> Sequence[PromptDefinition]: ...

    def prompt_order(self) -> Sequence[PromptOrderEntry]: ...

    def order_character_id(self) -> int | None: ...

    async def replace_structure(
        self,
        prompts: Mapping[str, PromptDefinition],
        order: Sequence[PromptOrderEntry],
        order_character_id: int | None,
    ) -> None: ...


@runtime_checkable
class Notifier(Protocol):
    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


@dataclass(frozen=True, slots=True, kw_only=True)
class LockStatus:
    """What the display shows after each resolution pass."""

    resolved: ResolvedSet
    applied_template: str | None
    by_dimension: Mapping[Dimension, Mapping[LockableItem, str | None]]


@runtime_checkable
class DisplaySink(Protocol):
    def refresh(self, status: LockStatus) -> None: ...
