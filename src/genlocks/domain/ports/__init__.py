"""Domain port definitions for adapters."""

from __future__ import annotations

from .host import (
    ConfirmationPrompt,
    ConfirmationRequest,
    DisplaySink,
    HostContextSource,
    HostSignals,
    LockStatus,
    Notifier,
    PresetCommands,
    ProfileCommands,
    PromptStructure,
)
from .persistence import ChatMetadataStore, GroupStore, SettingsStore

__all__ = [
    "ChatMetadataStore",
    "ConfirmationPrompt",
    "ConfirmationRequest",
    "DisplaySink",
    "GroupStore",
    "HostContextSource",
    "HostSignals",
    "LockStatus",
    "Notifier",
    "PresetCommands",
    "ProfileCommands",
    "PromptStructure",
    "SettingsStore",
]
