"""The namespaced settings document holding character/model locks, templates and preferences."""

from __future__ import annotations

from dataclasses import dataclass, field

from genlocks.domain.model.locks import LockRecord
from genlocks.domain.model.preferences import DEFAULT_PREFERENCES, Preferences
from genlocks.domain.model.templates import PromptTemplate


@dataclass(frozen=True, slots=True)
class SettingsDocument:
    character_locks_by_index: dict[int, LockRecord] = field(default_factory=dict)
    # Records saved before the host exposed stable indexes.
    character_locks_by_name: dict[str, LockRecord] = field(default_factory=dict)
    model_locks: dict[str, LockRecord] = field(default_factory=dict)
    templates: dict[str, PromptTemplate] = field(default_factory=dict)
    preferences: Preferences = DEFAULT_PREFERENCES
