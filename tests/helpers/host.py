"""Reusable in-memory host sessions for lock engine tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from genlocks.adapters.memory import (
    InMemoryChatMetadataStore,
    InMemoryGroupStore,
    InMemoryHost,
    InMemorySettingsStore,
    RecordingDisplay,
    RecordingNotifier,
    StaticConfirmation,
)
from genlocks.app import LockSession, build_session
from genlocks.config import EngineConfig
from genlocks.domain.model import (
    AutoApplyMode,
    PromptDefinition,
    PromptOrderEntry,
    create_template,
)
from genlocks.domain.ports import HostSignals

if TYPE_CHECKING:
    from genlocks.domain.model import PromptTemplate

TEST_CONFIG = EngineConfig(context_cache_seconds=60.0, debounce_seconds=0.01)


@dataclass
class FakeClock:
    now: float = 1_000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def character_signals(
    name: str = "Alice",
    *,
    index: int | None = 0,
    chat_id: str | None = "chat-alice",
    model_name: str | None = "gpt-4o",
) -> HostSignals:
    return HostSignals(
        character_index=index,
        character_name=name,
        chat_id=chat_id,
        model_name=model_name,
    )


def group_signals(
    group_id: str = "group-1",
    *,
    chat_id: str | None = "chat-group-1",
    model_name: str | None = "gpt-4o",
) -> HostSignals:
    return HostSignals(
        group_id=group_id,
        group_name="Adventurers",
        chat_id=chat_id,
        model_name=model_name,
    )


@dataclass
class HostHarness:
    host: InMemoryHost
    settings: InMemorySettingsStore = field(default_factory=InMemorySettingsStore)
    chats: InMemoryChatMetadataStore = field(default_factory=InMemoryChatMetadataStore)
    groups: InMemoryGroupStore = field(default_factory=lambda: InMemoryGroupStore({"group-1"}))
    notifier: RecordingNotifier = field(default_factory=RecordingNotifier)
    display: RecordingDisplay = field(default_factory=RecordingDisplay)
    confirmation: StaticConfirmation = field(default_factory=StaticConfirmation)
    config: EngineConfig = TEST_CONFIG
    _session: LockSession | None = None

    @property
    def session(self) -> LockSession:
        if self._session is None:
            self._session = build_session(
                host=self.host,
                profiles=self.host,
                presets=self.host,
                structure=self.host,
                confirmation=self.confirmation,
                notifier=self.notifier,
                settings=self.settings,
                chats=self.chats,
                groups=self.groups,
                display=self.display,
                config=self.config,
            )
        return self._session

    def set_mode(self, mode: AutoApplyMode) -> None:
        self.session.store.update_preference("auto_apply_mode", mode)

    def switches(self, kind: str | None = None) -> list[tuple[str, str]]:
        return [entry for entry in self.host.switch_log if kind is None or entry[0] == kind]


def make_harness(signals: HostSignals | None = None, **host_fields: object) -> HostHarness:
    host = InMemoryHost(signals=signals or character_signals(), **host_fields)  # type: ignore[arg-type]
    return HostHarness(host=host)


def make_prompt(identifier: str, content: str = "", **overrides: object) -> PromptDefinition:
    return PromptDefinition(
        identifier=identifier,
        name=identifier.title(),
        content=content or f"{identifier} content",
        **overrides,  # type: ignore[arg-type]
    )


def make_template(
    template_id: str,
    *,
    name: str | None = None,
    contents: dict[str, str] | None = None,
) -> PromptTemplate:
    prompts = [
        make_prompt(identifier, content)
        for identifier, content in (contents or {"main": f"{template_id} main"}).items()
    ]
    return create_template(
        template_id=template_id,
        name=name or f"Template {template_id}",
        prompts=prompts,
        prompt_order=[PromptOrderEntry(prompt.identifier) for prompt in prompts],
    )
