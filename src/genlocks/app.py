"""Application wiring: one lock session per host session."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from genlocks.adapters.sqlalchemy import (
    SqlAlchemyChatMetadataStore,
    SqlAlchemyGroupStore,
    SqlAlchemySettingsStore,
    is_started,
    startup,
)
from genlocks.config import EngineConfig, get_engine_config
from genlocks.domain.appliers import PresetApplier, ProfileApplier, TemplateApplier
from genlocks.domain.context import ContextProvider
from genlocks.domain.lock_store import LockStore
from genlocks.domain.orchestrator import ResolutionOrchestrator
from genlocks.domain.resolver import PriorityResolver
from genlocks.domain.templates import TemplateManager

if TYPE_CHECKING:
    from genlocks.domain.ports import (
        ChatMetadataStore,
        ConfirmationPrompt,
        DisplaySink,
        GroupStore,
        HostContextSource,
        Notifier,
        PresetCommands,
        ProfileCommands,
        PromptStructure,
        SettingsStore,
    )

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LockSession:
    context: ContextProvider
    store: LockStore
    resolver: PriorityResolver
    templates: TemplateManager
    orchestrator: ResolutionOrchestrator


@dataclass(frozen=True, slots=True)
class SqlStores:
    settings: SqlAlchemySettingsStore
    chats: SqlAlchemyChatMetadataStore
    groups: SqlAlchemyGroupStore


def build_sql_stores(*, config: EngineConfig | None = None) -> SqlStores:
    """SQLite-backed stores; starts the SQLAlchemy adapter on first use."""

    effective = config or get_engine_config()
    if not is_started():
        startup()
    namespace = effective.settings_namespace
    return SqlStores(
        settings=SqlAlchemySettingsStore(namespace=namespace),
        chats=SqlAlchemyChatMetadataStore(namespace=namespace),
        groups=SqlAlchemyGroupStore(namespace=namespace),
    )


def build_session(  # noqa: PLR0913
    *,
    host: HostContextSource,
    profiles: ProfileCommands,
    presets: PresetCommands,
    structure: PromptStructure,
    confirmation: ConfirmationPrompt,
    notifier: Notifier,
    settings: SettingsStore,
    chats: ChatMetadataStore,
    groups: GroupStore,
    display: DisplaySink | None = None,
    config: EngineConfig | None = None,
) -> LockSession:
    effective = config or get_engine_config()
    context = ContextProvider(host, cache_seconds=effective.context_cache_seconds)
    store = LockStore(settings, chats, groups)
    resolver = PriorityResolver(store)
    orchestrator = ResolutionOrchestrator(
        context=context,
        store=store,
        resolver=resolver,
        profile=ProfileApplier(context, profiles),
        preset=PresetApplier(context, presets),
        template=TemplateApplier(context, structure, store),
        confirmation=confirmation,
        notifier=notifier,
        display=display,
        debounce_seconds=effective.debounce_seconds,
        queue_capacity=effective.queue_capacity,
    )
    log.debug("Built lock session with %s", effective)
    return LockSession(
        context=context,
        store=store,
        resolver=resolver,
        templates=TemplateManager(store, structure, context),
        orchestrator=orchestrator,
    )
