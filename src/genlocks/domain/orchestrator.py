"""Debounced re-resolution on context change and ordered application of the winners."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from genlocks.config.engine import DEFAULT_DEBOUNCE_SECONDS, DEFAULT_QUEUE_CAPACITY
from genlocks.domain.errors import HostOperationError, InvalidConfigurationError, LockEngineError
from genlocks.domain.model import (
    APPLY_ORDER,
    AutoApplyMode,
    ChangeReason,
    ConfirmationResult,
    Dimension,
    LockableItem,
    LockRecord,
    OrchestratorState,
    ResolvedSet,
)
from genlocks.domain.ports import ConfirmationRequest, LockStatus
from genlocks.domain.resolver import overlay_individual

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Sequence

    from genlocks.domain.appliers import ItemApplier, TemplateApplier
    from genlocks.domain.context import ContextProvider
    from genlocks.domain.lock_store import LockStore
    from genlocks.domain.model import Conflict, SessionContext
    from genlocks.domain.ports import ConfirmationPrompt, DisplaySink, Notifier
    from genlocks.domain.resolver import PriorityResolver

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ContextChanged:
    reason: ChangeReason = ChangeReason.CHAT


@dataclass(frozen=True, slots=True)
class MemberDrafted:
    character_index: int | None = None
    character_name: str | None = None


@dataclass(frozen=True, slots=True)
class PresetChangedExternally:
    """The host swapped presets on its own; the prompt structure may have drifted."""


type HostEvent = ContextChanged | MemberDrafted | PresetChangedExternally


class ResolutionOrchestrator:
    """One per session. Serializes resolution passes and guards the apply sequence.

    Context-change notifications go onto a bounded queue. While no pass is running a
    debounce timer is re-armed on every push, so a burst collapses into one pass
    that resolves the latest context. Must be driven from inside a running event
    loop.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        context: ContextProvider,
        store: LockStore,
        resolver: PriorityResolver,
        profile: ItemApplier,
        preset: ItemApplier,
        template: TemplateApplier,
        confirmation: ConfirmationPrompt,
        notifier: Notifier,
        display: DisplaySink | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        queue_capacity: int = DEFAULT_QUEUE_CAPACITY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._context = context
        self._store = store
        self._resolver = resolver
        self._template = template
        self._appliers: dict[LockableItem, ItemApplier] = {
            LockableItem.PROFILE: profile,
            LockableItem.PRESET: preset,
            LockableItem.TEMPLATE: template,
        }
        self._confirmation = confirmation
        self._notifier = notifier
        self._display = display
        self._debounce_seconds = debounce_seconds
        self._clock = clock

        self._queue: deque[tuple[float, ChangeReason]] = deque(maxlen=queue_capacity)
        self._timer: asyncio.TimerHandle | None = None
        self._pass_task: asyncio.Task[None] | None = None
        self._is_applying = False
        self._idle = asyncio.Event()
        self._idle.set()
        self.passes_completed = 0

    # -- state ----------------------------------------------------------------

    @property
    def is_applying(self) -> bool:
        return self._is_applying

    @property
    def state(self) -> OrchestratorState:
        if self._is_applying or self._pass_task is not None:
            return OrchestratorState.APPLYING
        if self._timer is not None or self._queue:
            return OrchestratorState.QUEUED
        return OrchestratorState.IDLE

    @property
    def pending_notifications(self) -> int:
        return len(self._queue)

    async def wait_idle(self) -> None:
        """Wait until queued notifications have been processed."""

        await self._idle.wait()

    # -- inbound events -------------------------------------------------------

    async def handle(self, message: HostEvent) -> bool | None:
        match message:
            case ContextChanged(reason=reason):
                self.on_context_changed(reason)
                return None
            case MemberDrafted(character_index=index, character_name=name):
                return await self.on_member_drafted(index, name)
            case PresetChangedExternally():
                self.on_preset_changed()
                return None

    def on_context_changed(self, reason: ChangeReason = ChangeReason.CHAT) -> None:
        if len(self._queue) == self._queue.maxlen:
            log.debug("Notification queue full, dropping oldest entry")
        self._queue.append((self._clock(), reason))
        self._idle.clear()
        self._arm_timer()

    def on_preset_changed(self) -> None:
        self.on_context_changed(ChangeReason.PRESET)

    async def on_member_drafted(self, character_index: int | None, character_name: str | None) -> bool:
        """Apply the drafted member's own locks over group-won values.

        Returns ``True`` only when an overlaid set was applied.
        """

        try:
            self._context.invalidate()
            context = self._context.get_current()
            preferences = self._store.get_preferences()
            if not context.is_group_chat or not preferences.prefer_individual_over_group:
                return False
            if preferences.auto_apply_mode is AutoApplyMode.NEVER:
                log.debug("Auto-apply disabled, ignoring drafted member")
                return False
            resolved = self._resolver.resolve(context, preferences)
            individual = self._store.individual_record(character_index, character_name)
            merged = overlay_individual(resolved, individual)
            self._refresh_display(context, merged)
            applied = await self._apply_resolved(merged, context)
            if applied:
                self._refresh_display(context, merged)
        except LockEngineError as exc:
            self._report_failure("Applying member locks", exc)
            return False
        except Exception:
            self._report_unexpected("Applying member locks")
            return False
        return applied

    # -- debounce machinery ---------------------------------------------------

    def _arm_timer(self) -> None:
        if self._pass_task is not None:
            # Picked up once the running pass finishes.
            return
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._debounce_seconds, self._start_pass)

    def _start_pass(self) -> None:
        self._timer = None
        if self._pass_task is not None or not self._queue:
            return
        reasons = {reason for _, reason in self._queue}
        self._queue.clear()
        reason = ChangeReason.CHAT if ChangeReason.CHAT in reasons else ChangeReason.PRESET
        self._pass_task = asyncio.get_running_loop().create_task(self._run_pass(reason))

    async def _run_pass(self, reason: ChangeReason) -> None:
        try:
            await self._resolution_pass(reason)
        except LockEngineError as exc:
            self._report_failure("Resolving locks", exc)
        except Exception:
            self._report_unexpected("Resolving locks")
        finally:
            self.passes_completed += 1
            self._pass_task = None
            if self._queue:
                self._arm_timer()
            else:
                self._idle.set()

    async def _resolution_pass(self, reason: ChangeReason) -> None:
        self._context.invalidate()
        context = self._context.get_current()
        preferences = self._store.get_preferences()
        resolved = self._resolver.resolve(context, preferences)
        log.debug("Pass (%s) for %s resolved %s", reason, context.display_name, resolved)
        self._refresh_display(context, resolved)

        mode = preferences.auto_apply_mode
        if mode is AutoApplyMode.NEVER or resolved.is_empty:
            return

        changed = self._changed_items(resolved)
        if mode is AutoApplyMode.ASK:
            if not changed:
                return
            answer = await self._confirmation.confirm(
                ConfirmationRequest(reason=reason, resolved=resolved, changed=changed)
            )
            if answer is not ConfirmationResult.AFFIRMATIVE:
                log.info("Applying locks declined (%s)", answer)
                return

        if not await self._apply_resolved(resolved, context):
            return
        self._refresh_display(context, resolved)
        if not changed:
            return
        if mode is AutoApplyMode.ASK:
            self._success(f"Applied {self._describe(resolved, changed)}")
        else:
            verb = "Auto-applied" if reason is ChangeReason.CHAT else "Auto-reapplied"
            self._info(f"{verb} {self._describe(resolved, changed)}")

    # -- applying -------------------------------------------------------------

    def _changed_items(self, resolved: ResolvedSet) -> tuple[LockableItem, ...]:
        changed: list[LockableItem] = []
        for item, winner in resolved:
            if winner.value is not None and not self._appliers[item].is_current(winner.value):
                changed.append(item)
        return tuple(changed)

    async def _apply_resolved(self, resolved: ResolvedSet, context: SessionContext) -> bool:
        """Apply profile, preset then template; stop at the first failure.

        Steps already taken are not rolled back.
        """

        if self._is_applying:
            log.info("Apply already in progress, rejecting concurrent request")
            return False
        self._is_applying = True
        try:
            token = context.token
            for item in APPLY_ORDER:
                if not await self._appliers[item].apply(resolved.item(item).value, token):
                    log.info("Apply sequence stopped at %s", item)
                    return False
            return True
        finally:
            self._is_applying = False

    async def apply_locks_for_context(self) -> bool:
        if self._is_applying:
            log.info("Apply already in progress, rejecting concurrent request")
            return False
        try:
            context = self._context.get_current(fresh=True)
            resolved = self._resolver.resolve(context, self._store.get_preferences())
            applied = await self._apply_resolved(resolved, context)
            self._refresh_display(context, resolved)
        except LockEngineError as exc:
            self._report_failure("Applying locks", exc)
            return False
        except Exception:
            self._report_unexpected("Applying locks")
            return False
        if not applied:
            self._info("Locks not applied: the chat changed while applying")
        return applied

    # -- queries --------------------------------------------------------------

    def get_current_locks(self) -> ResolvedSet:
        try:
            context = self._context.get_current()
            return self._resolver.resolve(context, self._store.get_preferences())
        except LockEngineError as exc:
            log.warning("Could not resolve current locks: %s", exc)
            return ResolvedSet()
        except Exception:
            log.exception("Unexpected failure resolving current locks")
            return ResolvedSet()

    def get_locks_by_dimension(self) -> dict[Dimension, dict[LockableItem, str | None]]:
        try:
            return self._store.locks_by_dimension(self._context.get_current())
        except LockEngineError as exc:
            log.warning("Could not read locks by dimension: %s", exc)
            return {}
        except Exception:
            log.exception("Unexpected failure reading locks by dimension")
            return {}

    def get_conflicts(self) -> list[Conflict]:
        try:
            context = self._context.get_current()
            return self._resolver.detect_conflicts(context, self._store.get_preferences())
        except LockEngineError as exc:
            log.warning("Could not detect conflicts: %s", exc)
            return []
        except Exception:
            log.exception("Unexpected failure detecting conflicts")
            return []

    # -- saving ---------------------------------------------------------------

    def _live_record(self) -> LockRecord:
        return LockRecord(
            profile=self._appliers[LockableItem.PROFILE].get_current_value(),
            preset=self._appliers[LockableItem.PRESET].get_current_value(),
            template=self._appliers[LockableItem.TEMPLATE].get_current_value(),
        )

    async def save_current_ui_locks(
        self,
        targets: Iterable[Dimension],
        record: LockRecord | None = None,
    ) -> bool:
        """Save ``record`` (default: the live values) under each target dimension.

        Every target is checked before the first write, so a missing chat or group
        fails the whole save without touching the other targets.
        """

        to_save = record

        def stored(dimension: Dimension) -> LockRecord:
            assert to_save is not None
            if dimension is Dimension.MODEL:
                return to_save.with_value(LockableItem.PROFILE, None)
            return to_save

        def check(dimension: Dimension, context: SessionContext) -> None:
            nonlocal to_save
            if to_save is None:
                to_save = self._live_record()
            self._store.check_target(dimension, context, stored(dimension))

        async def save(dimension: Dimension, context: SessionContext) -> None:
            await self._store.save_for(dimension, context, stored(dimension))

        return await self._write_targets(
            "Saving locks", "Locks saved", tuple(targets), check, save
        )

    async def clear_locks(self, targets: Iterable[Dimension]) -> bool:
        def check(dimension: Dimension, context: SessionContext) -> None:
            self._store.check_target(dimension, context)

        async def clear(dimension: Dimension, context: SessionContext) -> None:
            await self._store.clear_for(dimension, context)

        return await self._write_targets(
            "Clearing locks", "Locks cleared", tuple(targets), check, clear
        )

    async def _write_targets(  # noqa: PLR0913
        self,
        action: str,
        done: str,
        dimensions: tuple[Dimension, ...],
        check: Callable[[Dimension, SessionContext], None],
        write: Callable[[Dimension, SessionContext], Awaitable[None]],
    ) -> bool:
        written: list[Dimension] = []
        try:
            if not dimensions:
                raise InvalidConfigurationError("No lock targets given")
            context = self._context.get_current(fresh=True)
            for dimension in dimensions:
                check(dimension, context)
            for dimension in dimensions:
                await write(dimension, context)
                written.append(dimension)
            self._success(f"{done} for {_join(dimensions)}")
            self._refresh_display(context, self.get_current_locks())
        except LockEngineError as exc:
            self._report_failure(action, exc, written)
            return False
        except Exception:
            self._report_unexpected(action, written)
            return False
        return True

    # -- output ---------------------------------------------------------------

    def _refresh_display(self, context: SessionContext, resolved: ResolvedSet) -> None:
        if self._display is None:
            return
        self._display.refresh(
            LockStatus(
                resolved=resolved,
                applied_template=self._template.get_current_value(),
                by_dimension=self._store.locks_by_dimension(context),
            )
        )

    def _describe(self, resolved: ResolvedSet, items: Iterable[LockableItem]) -> str:
        parts: list[str] = []
        for item in items:
            value = resolved.item(item).value
            if item is LockableItem.TEMPLATE and value is not None:
                template = self._store.get_template(value)
                value = template.name if template is not None else value
            parts.append(f"{item} {value}")
        return ", ".join(parts)

    def _info(self, message: str) -> None:
        if self._store.get_preferences().show_notifications:
            self._notifier.info(message)

    def _success(self, message: str) -> None:
        if self._store.get_preferences().show_notifications:
            self._notifier.success(message)

    def _report_failure(
        self, action: str, exc: LockEngineError, written: Sequence[Dimension] = ()
    ) -> None:
        if isinstance(exc, HostOperationError):
            log.exception("%s failed", action)
        else:
            log.warning("%s failed: %s", action, exc)
        self._notifier.error(f"{action} failed: {exc}{_partial(written)}")

    def _report_unexpected(self, action: str, written: Sequence[Dimension] = ()) -> None:
        log.exception("Unexpected failure: %s", action)
        self._notifier.error(f"{action} failed: unexpected error, see log{_partial(written)}")


def _join(dimensions: Iterable[Dimension]) -> str:
    return ", ".join(str(dimension) for dimension in dimensions)


def _partial(written: Sequence[Dimension]) -> str:
    return f" (already written: {_join(written)})" if written else ""
