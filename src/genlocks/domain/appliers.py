"""Switch the live host session to a resolved lock value, guarding against stale context."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import TYPE_CHECKING, ClassVar, Protocol

from genlocks.domain.errors import (
    HostOperationError,
    LockEngineError,
    StaleContextError,
    TemplateNotFoundError,
)
from genlocks.domain.model import LockableItem

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from genlocks.domain.context import ContextProvider
    from genlocks.domain.model import (
        ContextToken,
        PromptDefinition,
        PromptOrderEntry,
        PromptTemplate,
    )
    from genlocks.domain.ports import PresetCommands, ProfileCommands, PromptStructure

log = logging.getLogger(__name__)


@contextmanager
def host_errors(item: LockableItem, message: str) -> Iterator[None]:
    """Re-raise anything the host throws as ``HostOperationError``."""

    try:
        yield
    except LockEngineError:
        raise
    except Exception as exc:
        raise HostOperationError(message, item=item) from exc


class TemplateSource(Protocol):
    def get_template(self, template_id: str) -> PromptTemplate | None: ...


class ItemApplier(ABC):
    """Apply one lockable item.

    ``apply`` succeeds without touching the host when the value is ``None`` or
    already live. Otherwise the context is re-read (bypassing the cache) before the
    switch and again after it; a changed context aborts with ``False``.
    """

    item: ClassVar[LockableItem]

    def __init__(self, context: ContextProvider) -> None:
        self._context = context

    @abstractmethod
    def _read_current(self) -> str | None: ...

    def get_current_value(self) -> str | None:
        with host_errors(self.item, f"Failed to read the current {self.item}"):
            return self._read_current()

    @abstractmethod
    async def _switch(self, value: str) -> None: ...

    def is_current(self, value: str) -> bool:
        return self.get_current_value() == value

    def _mark_applied(self, value: str) -> None:
        _ = value

    def _ensure_context(self, token: ContextToken) -> None:
        if self._context.get_current(fresh=True).token != token:
            raise StaleContextError(self.item)

    async def apply(self, value: str | None, context_token: ContextToken) -> bool:
        if value is None:
            return True
        if self.is_current(value):
            log.debug("%s %r already active", self.item, value)
            self._mark_applied(value)
            return True

        try:
            self._ensure_context(context_token)
            with host_errors(self.item, f"Failed to switch {self.item} to {value!r}"):
                await self._switch(value)
            self._ensure_context(context_token)
        except StaleContextError as exc:
            log.info("%s; skipping %r", exc, value)
            return False

        self._mark_applied(value)
        log.info("Applied %s %r", self.item, value)
        return True


class ProfileApplier(ItemApplier):
    item = LockableItem.PROFILE

    def __init__(self, context: ContextProvider, commands: ProfileCommands) -> None:
        super().__init__(context)
        self._commands = commands

    def _read_current(self) -> str | None:
        return self._commands.current_profile()

    async def _switch(self, value: str) -> None:
        await self._commands.switch_profile(value)


class PresetApplier(ItemApplier):
    item = LockableItem.PRESET

    def __init__(self, context: ContextProvider, commands: PresetCommands) -> None:
        super().__init__(context)
        self._commands = commands

    def _read_current(self) -> str | None:
        return self._commands.current_preset()

    async def _switch(self, value: str) -> None:
        await self._commands.switch_preset(value)


class TemplateApplier(ItemApplier):
    """Templates have no host-side name, so the applier remembers what it applied.

    The remembered id is reported only while the live prompt structure still matches
    the template; edits made afterwards (or a preset swap) count as drift.
    """

    item = LockableItem.TEMPLATE

    def __init__(
        self,
        context: ContextProvider,
        structure: PromptStructure,
        templates: TemplateSource,
    ) -> None:
        super().__init__(context)
        self._structure = structure
        self._templates = templates
        self._applied: str | None = None

    def _template(self, template_id: str) -> PromptTemplate:
        template = self._templates.get_template(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    def compare_with_template(self, template_id: str) -> bool:
        template = self._template(template_id)
        prompts, order = self._live_structure()
        live = {prompt.identifier: prompt for prompt in prompts}
        for identifier, prompt in template.prompts.items():
            live_prompt = live.get(identifier)
            if live_prompt is None or not prompt.behaves_like(live_prompt):
                return False
        if template.prompt_order:
            return order == template.prompt_order
        return True

    def _live_structure(self) -> tuple[Sequence[PromptDefinition], tuple[PromptOrderEntry, ...]]:
        with host_errors(self.item, "Failed to read the live prompt structure"):
            return tuple(self._structure.prompts()), tuple(self._structure.prompt_order())

    def _read_current(self) -> str | None:
        if self._applied is None:
            return None
        try:
            matches = self.compare_with_template(self._applied)
        except TemplateNotFoundError:
            matches = False
        return self._applied if matches else None

    def is_current(self, value: str) -> bool:
        return self.compare_with_template(value)

    def _mark_applied(self, value: str) -> None:
        self._applied = value

    async def _switch(self, value: str) -> None:
        template = self._template(value)
        await self._structure.replace_structure(
            template.prompts,
            template.prompt_order,
            template.prompt_order_character_id,
        )
