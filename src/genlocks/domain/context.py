"""Derive the current session context from host signals, with a short-lived cache."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Final

from genlocks.config.engine import DEFAULT_CONTEXT_CACHE_SECONDS
from genlocks.domain.errors import ContextUnavailableError
from genlocks.domain.model import SessionContext, normalize_character_name

if TYPE_CHECKING:
    from collections.abc import Callable

    from genlocks.domain.ports import HostContextSource, HostSignals

log = logging.getLogger(__name__)

# Names the host shows when no real character is speaking.
DEFAULT_PLACEHOLDER_NAMES: Final[frozenset[str]] = frozenset({"SillyTavern System", "Assistant"})


class ContextProvider:
    """Cached view of which character/group/model/chat is active.

    When the host cannot be read, the last good snapshot is returned (expired or
    not). Without one, ``ContextUnavailableError`` is raised.
    """

    def __init__(
        self,
        source: HostContextSource,
        *,
        cache_seconds: float = DEFAULT_CONTEXT_CACHE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        placeholder_names: frozenset[str] = DEFAULT_PLACEHOLDER_NAMES,
    ) -> None:
        self._source = source
        self._cache_seconds = cache_seconds
        self._clock = clock
        self._placeholder_names = placeholder_names
        self._cached: SessionContext | None = None
        self._cached_at: float | None = None

    def get_current(self, *, fresh: bool = False) -> SessionContext:
        now = self._clock()
        if (
            not fresh
            and self._cached is not None
            and self._cached_at is not None
            and now - self._cached_at < self._cache_seconds
        ):
            return self._cached

        try:
            context = self._build(self._source.read_signals())
        except Exception as exc:
            if self._cached is not None:
                log.warning("Context build failed, reusing last snapshot: %s", exc)
                return self._cached
            raise ContextUnavailableError("Could not determine the session context") from exc

        self._cached = context
        self._cached_at = now
        return context

    def invalidate(self) -> None:
        # Keep the snapshot itself as the fallback for failed rebuilds.
        self._cached_at = None

    def _build(self, signals: HostSignals) -> SessionContext:
        if signals.group_id:
            return SessionContext(
                is_group_chat=True,
                group_id=signals.group_id,
                group_name=signals.group_name,
                model_name=signals.model_name,
                chat_id=signals.chat_id,
            )

        name = signals.character_name
        if not name or name in self._placeholder_names:
            name = signals.chat_character_name
        index = signals.character_index
        return SessionContext(
            is_group_chat=False,
            character_index=index if index is not None and index >= 0 else None,
            character_name=normalize_character_name(name),
            model_name=signals.model_name,
            chat_id=signals.chat_id,
        )
