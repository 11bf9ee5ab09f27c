"""Error taxonomy shared by the lock engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from genlocks.domain.model import Dimension, LockableItem


class LockEngineError(RuntimeError):
    """Base class for failures raised by the lock engine."""


class InvalidConfigurationError(LockEngineError, ValueError):
    """A write was rejected at the boundary (bad priority order, blank lock name...)."""


class ContextUnavailableError(LockEngineError):
    """The session context could not be built and no earlier snapshot exists."""


class StaleContextError(LockEngineError):
    """The session moved on while an apply step was in flight."""

    def __init__(self, item: LockableItem) -> None:
        super().__init__(f"Context changed while applying {item}")
        self.item = item


class HostOperationError(LockEngineError):
    """A host command (profile/preset/prompt switch) failed."""

    def __init__(self, message: str, *, item: LockableItem | None = None) -> None:
        super().__init__(message)
        self.item = item


class TemplateNotFoundError(HostOperationError):
    def __init__(self, template_id: str) -> None:
        super().__init__(f"Template not found: {template_id}")
        self.template_id = template_id


class StorageUnavailableError(LockEngineError):
    """Nowhere to persist a write (no active chat, unknown group, failed save)."""

    def __init__(self, message: str, *, dimension: Dimension | None = None) -> None:
        super().__init__(message)
        self.dimension = dimension
