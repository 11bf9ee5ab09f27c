"""Priority cascade: which stored lock wins for each item."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from genlocks.domain.model import (
    APPLY_ORDER,
    Conflict,
    Dimension,
    LockableItem,
    ResolvedItem,
    ResolvedSet,
)

if TYPE_CHECKING:
    from genlocks.domain.model import LockRecord, Preferences, SessionContext

log = logging.getLogger(__name__)


class LockSource(Protocol):
    def record_for(self, dimension: Dimension, context: SessionContext) -> LockRecord | None: ...


def build_cascade(context: SessionContext, preferences: Preferences) -> tuple[Dimension, ...]:
    """Map the user's priority order to concrete dimensions for ``context``.

    CHARACTER becomes GROUP inside a group chat. INDIVIDUAL is never part of the
    cascade.
    """

    cascade: list[Dimension] = []
    for dimension in preferences.priority_order:
        if dimension is Dimension.CHARACTER and context.is_group_chat:
            cascade.append(Dimension.GROUP)
        else:
            cascade.append(dimension)
    return tuple(cascade)


def _candidates(
    item: LockableItem, cascade: tuple[Dimension, ...]
) -> tuple[Dimension, ...]:
    if item is LockableItem.PROFILE:
        return tuple(dimension for dimension in cascade if dimension is not Dimension.MODEL)
    return cascade


class PriorityResolver:
    def __init__(self, store: LockSource) -> None:
        self._store = store

    def _records(
        self, context: SessionContext, cascade: tuple[Dimension, ...]
    ) -> dict[Dimension, LockRecord | None]:
        return {dimension: self._store.record_for(dimension, context) for dimension in cascade}

    def resolve(self, context: SessionContext, preferences: Preferences) -> ResolvedSet:
        """Walk the cascade once per item; the first non-null value wins."""

        cascade = build_cascade(context, preferences)
        records = self._records(context, cascade)
        resolved = ResolvedSet()
        for item in APPLY_ORDER:
            for dimension in _candidates(item, cascade):
                record = records[dimension]
                value = record.value_for(item) if record is not None else None
                if value is not None:
                    resolved = resolved.with_item(item, ResolvedItem(value, dimension))
                    break
        log.debug("Resolved %s via cascade %s", resolved, cascade)
        return resolved

    def detect_conflicts(
        self, context: SessionContext, preferences: Preferences
    ) -> list[Conflict]:
        cascade = build_cascade(context, preferences)
        records = self._records(context, cascade)
        conflicts: list[Conflict] = []
        for item in APPLY_ORDER:
            values: dict[Dimension, str] = {}
            for dimension in _candidates(item, cascade):
                record = records[dimension]
                value = record.value_for(item) if record is not None else None
                if value is not None:
                    values[dimension] = value
            if len(set(values.values())) > 1:
                conflicts.append(Conflict(item=item, values_by_dimension=values))
        return conflicts


def overlay_individual(resolved: ResolvedSet, individual: LockRecord | None) -> ResolvedSet:
    """Let a drafted member's own locks replace values that were won by the group.

    Only items whose winning source is exactly GROUP are replaced, and only when the
    member has a value for them.
    """

    if individual is None:
        return resolved
    merged = resolved
    for item, current in resolved:
        value = individual.value_for(item)
        if current.source is Dimension.GROUP and value is not None:
            merged = merged.with_item(item, ResolvedItem(value, Dimension.INDIVIDUAL))
    return merged
