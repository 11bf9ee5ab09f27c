"""Lock records and resolution results."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from genlocks.domain.model.enums import APPLY_ORDER, Dimension, LockableItem

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping


@dataclass(frozen=True, slots=True)
class LockRecord:
    """Per-item lock values saved under one dimension.

    ``None`` means "defer to a lower-priority dimension", never "force nothing".
    """

    profile: str | None = None
    preset: str | None = None
    template: str | None = None

    def value_for(self, item: LockableItem) -> str | None:
        match item:
            case LockableItem.PROFILE:
                return self.profile
            case LockableItem.PRESET:
                return self.preset
            case LockableItem.TEMPLATE:
                return self.template

    def with_value(self, item: LockableItem, value: str | None) -> LockRecord:
        return replace(self, **{item.value: value})

    @property
    def is_empty(self) -> bool:
        return all(self.value_for(item) is None for item in APPLY_ORDER)

    def as_dict(self) -> dict[str, str | None]:
        return {item.value: self.value_for(item) for item in APPLY_ORDER}

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> LockRecord:
        values: dict[str, str | None] = {}
        for item in APPLY_ORDER:
            raw = payload.get(item.value)
            values[item.value] = raw if isinstance(raw, str) else None
        return cls(**values)


EMPTY_RECORD = LockRecord()


@dataclass(frozen=True, slots=True)
class ResolvedItem:
    value: str | None = None
    source: Dimension | None = None


@dataclass(frozen=True, slots=True)
class ResolvedSet:
    """Winning value and source dimension for every lockable item."""

    profile: ResolvedItem = field(default_factory=ResolvedItem)
    preset: ResolvedItem = field(default_factory=ResolvedItem)
    template: ResolvedItem = field(default_factory=ResolvedItem)

    def item(self, item: LockableItem) -> ResolvedItem:
        match item:
            case LockableItem.PROFILE:
                return self.profile
            case LockableItem.PRESET:
                return self.preset
            case LockableItem.TEMPLATE:
                return self.template

    def with_item(self, item: LockableItem, resolved: ResolvedItem) -> ResolvedSet:
        return replace(self, **{item.value: resolved})

    @property
    def locks(self) -> LockRecord:
        return LockRecord(
            profile=self.profile.value,
            preset=self.preset.value,
            template=self.template.value,
        )

    @property
    def sources(self) -> dict[LockableItem, Dimension | None]:
        return {item: self.item(item).source for item in APPLY_ORDER}

    def __iter__(self) -> Iterator[tuple[LockableItem, ResolvedItem]]:
        for item in APPLY_ORDER:
            yield item, self.item(item)

    @property
    def is_empty(self) -> bool:
        return self.locks.is_empty


@dataclass(frozen=True, slots=True)
class Conflict:
    """More than one distinct value for ``item`` across the cascade (advisory)."""

    item: LockableItem
    values_by_dimension: dict[Dimension, str]

    @property
    def distinct_values(self) -> frozenset[str]:
        return frozenset(self.values_by_dimension.values())
