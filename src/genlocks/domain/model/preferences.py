"""User preferences driving the lock cascade."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING, Final

from genlocks.domain.errors import InvalidConfigurationError
from genlocks.domain.model.enums import ORDERABLE_DIMENSIONS, AutoApplyMode, Dimension

if TYPE_CHECKING:
    from collections.abc import Iterable

type PriorityOrder = tuple[Dimension, Dimension, Dimension]

DEFAULT_PRIORITY_ORDER: Final[PriorityOrder] = (
    Dimension.MODEL,
    Dimension.CHAT,
    Dimension.CHARACTER,
)


def validate_priority_order(order: Iterable[Dimension | str]) -> PriorityOrder:
    """Return ``order`` as a priority tuple or raise ``InvalidConfigurationError``.

    A valid order is a permutation of exactly MODEL, CHAT and CHARACTER.
    """

    try:
        entries = tuple(Dimension(entry) for entry in order)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError(f"Invalid priority order: {order!r}") from exc
    if len(entries) != len(ORDERABLE_DIMENSIONS):
        raise InvalidConfigurationError(
            f"Priority order needs exactly {len(ORDERABLE_DIMENSIONS)} entries, got {len(entries)}"
        )
    if len(set(entries)) != len(entries):
        raise InvalidConfigurationError(f"Priority order has duplicate entries: {entries}")
    if set(entries) != ORDERABLE_DIMENSIONS:
        raise InvalidConfigurationError(
            f"Priority order may only contain model, chat and character: {entries}"
        )
    return entries  # type: ignore[return-value]


@dataclass(frozen=True, slots=True)
class Preferences:
    priority_order: PriorityOrder = DEFAULT_PRIORITY_ORDER
    prefer_individual_over_group: bool = True
    auto_apply_mode: AutoApplyMode = AutoApplyMode.ASK
    show_notifications: bool = True

    @classmethod
    def keys(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def with_value(self, key: str, value: object) -> Preferences:
        """Return a copy with ``key`` set to a coerced ``value``."""

        return replace(self, **{key: coerce_preference(key, value)})

    def as_dict(self) -> dict[str, object]:
        return {
            "priority_order": [dimension.value for dimension in self.priority_order],
            "prefer_individual_over_group": self.prefer_individual_over_group,
            "auto_apply_mode": self.auto_apply_mode.value,
            "show_notifications": self.show_notifications,
        }


DEFAULT_PREFERENCES: Final[Preferences] = Preferences()


def coerce_preference(key: str, value: object) -> object:
    """Validate ``value`` for preference ``key`` and convert it to its typed form."""

    match key:
        case "priority_order":
            if isinstance(value, str) or not hasattr(value, "__iter__"):
                raise InvalidConfigurationError(f"priority_order must be a sequence: {value!r}")
            return validate_priority_order(value)  # type: ignore[arg-type]
        case "prefer_individual_over_group" | "show_notifications":
            if not isinstance(value, bool):
                raise InvalidConfigurationError(f"{key} must be a boolean: {value!r}")
            return value
        case "auto_apply_mode":
            try:
                return AutoApplyMode(value)
            except ValueError as exc:
                raise InvalidConfigurationError(f"Unknown auto-apply mode: {value!r}") from exc
        case _:
            raise InvalidConfigurationError(f"Unknown preference: {key!r}")
