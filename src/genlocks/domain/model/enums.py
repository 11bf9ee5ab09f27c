"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Dimension(StrEnum):
    """Scope a lock record is stored under."""

    CHARACTER = "character"
    MODEL = "model"
    CHAT = "chat"
    GROUP = "group"
    # Per-character lock reused when a group member is drafted to speak.
    INDIVIDUAL = "individual"


class LockableItem(StrEnum):
    """Independently resolved settings, listed in their critical apply order."""

    PROFILE = "profile"
    PRESET = "preset"
    TEMPLATE = "template"


class AutoApplyMode(StrEnum):
    NEVER = "never"
    ASK = "ask"
    ALWAYS = "always"


class ConfirmationResult(StrEnum):
    AFFIRMATIVE = "affirmative"
    NEGATIVE = "negative"
    CANCELLED = "cancelled"


class ChangeReason(StrEnum):
    """Why a resolution pass was started; drives prompt and notification wording."""

    CHAT = "chat"
    PRESET = "preset"


class OrchestratorState(StrEnum):
    IDLE = "idle"
    QUEUED = "queued"
    APPLYING = "applying"


APPLY_ORDER: tuple[LockableItem, ...] = (
    LockableItem.PROFILE,
    LockableItem.PRESET,
    LockableItem.TEMPLATE,
)

# Dimensions a priority order may contain; CHARACTER stands in for GROUP in groups.
ORDERABLE_DIMENSIONS: frozenset[Dimension] = frozenset(
    {Dimension.MODEL, Dimension.CHAT, Dimension.CHARACTER}
)
