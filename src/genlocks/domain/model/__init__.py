"""Public domain model surface."""

from __future__ import annotations

from genlocks.domain.model.context import (
    CharacterKey,
    ContextToken,
    IndexKey,
    NameKey,
    SessionContext,
    character_key_chain,
    normalize_character_name,
)
from genlocks.domain.model.enums import (
    APPLY_ORDER,
    ORDERABLE_DIMENSIONS,
    AutoApplyMode,
    ChangeReason,
    ConfirmationResult,
    Dimension,
    LockableItem,
    OrchestratorState,
)
from genlocks.domain.model.locks import (
    EMPTY_RECORD,
    Conflict,
    LockRecord,
    ResolvedItem,
    ResolvedSet,
)
from genlocks.domain.model.preferences import (
    DEFAULT_PREFERENCES,
    DEFAULT_PRIORITY_ORDER,
    Preferences,
    PriorityOrder,
    coerce_preference,
    validate_priority_order,
)
from genlocks.domain.model.settings import SettingsDocument
from genlocks.domain.model.templates import (
    TEMPLATE_ID_PREFIX,
    PromptDefinition,
    PromptOrderEntry,
    PromptTemplate,
    clone_template,
    create_template,
    generate_template_id,
    update_template,
    validate_template,
)

__all__ = [  # noqa: RUF022
    # enums
    "APPLY_ORDER",
    "ORDERABLE_DIMENSIONS",
    "AutoApplyMode",
    "ChangeReason",
    "ConfirmationResult",
    "Dimension",
    "LockableItem",
    "OrchestratorState",
    # context
    "CharacterKey",
    "ContextToken",
    "IndexKey",
    "NameKey",
    "SessionContext",
    "character_key_chain",
    "normalize_character_name",
    # locks
    "EMPTY_RECORD",
    "Conflict",
    "LockRecord",
    "ResolvedItem",
    "ResolvedSet",
    # preferences
    "DEFAULT_PREFERENCES",
    "DEFAULT_PRIORITY_ORDER",
    "Preferences",
    "PriorityOrder",
    "coerce_preference",
    "validate_priority_order",
    # settings
    "SettingsDocument",
    # templates
    "TEMPLATE_ID_PREFIX",
    "PromptDefinition",
    "PromptOrderEntry",
    "PromptTemplate",
    "clone_template",
    "create_template",
    "generate_template_id",
    "update_template",
    "validate_template",
]
