"""Prompt templates: snapshots of a prompt structure that can be locked and re-applied."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from genlocks.domain.errors import InvalidConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

TEMPLATE_ID_PREFIX: Final[str] = "tmpl_"
_ID_ALPHABET: Final[str] = string.ascii_lowercase + string.digits
_ID_LENGTH: Final[int] = 9


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True, kw_only=True)
class PromptDefinition:
    identifier: str
    name: str = ""
    role: str = "system"
    content: str = ""
    system_prompt: bool = False
    marker: bool = False
    injection_position: int = 0
    injection_depth: int = 4
    injection_order: int = 100
    injection_trigger: tuple[str, ...] = ()
    forbid_overrides: bool = False

    def behaves_like(self, other: PromptDefinition) -> bool:
        """Whether ``other`` produces the same prompt (names and markers are cosmetic)."""

        return (
            self.content == other.content
            and self.role == other.role
            and self.injection_position == other.injection_position
            and self.injection_depth == other.injection_depth
            and self.injection_order == other.injection_order
            and frozenset(self.injection_trigger) == frozenset(other.injection_trigger)
            and self.forbid_overrides == other.forbid_overrides
        )


@dataclass(frozen=True, slots=True)
class PromptOrderEntry:
    identifier: str
    enabled: bool = True


@dataclass(frozen=True, slots=True, kw_only=True)
class PromptTemplate:
    id: str
    name: str
    description: str = ""
    prompts: Mapping[str, PromptDefinition] = field(default_factory=dict)
    prompt_order: tuple[PromptOrderEntry, ...] = ()
    prompt_order_character_id: int | None = None
    character_name: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


def generate_template_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))
    return TEMPLATE_ID_PREFIX + suffix


def validate_template(template: PromptTemplate) -> PromptTemplate:
    """Reject templates without an id, a name or a prompt mapping."""

    if not template.id or not template.id.strip():
        raise InvalidConfigurationError("Template id must not be blank")
    if not template.name or not template.name.strip():
        raise InvalidConfigurationError(f"Template {template.id} needs a name")
    if not template.prompts:
        raise InvalidConfigurationError(f"Template {template.id} has no prompts")
    for identifier, prompt in template.prompts.items():
        if identifier != prompt.identifier:
            raise InvalidConfigurationError(
                f"Template {template.id} maps {identifier!r} to prompt {prompt.identifier!r}"
            )
    return template


def create_template(  # noqa: PLR0913
    *,
    name: str,
    prompts: Iterable[PromptDefinition],
    prompt_order: Iterable[PromptOrderEntry] = (),
    description: str = "",
    include: Iterable[str] | None = None,
    prompt_order_character_id: int | None = None,
    character_name: str | None = None,
    template_id: str | None = None,
    now: Callable[[], datetime] = _utcnow,
) -> PromptTemplate:
    """Snapshot ``prompts`` into a new template.

    ``include`` restricts the snapshot to the given identifiers; unknown identifiers
    are ignored. The prompt order is stored as given.
    """

    available = {prompt.identifier: prompt for prompt in prompts if prompt.identifier}
    wanted = list(include) if include is not None else list(available)
    selected = {identifier: available[identifier] for identifier in wanted if identifier in available}
    timestamp = now()
    return validate_template(
        PromptTemplate(
            id=template_id or generate_template_id(),
            name=name,
            description=description,
            prompts=selected,
            prompt_order=tuple(prompt_order),
            prompt_order_character_id=prompt_order_character_id,
            character_name=character_name,
            created_at=timestamp,
            updated_at=timestamp,
        )
    )


_IMMUTABLE_FIELDS: Final[frozenset[str]] = frozenset({"id", "created_at", "updated_at"})


def update_template(
    template: PromptTemplate,
    changes: Mapping[str, object],
    *,
    now: Callable[[], datetime] = _utcnow,
) -> PromptTemplate:
    """Apply ``changes`` while keeping the id and creation time; bumps ``updated_at``."""

    allowed = {key: value for key, value in changes.items() if key not in _IMMUTABLE_FIELDS}
    unknown = set(allowed) - set(PromptTemplate.__dataclass_fields__)
    if unknown:
        raise InvalidConfigurationError(f"Unknown template fields: {sorted(unknown)}")
    return validate_template(replace(template, **allowed, updated_at=now()))  # type: ignore[arg-type]


def clone_template(
    template: PromptTemplate,
    new_name: str,
    *,
    now: Callable[[], datetime] = _utcnow,
) -> PromptTemplate:
    timestamp = now()
    return validate_template(
        replace(
            template,
            id=generate_template_id(),
            name=new_name,
            created_at=timestamp,
            updated_at=timestamp,
        )
    )
