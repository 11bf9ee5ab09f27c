"""Translate between persisted payloads and domain objects."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from genlocks.domain.errors import InvalidConfigurationError
from genlocks.domain.model import (
    DEFAULT_PREFERENCES,
    LockRecord,
    Preferences,
    PromptDefinition,
    PromptOrderEntry,
    PromptTemplate,
    SettingsDocument,
)

from .schema import (
    LockPayload,
    PreferencesPayload,
    PromptPayload,
    SettingsPayload,
    TemplatePayload,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

log = getLogger(__name__)


def lock_from_payload(payload: LockPayload) -> LockRecord:
    return LockRecord(profile=payload.profile, preset=payload.preset, template=payload.template)


def lock_to_payload(record: LockRecord) -> dict[str, object]:
    return LockPayload(
        profile=record.profile, preset=record.preset, template=record.template
    ).model_dump(by_alias=True)


def parse_lock(raw: object) -> LockRecord | None:
    if raw is None:
        return None
    return lock_from_payload(LockPayload.model_validate(raw))


def _prompt_from_payload(payload: PromptPayload) -> PromptDefinition:
    return PromptDefinition(
        identifier=payload.identifier,
        name=payload.name,
        role=payload.role,
        content=payload.content,
        system_prompt=payload.system_prompt,
        marker=payload.marker,
        injection_position=payload.injection_position,
        injection_depth=payload.injection_depth,
        injection_order=payload.injection_order,
        injection_trigger=tuple(payload.injection_trigger),
        forbid_overrides=payload.forbid_overrides,
    )


def parse_prompt(raw: Mapping[str, object] | PromptPayload) -> PromptDefinition:
    payload = raw if isinstance(raw, PromptPayload) else PromptPayload.model_validate(raw)
    return _prompt_from_payload(payload)


def template_from_payload(payload: TemplatePayload) -> PromptTemplate:
    return PromptTemplate(
        id=payload.id,
        name=payload.name,
        description=payload.description,
        prompts={key: _prompt_from_payload(prompt) for key, prompt in payload.prompts.items()},
        prompt_order=tuple(
            PromptOrderEntry(entry.identifier, entry.enabled) for entry in payload.prompt_order
        ),
        prompt_order_character_id=payload.prompt_order_character_id,
        character_name=payload.character_name,
        created_at=payload.created_at,
        updated_at=payload.updated_at,
    )


def template_to_payload(template: PromptTemplate) -> dict[str, object]:
    payload = TemplatePayload(
        id=template.id,
        name=template.name,
        description=template.description,
        prompts={
            key: PromptPayload(
                identifier=prompt.identifier,
                name=prompt.name,
                role=prompt.role,
                content=prompt.content,
                system_prompt=prompt.system_prompt,
                marker=prompt.marker,
                injection_position=prompt.injection_position,
                injection_depth=prompt.injection_depth,
                injection_order=prompt.injection_order,
                injection_trigger=list(prompt.injection_trigger),
                forbid_overrides=prompt.forbid_overrides,
            )
            for key, prompt in template.prompts.items()
        },
        prompt_order=[
            {"identifier": entry.identifier, "enabled": entry.enabled}  # type: ignore[list-item]
            for entry in template.prompt_order
        ],
        prompt_order_character_id=template.prompt_order_character_id,
        character_name=template.character_name,
        created_at=template.created_at,
        updated_at=template.updated_at,
    )
    return payload.model_dump(by_alias=True, mode="json")


def preferences_from_payload(payload: PreferencesPayload) -> Preferences:
    """Build preferences, falling back to the default for any stored value that is invalid."""

    preferences = DEFAULT_PREFERENCES
    for key in Preferences.keys():
        value = getattr(payload, key)
        if value is None:
            continue
        try:
            preferences = preferences.with_value(key, value)
        except InvalidConfigurationError as exc:
            log.warning("Ignoring stored preference %s: %s", key, exc)
    return preferences


def preferences_to_payload(preferences: Preferences) -> dict[str, object]:
    return PreferencesPayload.model_validate(preferences.as_dict()).model_dump(by_alias=True)


def settings_from_payload(raw: Mapping[str, object]) -> SettingsDocument:
    payload = SettingsPayload.model_validate(raw)
    return SettingsDocument(
        character_locks_by_index={
            index: lock_from_payload(lock) for index, lock in payload.character_locks_by_index.items()
        },
        character_locks_by_name={
            name: lock_from_payload(lock) for name, lock in payload.character_locks_by_name.items()
        },
        model_locks={name: lock_from_payload(lock) for name, lock in payload.model_locks.items()},
        templates={
            key: template_from_payload(template) for key, template in payload.templates.items()
        },
        preferences=preferences_from_payload(payload.preferences),
    )


def settings_to_payload(document: SettingsDocument) -> dict[str, object]:
    return {
        "characterLocksByIndex": {
            str(index): lock_to_payload(lock)
            for index, lock in document.character_locks_by_index.items()
        },
        "characterLocks": {
            name: lock_to_payload(lock) for name, lock in document.character_locks_by_name.items()
        },
        "modelLocks": {name: lock_to_payload(lock) for name, lock in document.model_locks.items()},
        "templates": {
            key: template_to_payload(template) for key, template in document.templates.items()
        },
        "preferences": preferences_to_payload(document.preferences),
    }
