"""Pydantic models describing the persisted lock, template and settings payloads."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class GenLocksBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LockPayload(GenLocksBaseModel):
    profile: str | None = None
    preset: str | None = None
    template: str | None = Field(default=None, alias="templateId")

    _normalize_values = field_validator("profile", "preset", "template", mode="before")(
        _blank_to_none
    )


class PromptPayload(GenLocksBaseModel):
    identifier: str
    name: str = ""
    role: str = "system"
    content: str = ""
    system_prompt: bool = False
    marker: bool = False
    injection_position: int = 0
    injection_depth: int = 4
    injection_order: int = 100
    injection_trigger: list[str] = Field(default_factory=list)
    forbid_overrides: bool = False

    @field_validator("content", "name", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


class PromptOrderPayload(GenLocksBaseModel):
    identifier: str
    enabled: bool = True


class TemplatePayload(GenLocksBaseModel):
    id: str
    name: str
    description: str = ""
    prompts: dict[str, PromptPayload] = Field(default_factory=dict)
    prompt_order: list[PromptOrderPayload] = Field(default_factory=list, alias="promptOrder")
    prompt_order_character_id: int | None = Field(default=None, alias="promptOrderCharacterId")
    character_name: str | None = Field(default=None, alias="characterName")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


class PreferencesPayload(GenLocksBaseModel):
    """Raw preference values; validated against the domain rules by the translator."""

    priority_order: list[str] | None = Field(default=None, alias="priorityOrder")
    prefer_individual_over_group: bool | None = Field(
        default=None, alias="preferIndividualOverGroup"
    )
    auto_apply_mode: str | None = Field(default=None, alias="autoApplyMode")
    show_notifications: bool | None = Field(default=None, alias="showNotifications")


class SettingsPayload(GenLocksBaseModel):
    character_locks_by_index: dict[int, LockPayload] = Field(
        default_factory=dict, alias="characterLocksByIndex"
    )
    character_locks_by_name: dict[str, LockPayload] = Field(
        default_factory=dict, alias="characterLocks"
    )
    model_locks: dict[str, LockPayload] = Field(default_factory=dict, alias="modelLocks")
    templates: dict[str, TemplatePayload] = Field(default_factory=dict)
    preferences: PreferencesPayload = Field(default_factory=PreferencesPayload)
