"""Tuning knobs for context caching, debouncing and settings storage."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from .env import optional_float_env, optional_int_env
from .errors import ConfigurationError

DEFAULT_CONTEXT_CACHE_SECONDS: Final[float] = 1.0
DEFAULT_DEBOUNCE_SECONDS: Final[float] = 0.1
DEFAULT_QUEUE_CAPACITY: Final[int] = 20
DEFAULT_SETTINGS_NAMESPACE: Final[str] = "generationLocks"


@dataclass(frozen=True, slots=True)
class EngineConfig:
    context_cache_seconds: float = DEFAULT_CONTEXT_CACHE_SECONDS
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    queue_capacity: int = DEFAULT_QUEUE_CAPACITY
    settings_namespace: str = DEFAULT_SETTINGS_NAMESPACE

    def __post_init__(self) -> None:
        if self.context_cache_seconds < 0:
            raise ConfigurationError("context_cache_seconds must be non-negative")
        if self.debounce_seconds < 0:
            raise ConfigurationError("debounce_seconds must be non-negative")
        if self.queue_capacity < 1:
            raise ConfigurationError("queue_capacity must be at least 1")
        if not self.settings_namespace.strip():
            raise ConfigurationError("settings_namespace must not be blank")


def get_engine_config() -> EngineConfig:
    """Build an ``EngineConfig`` honouring the optional ``GENLOCKS_*`` overrides."""

    namespace = os.getenv("GENLOCKS_SETTINGS_NAMESPACE")
    return EngineConfig(
        context_cache_seconds=optional_float_env(
            "GENLOCKS_CONTEXT_CACHE_SECONDS", DEFAULT_CONTEXT_CACHE_SECONDS
        ),
        debounce_seconds=optional_float_env("GENLOCKS_DEBOUNCE_SECONDS", DEFAULT_DEBOUNCE_SECONDS),
        queue_capacity=optional_int_env("GENLOCKS_QUEUE_CAPACITY", DEFAULT_QUEUE_CAPACITY),
        settings_namespace=namespace.strip() if namespace else DEFAULT_SETTINGS_NAMESPACE,
    )
