"""Errors raised while reading genlocks configuration."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """An environment variable or config field holds an unusable value."""
