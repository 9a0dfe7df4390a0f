"""Errors raised while reading docwriter settings from the environment."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A docwriter setting is present but unusable, e.g. an unknown transaction policy."""


class MissingConfigurationError(ConfigurationError):
    """A required setting such as ``MONGODB_URI`` is unset or blank."""
