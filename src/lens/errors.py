"""Lifecycle errors raised by the configuration state machine."""

from __future__ import annotations


class LifecycleError(RuntimeError):
    """Base class for configuration ordering mistakes."""


class ConfigurationAlreadyExists(LifecycleError):
    """A second configuration holder was requested."""


class ConfigurationSealed(LifecycleError):
    """A mutation was attempted while the configuration is sealed."""


class ConfigurationNotSealed(LifecycleError):
    """Inspection was attempted after an explicit unseal."""


class AlreadySealed(LifecycleError):
    pass


class NotSealed(LifecycleError):
    pass


__all__ = [
    "AlreadySealed",
    "ConfigurationAlreadyExists",
    "ConfigurationNotSealed",
    "ConfigurationSealed",
    "LifecycleError",
    "NotSealed",
]
