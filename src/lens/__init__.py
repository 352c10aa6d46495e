"""Metadata cache and configuration lifecycle."""

from lens.admin import Admin
from lens.cache import PermanentCache
from lens.core import Lens
from lens.errors import (
    AlreadySealed,
    ConfigurationAlreadyExists,
    ConfigurationNotSealed,
    ConfigurationSealed,
    LifecycleError,
    NotSealed,
)
from lens.settings import CONFIG_FILENAME, ConfigError, LensSettings, load_settings

__all__ = [
    "CONFIG_FILENAME",
    "Admin",
    "AlreadySealed",
    "ConfigError",
    "ConfigurationAlreadyExists",
    "ConfigurationNotSealed",
    "ConfigurationSealed",
    "Lens",
    "LensSettings",
    "LifecycleError",
    "NotSealed",
    "PermanentCache",
    "load_settings",
]
