"""Application configuration helpers."""

from __future__ import annotations

from .cache import BindingCacheConfig, get_cache_config
from .env import read_env_float, read_env_str
from .errors import ConfigurationError, InvalidConfigurationError
from .registrations import (
    Registration,
    RegistrationsDocument,
    apply_registrations,
    import_reference,
    load_registrations,
)

__all__ = [
    "BindingCacheConfig",
    "ConfigurationError",
    "InvalidConfigurationError",
    "Registration",
    "RegistrationsDocument",
    "apply_registrations",
    "get_cache_config",
    "import_reference",
    "load_registrations",
    "read_env_float",
    "read_env_str",
]
