"""Binding cache configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import read_env_float
from .errors import InvalidConfigurationError

CACHE_IDLE_ENV_VAR: Final[str] = "ROWBIND_BINDING_CACHE_IDLE_SECONDS"
DEFAULT_IDLE_TTL_SECONDS: Final[float] = 600.0


@dataclass(frozen=True, slots=True)
class BindingCacheConfig:
    """Idle-based expiry for discovered property bindings.

    Each access to a cached binding resets its idle timer.
    """

    idle_ttl_seconds: float = DEFAULT_IDLE_TTL_SECONDS

    def __post_init__(self) -> None:
        if self.idle_ttl_seconds <= 0:
            raise InvalidConfigurationError(
                f"Binding cache idle TTL must be positive, got {self.idle_ttl_seconds}"
            )


def get_cache_config() -> BindingCacheConfig:
    return BindingCacheConfig(
        idle_ttl_seconds=read_env_float(CACHE_IDLE_ENV_VAR, DEFAULT_IDLE_TTL_SECONDS)
    )
