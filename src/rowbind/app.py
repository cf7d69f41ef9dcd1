"""Application wiring for registries."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from rowbind.config import apply_registrations, get_cache_config, load_registrations
from rowbind.domain.registry import TypeRegistry

if TYPE_CHECKING:
    from pathlib import Path

    from rowbind.config import BindingCacheConfig

log = getLogger(__name__)


def build_registry(
    *,
    registrations_path: Path | None = None,
    cache_config: BindingCacheConfig | None = None,
) -> TypeRegistry:
    """Create a registry with an environment-configured cache and optional file registrations."""

    registry = TypeRegistry(cache_config=cache_config or get_cache_config())
    if registrations_path is not None:
        apply_registrations(registry, load_registrations(registrations_path))
        log.info(
            "Loaded %d registered types from %s",
            len(registry.registered_types()),
            registrations_path,
        )
    return registry
