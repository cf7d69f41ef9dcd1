"""Registry of definition types and their immutable / modifiable implementations."""

from __future__ import annotations

from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING, Any, Self

from rowbind.domain.bindings import ImmutableBinding, ModifiableBinding, PropertyBinding
from rowbind.domain.cache import BindingCache
from rowbind.domain.errors import BindingConfigurationError
from rowbind.domain.types import erase, is_contract

if TYPE_CHECKING:
    from collections.abc import Callable

    from rowbind.config.cache import BindingCacheConfig

log = getLogger(__name__)

type BindingFactory = Callable[[object], PropertyBinding[Any]]


class TypeRegistry:
    """Resolves types to property bindings.

    Registrations happen at configuration time, before concurrent use. Lookups
    never lock the factory map; discovered bindings are shared through the
    registry's own ``BindingCache``. Use ``create_copy`` to fork an independently
    configurable registry.
    """

    def __init__(
        self,
        *,
        cache: BindingCache | None = None,
        cache_config: BindingCacheConfig | None = None,
    ) -> None:
        self._factories: dict[type, BindingFactory] = {}
        self._cache = cache if cache is not None else BindingCache(cache_config)

    @property
    def cache(self) -> BindingCache:
        return self._cache

    def __contains__(self, tp: object) -> bool:
        return erase(tp) in self._factories

    def registered_types(self) -> list[type]:
        return list(self._factories)

    def register[T](
        self,
        definition: type[T],
        immutable: type[T],
        modifiable: type[T] | None = None,
        *,
        builder: Callable[[], Any] | None = None,
        create: Callable[[], Any] | None = None,
    ) -> Self:
        """Register a definition with its immutable and, optionally, modifiable implementation.

        ``builder`` and ``create`` replace the ``builder()`` / ``create()`` factory
        lookups on the implementation classes.
        """

        _require_concrete(immutable, "immutable")
        if modifiable is not None:
            _require_concrete(modifiable, "modifiable")

        immutable_factory: BindingFactory = partial(
            ImmutableBinding,
            definition=definition,
            implementation=immutable,
            builder=builder,
        )
        self._factories[definition] = immutable_factory
        self._factories[immutable] = immutable_factory
        if modifiable is not None:
            self._factories[modifiable] = partial(
                ModifiableBinding,
                definition=definition,
                implementation=modifiable,
                create=create,
            )
        self._cache.clear()
        log.debug(
            "Registered %s (immutable=%s, modifiable=%s)",
            definition.__qualname__,
            immutable.__qualname__,
            modifiable.__qualname__ if modifiable is not None else None,
        )
        return self

    def resolve(self, tp: object) -> PropertyBinding[Any] | None:
        """Return the binding for ``tp``, or ``None`` when no registration applies.

        The raw class is looked up first, then its direct bases in declaration order.
        """

        factory = self._find_factory(erase(tp))
        if factory is None:
            log.debug("No binding registered for %s", tp)
            return None
        return self._cache.get_or_create(tp, partial(factory, tp))  # type: ignore[arg-type]

    def create_copy(self) -> TypeRegistry:
        copy = TypeRegistry(cache_config=self._cache.config)
        copy._factories.update(self._factories)  # noqa: SLF001
        return copy

    def _find_factory(self, raw: type) -> BindingFactory | None:
        for candidate in (raw, *raw.__bases__):
            factory = self._factories.get(candidate)
            if factory is not None:
                return factory
        return None


def _require_concrete(cls: object, role: str) -> None:
    if not isinstance(cls, type):
        raise BindingConfigurationError(f"The {role} implementation must be a class, got {cls!r}")
    if is_contract(cls):
        raise BindingConfigurationError(
            f"Register the concrete {role} implementation, not the contract {cls.__qualname__}"
        )
