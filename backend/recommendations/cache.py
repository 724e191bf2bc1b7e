"""
Cache abstraction used by the recommendation services.

Services receive a CacheStore instead of reaching for a module level dict,
so tests can pass an isolated store and deployments can point an alias at
a shared backend.
"""
from typing import Any, Optional

from django.core.cache import caches

_MISSING = object()


class CacheStore:
    """
    Thin get/set/evict wrapper over a Django cache alias. Size bounds and
    default TTLs come from the alias' MAX_ENTRIES and TIMEOUT settings.
    """

    def __init__(self, alias: str = 'default', timeout: Optional[int] = None, prefix: str = ''):
        self.alias = alias
        self.timeout = timeout
        self.prefix = prefix

    @property
    def backend(self):
        return caches[self.alias]

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}" if self.prefix else key

    def get(self, key: str, default: Any = None) -> Any:
        value = self.backend.get(self._key(key), _MISSING)
        return default if value is _MISSING else value

    def set(self, key: str, value: Any, timeout: Optional[int] = None) -> None:
        ttl = timeout if timeout is not None else self.timeout
        if ttl is None:
            self.backend.set(self._key(key), value)
        else:
            self.backend.set(self._key(key), value, ttl)

    def evict(self, key: str) -> None:
        self.backend.delete(self._key(key))

    def clear(self) -> None:
        self.backend.clear()
