"""
Process-lifetime caches for schema and foreign key metadata.

Both caches are get-or-compute maps with single-flight semantics: when
several request threads miss on the same key at once, exactly one of them
runs the catalog query and the others block on its result. Successful
entries are never evicted, so a schema change in the database is only seen
after a restart. Failures are not stored; the next request tries again.
"""

import logging
import threading
from concurrent.futures import Future
from typing import Callable, Generic, Hashable, TypeVar

from tablebridge.core.schema import ForeignKeyMapping, TableSchema

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class SingleFlightCache(Generic[K, V]):
    """Memoize ``loader(key)`` with at most one in-flight load per key."""

    def __init__(self, loader: Callable[[K], V], name: str = "cache"):
        self._loader = loader
        self._name = name
        self._lock = threading.Lock()
        self._entries: dict[K, V] = {}
        self._inflight: dict[K, Future] = {}

    def get(self, key: K) -> V:
        with self._lock:
            if key in self._entries:
                return self._entries[key]
            future = self._inflight.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[key] = future

        if not leader:
            # Re-raises the leader's exception for every waiter
            return future.result()

        logger.debug(f"{self._name}: loading {key!r}")
        try:
            value = self._loader(key)
        except BaseException as exc:
            with self._lock:
                del self._inflight[key]
            future.set_exception(exc)
            raise

        with self._lock:
            self._entries[key] = value
            del self._inflight[key]
        future.set_result(value)
        return value

    def cached_keys(self) -> list[K]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SchemaCache(SingleFlightCache[str, TableSchema]):
    """Table name -> TableSchema, loaded through ``introspector.introspect``."""

    def __init__(self, introspector):
        super().__init__(introspector.introspect, name="schema cache")


class ForeignKeyCache(SingleFlightCache[str, ForeignKeyMapping]):
    """Constraint name -> ForeignKeyMapping, loaded through the introspector."""

    def __init__(self, introspector):
        super().__init__(introspector.resolve_foreign_key, name="foreign key cache")
