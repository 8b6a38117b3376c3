"""Registry Cache: append-only, thread-safe memo table owned by a MappingRegistry.

Invariants:
    - Entries are never evicted individually; the cache lives and dies with its registry
    - get_or_compute() publishes each key at most once: every caller observes the same value
    - Values are computed outside the lock (a slow discovery never blocks other keys)
    - A compute() that raises publishes nothing

Design Decisions:
    - Duplicate concurrent computation accepted: values are immutable, so the losing
      computation is simply dropped (ADR: no per-key locks, no deadlock surface)
    - Lock guards publication only; reads are a plain dict lookup
"""

import logging
import threading
from typing import Any, Callable, Hashable

logger = logging.getLogger(__name__)


class RegistryCache:
    """Named get-or-compute store. One instance per concern (bean, immutable, qualifiers...)."""

    def __init__(self, name: str):
        self.name = name
        self._entries: dict[Hashable, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        """Return the published value for key, computing and publishing it on first use."""
        try:
            return self._entries[key]
        except KeyError:
            pass
        value = compute()
        with self._lock:
            published = self._entries.setdefault(key, value)
        if published is value:
            logger.debug("Published %r", key, extra={"cache": self.name})
        return published

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"RegistryCache({self.name!r}, entries={len(self._entries)})"
