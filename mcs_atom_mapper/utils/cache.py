"""
Thread-safe memoization store shared by the tasks of one mapping run.
"""

import threading
from typing import Any, Callable, Dict, Hashable, Optional

from mcs_atom_mapper.utils.logging_config import logger


class ResultCache:
    """
    Key-value store safe for concurrent access from several mapping tasks.

    One instance is created per orchestration run and passed to every task;
    ``cleanup`` empties it when the run ends.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._store: Dict[Hashable, Any] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: Hashable, default: Optional[Any] = None) -> Any:
        with self._lock:
            if key in self._store:
                self._hits += 1
                return self._store[key]
            self._misses += 1
            return default

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._store[key] = value

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        """
        Return the cached value for ``key``, computing and storing it if absent.

        The computation runs outside the lock, so two tasks missing the same
        key at once may both compute it; the first stored value wins.

        Args:
            key: Cache key
            compute: Zero-argument callable producing the value

        Returns:
            The cached or freshly computed value
        """
        with self._lock:
            if key in self._store:
                self._hits += 1
                return self._store[key]
            self._misses += 1
        value = compute()
        with self._lock:
            return self._store.setdefault(key, value)

    def cleanup(self) -> None:
        with self._lock:
            logger.debug(
                f"Clearing result cache: {len(self._store)} entries, "
                f"{self._hits} hits, {self._misses} misses"
            )
            self._store.clear()
            self._hits = 0
            self._misses = 0

    @property
    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"entries": len(self._store), "hits": self._hits, "misses": self._misses}

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
