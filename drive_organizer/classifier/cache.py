import threading

from drive_organizer.data_models.classify import Suggestion, cache_key


class ClassificationCache:
    """Run-scoped memo of AI suggestions keyed by ``name|mime_type``.

    No eviction and no TTL; last write wins. Thread-safe.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: dict[str, Suggestion] = {}

    def get(self, key: str) -> Suggestion | None:
        with self._lock:
            return self._items.get(key)

    def set(self, key: str, suggestion: Suggestion) -> None:
        with self._lock:
            self._items[key] = suggestion

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def get_or_set(self, key: str, compute) -> Suggestion:
        """Return the cached suggestion for ``key``, computing it on a miss.

        ``compute`` runs outside the lock; concurrent misses may both compute
        and the later write wins.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        suggestion = compute()
        self.set(key, suggestion)
        return suggestion


__all__ = ["ClassificationCache", "cache_key"]
