import threading
from collections.abc import Callable, Hashable, Iterator

from .shared import SharedOwner
from .weak import WeakObserver


__all__ = [
    "WeakCache",
]


class WeakCache[K: Hashable, T]:
    """
    Mapping from keys to weakly observed objects.

    Entries never keep their objects alive: a lookup locks the observer and
    treats an empty result as a miss, erasing the stale entry on the way.
    """

    def __init__(self):
        self.__lock = threading.Lock()
        self.__entries: dict[K, WeakObserver[T]] = {}

    def __len__(self):
        """Number of entries whose object is still alive"""
        with self.__lock:
            return sum(1 for observer in self.__entries.values() if not observer.expired())

    def __contains__(self, key: K):
        with self.__lock:
            observer = self.__entries.get(key)
            return observer is not None and not observer.expired()

    def put(self, key: K, owner: SharedOwner[T]) -> None:
        if not owner:
            raise ValueError("cannot cache an empty SharedOwner")
        with self.__lock:
            self.__entries[key] = WeakObserver(owner)

    def get(self, key: K) -> SharedOwner[T]:
        with self.__lock:
            observer = self.__entries.get(key)
            if observer is None:
                return SharedOwner()
            owner = observer.lock()
            if not owner:
                del self.__entries[key]
            return owner

    def get_or_create(self, key: K, factory: Callable[[], SharedOwner[T]]) -> SharedOwner[T]:
        owner = self.get(key)
        if owner:
            return owner

        # the factory may be slow or use the cache itself, run it unlocked
        created = factory()
        if not created:
            raise ValueError("factory returned an empty SharedOwner")
        with self.__lock:
            observer = self.__entries.get(key)
            if observer is not None:
                owner = observer.lock()
                if owner:
                    return owner
            self.__entries[key] = WeakObserver(created)
        return created

    def discard(self, key: K) -> None:
        with self.__lock:
            self.__entries.pop(key, None)

    def prune(self) -> int:
        """Erase expired entries, returning how many were dropped"""
        with self.__lock:
            stale = [key for key, observer in self.__entries.items() if observer.expired()]
            for key in stale:
                del self.__entries[key]
        return len(stale)

    def items(self) -> Iterator[tuple[K, SharedOwner[T]]]:
        with self.__lock:
            entries = list(self.__entries.items())
        for key, observer in entries:
            if owner := observer.lock():
                yield key, owner
