from typing import final

from .control_block import ControlBlock
from .shared import SharedOwner


__all__ = [
    "WeakObserver",
]


@final
class WeakObserver[T]:
    """
    Non-owning observer of a SharedOwner's object.

    It keeps the ControlBlock alive but never the object itself. The only way
    to reach the object is lock(), which hands out a new SharedOwner if the
    object is still alive and an empty one otherwise.
    """

    def __init__(self, source: "SharedOwner[T] | WeakObserver[T] | None" = None):
        self._block: ControlBlock[T] | None = None
        if source is not None and source._block is not None:
            source._block.add_weak()
            self._block = source._block

    def __del__(self):
        if self._block is not None:
            self.reset()

    def __copy__(self):
        return self.copy()

    def __deepcopy__(self, memo):
        raise TypeError("WeakObserver cannot be deep-copied, use copy()")

    def __reduce_ex__(self, protocol):
        raise TypeError("WeakObserver cannot be pickled")

    def __repr__(self):
        return f"<WeakObserver use_count={self.use_count()}>"

    def lock(self) -> SharedOwner[T]:
        block = self._block
        if block is None or not block.add_strong_if_alive():
            return SharedOwner()
        return SharedOwner._adopt(block)

    def expired(self) -> bool:
        """Snapshot: True once the object is gone, a False answer may already be stale"""
        return self.use_count() == 0

    def use_count(self) -> int:
        return self._block.use_count() if self._block is not None else 0

    def owner_equals(self, other: "WeakObserver | SharedOwner | object") -> bool:
        return self._block is not None and self._block is getattr(other, "_block", None)

    def copy(self) -> "WeakObserver[T]":
        return WeakObserver(self)

    def move(self) -> "WeakObserver[T]":
        observer = WeakObserver()
        observer._block, self._block = self._block, None
        return observer

    def assign(self, source: "SharedOwner[T] | WeakObserver[T]") -> None:
        if source._block is self._block:
            return
        if source._block is not None:
            source._block.add_weak()
        old, self._block = self._block, source._block
        if old is not None:
            old.release_weak()

    def move_from(self, other: "WeakObserver[T]") -> None:
        if other is self:
            return
        old = self._block
        self._block, other._block = other._block, None
        if old is not None:
            old.release_weak()

    def swap(self, other: "WeakObserver[T]") -> None:
        other._block, self._block = self._block, other._block

    def reset(self) -> None:
        old, self._block = self._block, None
        if old is not None:
            old.release_weak()
