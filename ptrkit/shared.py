from collections.abc import Callable
from typing import final

from . import memory
from .control_block import ControlBlock
from .deleter import Deleter, resolve
from .exclusive import ExclusiveOwner


__all__ = [
    "SharedOwner",
    "make_shared",
]


@final
class SharedOwner[T]:
    """
    Reference-counted owner. Every copy shares one ControlBlock, and the
    object is released as soon as the last copy is reset or collected, even
    if weak observers remain.

    Constructing from a raw pointer uses separate allocation: the pointer and
    deleter are kept by a freshly allocated ControlBlock. `make_shared` uses
    combined allocation instead.

    The reference counts are thread-safe, a single SharedOwner instance and
    the pointee are not: give each thread its own copy, and synchronize
    access to the object yourself.

    Wrapping a pointer that is already managed by another SharedOwner group or
    an ExclusiveOwner is a caller error and is not detected.
    """

    def __init__(self, value: T | None = None, deleter: Deleter[T] | Callable[[T], object] | None = None):
        self._block: ControlBlock[T] | None = None
        self.__ptr: T | None = None
        if not memory.is_null(value):
            self._block = ControlBlock.separate(value, resolve(value, deleter))
            self.__ptr = value

    @classmethod
    def _adopt(cls, block: ControlBlock[T]) -> "SharedOwner[T]":
        """Wrap a block whose strong count already accounts for the new owner"""
        owner = cls()
        owner._block = block
        owner.__ptr = block.get()
        return owner

    @classmethod
    def from_exclusive(cls, owner: ExclusiveOwner[T]) -> "SharedOwner[T]":
        deleter = owner.get_deleter()
        value = owner.release()
        if value is None:
            return cls()
        return cls._adopt(ControlBlock.separate(value, deleter))

    def __bool__(self):
        return self.__ptr is not None

    def __del__(self):
        if self._block is not None:
            self.reset()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.reset()

    def __copy__(self):
        return self.copy()

    def __deepcopy__(self, memo):
        raise TypeError("SharedOwner cannot be deep-copied, use copy() to share ownership")

    def __reduce_ex__(self, protocol):
        raise TypeError("SharedOwner cannot be pickled")

    def __repr__(self):
        return f"SharedOwner({self.__ptr!r}, use_count={self.use_count()})"

    @property
    def value(self) -> T:
        if self.__ptr is None:
            raise RuntimeError("null ptr dereference")
        return self.__ptr

    def get(self) -> T | None:
        return self.__ptr

    def get_deleter(self) -> Deleter[T] | None:
        """Deleter of a separately allocated object, None for make_shared objects"""
        return self._block.deleter if self._block is not None else None

    def use_count(self) -> int:
        """Snapshot of the number of owners, only meaningful as a hint when other threads hold copies"""
        return self._block.use_count() if self._block is not None else 0

    def unique(self) -> bool:
        return self.use_count() == 1

    def owner_equals(self, other: "SharedOwner | object") -> bool:
        return self._block is not None and self._block is getattr(other, "_block", None)

    def copy(self) -> "SharedOwner[T]":
        if self._block is None:
            return SharedOwner()
        self._block.add_strong()
        return SharedOwner._adopt(self._block)

    def move(self) -> "SharedOwner[T]":
        owner = SharedOwner()
        owner.swap(self)
        return owner

    def assign(self, other: "SharedOwner[T]") -> None:
        """Share `other`'s object, dropping the current reference"""
        if other._block is self._block:
            return
        if other._block is not None:
            other._block.add_strong()
        old = self._block
        self._block, self.__ptr = other._block, other.__ptr
        if old is not None:
            old.release_strong()

    def move_from(self, other: "SharedOwner[T]") -> None:
        if other is self:
            return
        old = self._block
        self._block, self.__ptr = other._block, other.__ptr
        other._block = other.__ptr = None
        if old is not None:
            old.release_strong()

    def swap(self, other: "SharedOwner[T]") -> None:
        other._block, self._block = self._block, other._block
        other.__ptr, self.__ptr = self.__ptr, other.__ptr

    def reset(self, value: T | None = None, deleter: Deleter[T] | Callable[[T], object] | None = None) -> None:
        if value is not None and value is self.__ptr:
            return
        block = None
        if not memory.is_null(value):
            block = ControlBlock.separate(value, resolve(value, deleter))
        old = self._block
        self._block = block
        self.__ptr = block.get() if block is not None else None
        if old is not None:
            old.release_strong()


def make_shared[T](ctype: type[T], *args) -> SharedOwner:
    """Allocate a `ctype(*args)` object together with its ControlBlock"""
    return SharedOwner._adopt(ControlBlock.combined(ctype, *args))
