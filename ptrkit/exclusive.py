from collections.abc import Callable
from typing import final

from . import memory
from .deleter import Deleter, resolve


__all__ = [
    "ExclusiveOwner",
    "make_exclusive",
]


@final
class ExclusiveOwner[T]:
    """
    Sole owner of a raw pointer. The deleter runs exactly once, when the owner
    is reset, closed as a context manager or collected while still holding a
    pointer. Ownership only ever moves: there is no way to copy an owner.

    Handing a pointer that is already owned elsewhere to a new owner is a
    caller error and is not detected.
    """

    def __init__(self, value: T | None = None, deleter: Deleter[T] | Callable[[T], object] | None = None):
        self.__value = None
        self.__deleter = resolve(value, deleter)
        self.__value = None if memory.is_null(value) else value

    def __bool__(self):
        return self.__value is not None

    def __del__(self):
        if self.__value is not None:
            self.reset()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.reset()

    def __reduce_ex__(self, protocol):
        raise TypeError("ExclusiveOwner cannot be copied, use move() to transfer ownership")

    def __repr__(self):
        return f"ExclusiveOwner({self.__value!r}, {self.__deleter!r})"

    @property
    def value(self) -> T:
        if self.__value is None:
            raise RuntimeError("null ptr dereference")
        return self.__value

    def get(self) -> T | None:
        return self.__value

    def get_deleter(self) -> Deleter[T]:
        return self.__deleter

    def release(self) -> T | None:
        value, self.__value = self.__value, None
        return value

    def reset(self, value: T | None = None) -> None:
        if memory.is_null(value):
            value = None
        elif value is self.__value:
            return
        elif not self.__deleter.accepts(value):
            raise TypeError(f"{self.__deleter!r} cannot release {type(value).__name__} objects")
        old, self.__value = self.__value, value
        if old is not None:
            self.__deleter(old)

    def move(self) -> "ExclusiveOwner[T]":
        """Transfer ownership to a new owner, leaving this one empty"""
        return ExclusiveOwner(self.release(), self.__deleter)

    def move_from(self, other: "ExclusiveOwner[T]") -> None:
        """Destroy the current object, then take over everything `other` owns"""
        if other is self:
            return
        old, old_deleter = self.__value, self.__deleter
        self.__deleter = other.get_deleter()
        self.__value = other.release()
        if old is not None:
            old_deleter(old)

    def swap(self, other: "ExclusiveOwner[T]") -> None:
        other.__value, self.__value = self.__value, other.__value
        other.__deleter, self.__deleter = self.__deleter, other.__deleter


def make_exclusive[T](ctype: type[T], *args) -> ExclusiveOwner:
    """Allocate and construct a `ctype` object owned by a new ExclusiveOwner"""
    return ExclusiveOwner(memory.new(ctype, *args))
