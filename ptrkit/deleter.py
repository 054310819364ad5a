from abc import ABC, abstractmethod
from collections.abc import Callable
from ctypes import _Pointer, c_void_p

from . import memory


__all__ = [
    "Deleter",
    "DefaultDelete",
    "FunctionDelete",
    "default_delete",
    "as_deleter",
    "resolve",
]


class Deleter[T](ABC):
    @abstractmethod
    def __call__(self, ptr: T) -> None:
        pass

    def accepts(self, ptr: T) -> bool:
        return True


class DefaultDelete(Deleter):
    """Releases pointers obtained from `memory.new`"""

    def __call__(self, ptr) -> None:
        memory.delete(ptr)

    def accepts(self, ptr) -> bool:
        # typed handles such as FILE_p subclass c_void_p but need their own release call
        return isinstance(ptr, _Pointer) or type(ptr) is c_void_p

    def __repr__(self):
        return "DefaultDelete()"


class FunctionDelete[T](Deleter[T]):
    def __init__(self, fn: Callable[[T], object]):
        self.__fn = fn

    @property
    def fn(self) -> Callable[[T], object]:
        return self.__fn

    def __call__(self, ptr: T) -> None:
        self.__fn(ptr)

    def __repr__(self):
        return f"FunctionDelete({self.__fn!r})"


default_delete = DefaultDelete()


def as_deleter(deleter: Deleter | Callable | None) -> Deleter:
    if deleter is None:
        return default_delete
    if isinstance(deleter, Deleter):
        return deleter
    if callable(deleter):
        return FunctionDelete(deleter)
    raise TypeError(f"deleter must be callable, got {type(deleter).__name__}")


def resolve(ptr, deleter: Deleter | Callable | None) -> Deleter:
    """
    Pick the deleter for `ptr` and check that its type is one the deleter can
    release. Only the type is checked: a pointer into memory libc does not own
    still passes, and handing it to the default deleter is a caller error.
    """
    deleter = as_deleter(deleter)
    if not memory.is_null(ptr) and not deleter.accepts(ptr):
        raise TypeError(f"{deleter!r} cannot release {type(ptr).__name__} objects, pass a custom deleter")
    return deleter
