"""
Raw allocation layer on top of libc malloc/free.

Pointers handed out here are plain ctypes pointers. Nothing tracks who owns
them: that is the job of the owner types built on top of this module.
"""

import logging
import threading
from ctypes import POINTER, _Pointer, addressof, c_void_p, cast, memmove, sizeof

from .libc import AllocationError, free, malloc


__all__ = [
    "allocate",
    "deallocate",
    "construct_at",
    "destroy_at",
    "new",
    "delete",
    "address_of",
    "is_pointer",
    "is_null",
    "align_up",
    "live_allocations",
]

logger = logging.getLogger(__name__)

_live = 0
_live_lock = threading.Lock()


def allocate(size: int) -> int:
    global _live
    address = malloc(max(size, 1))
    if not address:
        raise AllocationError(size)
    with _live_lock:
        _live += 1
    logger.debug("allocated %d bytes at %#x", size, address)
    return address


def deallocate(address: int) -> None:
    global _live
    free(address)
    with _live_lock:
        _live -= 1
    logger.debug("freed %#x", address)


def live_allocations() -> int:
    """
    Number of allocate() calls not yet matched by deallocate(). Only exact for
    storage that came from allocate(): freeing any other address still counts.
    """
    with _live_lock:
        return _live


def construct_at[T](address: int, ctype: type[T], *args) -> _Pointer:
    """Build `ctype(*args)` into existing storage and return a pointer to it"""
    obj = ctype(*args)
    memmove(address, addressof(obj), sizeof(ctype))
    return cast(address, POINTER(ctype))


def destroy_at(ptr: _Pointer | c_void_p) -> None:
    """End the lifetime of the pointee in place, without releasing its storage"""
    if not isinstance(ptr, _Pointer) or not ptr:
        return
    destroy = getattr(ptr.contents, "__destroy__", None)
    if destroy is not None:
        destroy()


def new[T](ctype: type[T], *args) -> _Pointer:
    address = allocate(sizeof(ctype))
    try:
        return construct_at(address, ctype, *args)
    except BaseException:
        deallocate(address)
        raise


def delete(ptr: _Pointer | c_void_p) -> None:
    if is_null(ptr):
        return
    address = address_of(ptr)
    try:
        destroy_at(ptr)
    finally:
        deallocate(address)


def address_of(ptr: _Pointer | c_void_p | None) -> int | None:
    if ptr is None:
        return None
    return cast(ptr, c_void_p).value


def is_pointer(obj) -> bool:
    return isinstance(obj, (_Pointer, c_void_p))


def is_null(obj) -> bool:
    return obj is None or (is_pointer(obj) and not obj)


def align_up(n: int, alignment: int) -> int:
    return (n + alignment - 1) // alignment * alignment
