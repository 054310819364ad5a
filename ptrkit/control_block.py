import logging
import threading
from ctypes import Structure, alignment, c_size_t, sizeof

from . import memory
from .deleter import Deleter


__all__ = [
    "ControlBlock",
]

logger = logging.getLogger(__name__)


class _Counts(Structure):
    _fields_ = [
        ("strong", c_size_t),
        ("weak", c_size_t),
    ]


class ControlBlock[T]:
    """
    Shared bookkeeping for one managed object.

    The counters live in libc storage. With separate allocation that storage
    holds the counters only and the object is released through its deleter.
    With combined allocation the object sits in the same block, right after
    the counters: its lifetime ends in place when the last strong reference
    goes away, and the block is freed with the counters.

    Strong owners collectively hold one weak reference, so the raw weak
    counter starts at 1 and drops that reference only after the object has
    been disposed of. The storage is reclaimed when the raw weak counter
    reaches 0, which therefore always happens after disposal.

    All counter updates happen under the block's lock. The deleter is called
    outside of it.
    """

    def __init__(self, ptr: T, storage: int, deleter: Deleter[T] | None):
        self.__lock = threading.Lock()
        self.__ptr: T | None = ptr
        self.__deleter = deleter
        self.__storage: int | None = storage
        self.__counts: _Counts | None = _Counts.from_address(storage)
        self.__counts.strong = 1
        self.__counts.weak = 1
        self.__stake = 1

    @classmethod
    def separate(cls, ptr: T, deleter: Deleter[T]) -> "ControlBlock[T]":
        """Track an object allocated elsewhere, released by `deleter`"""
        try:
            storage = memory.allocate(sizeof(_Counts))
        except BaseException:
            deleter(ptr)
            raise
        return cls(ptr, storage, deleter)

    @classmethod
    def combined(cls, ctype: type[T], *args) -> "ControlBlock":
        """Allocate the counters and a `ctype(*args)` object in a single block"""
        offset = memory.align_up(sizeof(_Counts), alignment(ctype))
        storage = memory.allocate(offset + sizeof(ctype))
        try:
            ptr = memory.construct_at(storage + offset, ctype, *args)
        except BaseException:
            memory.deallocate(storage)
            raise
        return cls(ptr, storage, None)

    def __repr__(self):
        kind = "combined" if self.is_combined else "separate"
        return f"<ControlBlock {kind} strong={self.use_count()} weak={self.weak_count()}>"

    @property
    def is_combined(self) -> bool:
        return self.__deleter is None

    @property
    def deleter(self) -> Deleter[T] | None:
        return self.__deleter

    def get(self) -> T | None:
        return self.__ptr

    def use_count(self) -> int:
        """Snapshot of the strong count, stale as soon as another thread moves it"""
        with self.__lock:
            return self.__counts.strong if self.__counts is not None else 0

    def weak_count(self) -> int:
        """Snapshot of the number of weak observers"""
        with self.__lock:
            return self.__counts.weak - self.__stake if self.__counts is not None else 0

    def add_strong(self) -> None:
        with self.__lock:
            if self.__counts is None or self.__counts.strong == 0:
                raise RuntimeError("cannot add a strong reference to an expired object")
            self.__counts.strong += 1

    def add_strong_if_alive(self) -> bool:
        with self.__lock:
            if self.__counts is None or self.__counts.strong == 0:
                return False
            self.__counts.strong += 1
            return True

    def release_strong(self) -> None:
        with self.__lock:
            self.__counts.strong -= 1
            if self.__counts.strong:
                return
            ptr, self.__ptr = self.__ptr, None

        try:
            self.__dispose(ptr)
        finally:
            self.__release_weak(stake=True)

    def add_weak(self) -> None:
        with self.__lock:
            if self.__counts is None:
                raise RuntimeError("control block storage has been reclaimed")
            self.__counts.weak += 1

    def release_weak(self) -> None:
        self.__release_weak(stake=False)

    def __release_weak(self, stake: bool) -> None:
        with self.__lock:
            if stake:
                self.__stake = 0
            self.__counts.weak -= 1
            if self.__counts.weak:
                return
            storage, self.__storage = self.__storage, None
            self.__counts = None

        logger.debug("reclaiming control block storage at %#x", storage)
        memory.deallocate(storage)

    def __dispose(self, ptr: T) -> None:
        if self.__deleter is None:
            logger.debug("destroying object in place at %#x", memory.address_of(ptr))
            memory.destroy_at(ptr)
        else:
            logger.debug("releasing %r through %r", ptr, self.__deleter)
            self.__deleter(ptr)
