import logging
import os
from ctypes import set_errno

from .exclusive import ExclusiveOwner
from .libc import FILE_p, ResourceAcquisitionError, LibcError, fclose, fflush, fopen, fwrite


__all__ = [
    "ScopedFile",
]

logger = logging.getLogger(__name__)


def _fclose(file: FILE_p) -> None:
    if fclose(file) != 0:
        # closing happens on release paths, which must not fail
        logger.warning("fclose(%#x) failed", file.value)
    else:
        logger.debug("closed FILE* %#x", file.value)


class ScopedFile:
    """
    C stdio stream owned for the lifetime of this object.

    Opening errors are raised from the constructor. Closing never raises: an
    fclose failure is only logged.
    """

    def __init__(self, path: str | os.PathLike, mode: str = "r"):
        set_errno(0)
        file = fopen(os.fsencode(path), mode.encode())
        if not file:
            raise ResourceAcquisitionError(f"failed to open {os.fspath(path)!r}")
        logger.debug("opened %r as FILE* %#x", os.fspath(path), file.value)
        self.__file = ExclusiveOwner[FILE_p](file, _fclose)

    @classmethod
    def _adopt(cls, owner: ExclusiveOwner[FILE_p]) -> "ScopedFile":
        scoped = cls.__new__(cls)
        scoped.__file = owner
        return scoped

    def __bool__(self):
        return bool(self.__file)

    def __reduce_ex__(self, protocol):
        raise TypeError("ScopedFile cannot be copied, use move() to transfer ownership")

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def get(self) -> FILE_p | None:
        return self.__file.get()

    def write(self, data: bytes) -> int:
        set_errno(0)
        written = fwrite(data, 1, len(data), self.__file.value)
        if written != len(data):
            raise LibcError("fwrite")
        return written

    def flush(self) -> None:
        set_errno(0)
        if fflush(self.__file.value) != 0:
            raise LibcError("fflush")

    def close(self) -> None:
        self.__file.reset()

    def move(self) -> "ScopedFile":
        return ScopedFile._adopt(self.__file.move())
