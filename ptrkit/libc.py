import os
from ctypes import *
import ctypes.util


libc = CDLL(os.getenv("PTRKIT_LIBC") or ctypes.util.find_library("c"), use_errno=True)

def _import(symbol: str, restype: type | None, *argtypes: type):
    f = libc[symbol]
    f.argtypes = argtypes
    f.restype = restype
    return f

# Memory

malloc = _import("malloc", c_void_p, c_size_t)
free = _import("free", None, c_void_p)

# Stdio

class FILE_p(c_void_p): pass

fopen = _import("fopen", FILE_p, c_char_p, c_char_p)
fclose = _import("fclose", c_int, FILE_p)
fwrite = _import("fwrite", c_size_t, c_void_p, c_size_t, c_size_t, FILE_p)
fflush = _import("fflush", c_int, FILE_p)

# Error handling

class LibcError(OSError):
    def __init__(self, msg: str):
        errcode = get_errno()
        if not errcode:
            super().__init__(msg)
            return
        super().__init__(errcode, f"{msg}: {os.strerror(errcode)}")


class ResourceAcquisitionError(LibcError):
    pass


class AllocationError(MemoryError):
    def __init__(self, size: int):
        super().__init__(f"malloc failed to allocate {size} bytes")
        self.size = size
