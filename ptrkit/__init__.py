import logging
import sys

if sys.version_info < (3, 12):
    raise ImportError("ptrkit requires python 3.12+")


from . import libc, memory
from .cache import WeakCache
from .control_block import ControlBlock
from .deleter import DefaultDelete, Deleter, FunctionDelete, default_delete
from .exclusive import ExclusiveOwner, make_exclusive
from .libc import AllocationError, LibcError, ResourceAcquisitionError
from .scoped import ScopedFile
from .shared import SharedOwner, make_shared
from .weak import WeakObserver


__all__ = [
    "libc",
    "memory",

    "ControlBlock",
    "DefaultDelete",
    "Deleter",
    "ExclusiveOwner",
    "FunctionDelete",
    "ScopedFile",
    "SharedOwner",
    "WeakCache",
    "WeakObserver",
    "default_delete",
    "make_exclusive",
    "make_shared",

    "AllocationError",
    "LibcError",
    "ResourceAcquisitionError",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
