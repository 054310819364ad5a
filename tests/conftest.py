import gc
from ctypes import Structure, c_int

import pytest

from ptrkit import memory


class Node(Structure):
    _fields_ = [("value", c_int)]

    destroyed: list[int] = []

    def __destroy__(self):
        Node.destroyed.append(self.value)


class RecordingDeleter:
    """Records every pointer it is called with, then frees it"""

    def __init__(self, free: bool = True):
        self.calls = []
        self.free = free

    def __call__(self, ptr):
        self.calls.append(ptr)
        if self.free:
            memory.delete(ptr)


@pytest.fixture
def node_cls():
    Node.destroyed.clear()
    yield Node
    Node.destroyed.clear()


@pytest.fixture
def recorder():
    return RecordingDeleter


@pytest.fixture
def leak_check():
    gc.collect()
    before = memory.live_allocations()
    yield
    gc.collect()
    assert memory.live_allocations() == before
