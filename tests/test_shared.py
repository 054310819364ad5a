import copy
import pickle
import random
from ctypes import c_int

import pytest

from ptrkit import ExclusiveOwner, SharedOwner, make_exclusive, make_shared, memory
from ptrkit.libc import AllocationError


@pytest.mark.parametrize("n", range(1, 51))
def test_single_destruction_in_any_drop_order(n, recorder, leak_check):
    deleter = recorder()
    owners = [SharedOwner(memory.new(c_int, n), deleter)]
    owners += [owners[0].copy() for _ in range(n - 1)]
    assert owners[0].use_count() == n

    random.Random(n).shuffle(owners)
    while owners:
        assert deleter.calls == []
        owners.pop().reset()

    assert len(deleter.calls) == 1


def test_copy_shares_control_block(leak_check):
    s1 = make_shared(c_int, 7)
    s2 = s1.copy()
    assert s1.use_count() == 2
    assert s1.owner_equals(s2)
    assert s1.get() is s2.get()
    assert s2.value[0] == 7
    s1.reset()
    assert s2.use_count() == 1
    assert s2.unique()


def test_copy_module_shares_ownership(leak_check):
    s1 = make_shared(c_int, 1)
    s2 = copy.copy(s1)
    assert s1.owner_equals(s2)
    assert s1.use_count() == 2
    with pytest.raises(TypeError):
        copy.deepcopy(s1)
    with pytest.raises(TypeError):
        pickle.dumps(s1)


def test_empty_owner():
    owner = SharedOwner()
    assert not owner
    assert owner.get() is None
    assert owner.use_count() == 0
    assert owner.get_deleter() is None
    assert not owner.copy()
    with pytest.raises(RuntimeError):
        owner.value


def test_null_pointer_gives_empty_owner(leak_check):
    owner = SharedOwner(None)
    assert not owner
    assert owner.use_count() == 0


def test_separate_allocation_uses_two_allocations(recorder, leak_check):
    before = memory.live_allocations()
    deleter = recorder()
    owner = SharedOwner(memory.new(c_int, 3), deleter)
    assert memory.live_allocations() == before + 2
    assert not owner._block.is_combined
    assert owner.get_deleter().fn is deleter
    owner.reset()
    assert memory.live_allocations() == before


def test_combined_allocation_uses_one_allocation(node_cls, leak_check):
    before = memory.live_allocations()
    owner = make_shared(node_cls, 5)
    assert memory.live_allocations() == before + 1
    assert owner._block.is_combined
    assert owner.get_deleter() is None
    assert owner.value.contents.value == 5
    owner.reset()
    assert node_cls.destroyed == [5]
    assert memory.live_allocations() == before


def test_assign_drops_previous_reference(recorder, leak_check):
    first_deleter = recorder()
    a = SharedOwner(memory.new(c_int, 1), first_deleter)
    b = make_shared(c_int, 2)

    a.assign(b)

    assert len(first_deleter.calls) == 1
    assert a.owner_equals(b)
    assert b.use_count() == 2


def test_self_assign_keeps_count(leak_check):
    a = make_shared(c_int, 1)
    a.assign(a)
    assert a.use_count() == 1
    a.move_from(a)
    assert a.use_count() == 1
    assert a.value[0] == 1


def test_move_leaves_source_empty(leak_check):
    a = make_shared(c_int, 1)
    b = a.move()
    assert not a
    assert a.use_count() == 0
    assert b.use_count() == 1


def test_move_from_same_group_drops_one_reference(leak_check):
    a = make_shared(c_int, 1)
    b = a.copy()
    a.move_from(b)
    assert a.use_count() == 1
    assert not b


def test_swap(leak_check):
    a = make_shared(c_int, 1)
    b = SharedOwner()
    a.swap(b)
    assert not a
    assert b.value[0] == 1


def test_reset_to_new_pointer(recorder, leak_check):
    old_deleter, new_deleter = recorder(), recorder()
    owner = SharedOwner(memory.new(c_int, 1), old_deleter)
    new = memory.new(c_int, 2)
    owner.reset(new, new_deleter)
    assert len(old_deleter.calls) == 1
    assert owner.get() is new
    owner.reset(new)
    assert new_deleter.calls == []
    owner.reset()
    assert new_deleter.calls == [new]


def test_from_exclusive_takes_pointer_and_deleter(recorder, leak_check):
    deleter = recorder()
    ptr = memory.new(c_int, 4)
    exclusive = ExclusiveOwner(ptr, deleter)

    shared = SharedOwner.from_exclusive(exclusive)

    assert not exclusive
    assert shared.get() is ptr
    shared.reset()
    assert deleter.calls == [ptr]


def test_from_empty_exclusive():
    assert not SharedOwner.from_exclusive(ExclusiveOwner())


def test_from_exclusive_default_deleter(leak_check):
    shared = SharedOwner.from_exclusive(make_exclusive(c_int, 9))
    assert shared.value[0] == 9


def test_counter_allocation_failure_releases_object(recorder, monkeypatch, leak_check):
    deleter = recorder()
    ptr = memory.new(c_int, 1)

    def failing_allocate(size):
        raise AllocationError(size)

    monkeypatch.setattr(memory, "allocate", failing_allocate)
    with pytest.raises(AllocationError):
        SharedOwner(ptr, deleter)
    monkeypatch.undo()

    assert deleter.calls == [ptr]


def test_deleter_error_propagates_and_storage_is_reclaimed(leak_check):
    def deleter(ptr):
        memory.delete(ptr)
        raise ValueError("close failed")

    owner = SharedOwner(memory.new(c_int, 1), deleter)
    with pytest.raises(ValueError):
        owner.reset()
    assert not owner


def test_del_releases_object(recorder, leak_check):
    deleter = recorder()
    owner = SharedOwner(memory.new(c_int, 1), deleter)
    other = owner.copy()
    del owner
    assert deleter.calls == []
    del other
    assert len(deleter.calls) == 1


def test_context_manager_drops_reference(recorder, leak_check):
    deleter = recorder()
    with SharedOwner(memory.new(c_int, 1), deleter) as owner:
        keep = owner.copy()
    assert not owner
    assert deleter.calls == []
    keep.reset()
    assert len(deleter.calls) == 1


def test_custom_deleter_over_python_objects():
    released = []
    owner = SharedOwner(["connection"], released.append)
    copies = [owner.copy() for _ in range(3)]
    owner.reset()
    for c in copies:
        c.reset()
    assert released == [["connection"]]
