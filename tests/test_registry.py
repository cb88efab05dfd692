from cloudsched.registry import Registry


def test_membership_is_ordered_and_unique():
    r = Registry(active_machines=2)
    r.add_machine(0)
    r.add_machine(1)
    r.add_machine(0)
    r.add_vm(5)
    r.add_vm(3)
    r.add_vm(5)
    assert r.machines == [0, 1]
    assert r.vms == [5, 3]
    assert 3 in r
    assert len(r) == 2


def test_migration_latch_is_per_vm():
    r = Registry()
    r.add_vm(1)
    r.add_vm(2)
    r.mark_migrating(1)
    assert r.is_migrating(1)
    assert not r.is_migrating(2)
    r.clear_migrating(1)
    assert not r.is_migrating(1)
    # clearing an unlatched VM is harmless
    r.clear_migrating(2)


def test_drain_empties_once():
    r = Registry()
    r.add_vm(1)
    r.add_vm(2)
    r.mark_migrating(2)
    assert r.drain_vms() == [1, 2]
    assert r.drain_vms() == []
    assert not r.is_migrating(2)
