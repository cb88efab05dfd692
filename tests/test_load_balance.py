from cloudsched.inmemory import InMemoryHost
from cloudsched.models import MachineState, VMType

from conftest import GB


def test_one_vm_per_machine_at_init(cluster, make_service):
    service = make_service(cluster)
    assert service.registry.machines == [0, 1, 2, 3]
    assert len(service.registry.vms) == 4
    for vm_id, machine_id in zip(service.registry.vms, service.registry.machines):
        info = cluster.vm_info(vm_id)
        assert info["machine_id"] == machine_id
        assert info["vm_type"] == VMType.LINUX
    assert all(m["state"] == MachineState.READY for m in cluster.machines)


def test_power_machine_gets_aix_image(make_service):
    host = InMemoryHost([{"cpu": "POWER", "memory_size": 4096}, {"cpu": "ARM", "memory_size": 4096}])
    service = make_service(host)
    types = [host.vm_info(v)["vm_type"] for v in service.registry.vms]
    assert types == [VMType.AIX, VMType.LINUX]


def test_first_task_lands_on_machine_zero(cluster, make_service):
    service = make_service(cluster)
    task = cluster.submit_task(memory=2 * GB)
    placement = service.new_task(0, task)
    assert placement.machine_id == 0
    assert placement.created is False
    assert cluster.task_vm[task] == service.registry.vms[0]


def test_five_tasks_spread_least_loaded(cluster, make_service):
    service = make_service(cluster)
    machines = [service.new_task(t, cluster.submit_task(memory=2 * GB)).machine_id for t in range(5)]
    assert machines == [0, 1, 2, 3, 0]


def test_picks_least_loaded_feasible(make_service):
    host = InMemoryHost([
        {"memory_size": 8 * GB, "active_tasks": 3},
        {"memory_size": 8 * GB, "active_tasks": 1, "memory_used": 7 * GB},  # too full
        {"memory_size": 8 * GB, "active_tasks": 2},
        {"memory_size": 8 * GB, "active_tasks": 2},
    ])
    service = make_service(host)
    task = host.submit_task(memory=2 * GB)

    feasible_loads = [m["active_tasks"] for m in host.machines
                      if m["memory_used"] + 2 * GB <= m["memory_size"]]
    placement = service.new_task(0, task)
    assert placement.machine_id == 2
    assert host.machines[2]["active_tasks"] - 1 <= min(feasible_loads)


def test_gpu_task_needs_gpu_machine(make_service):
    host = InMemoryHost.uniform(3, memory_size=8 * GB)
    host.machines[2]["gpus"] = True
    service = make_service(host)
    placement = service.new_task(0, host.submit_task(memory=GB, gpu_capable=True))
    assert placement.machine_id == 2


def test_vm_type_mismatch_is_unallocated(cluster, make_service):
    service = make_service(cluster)
    assert service.new_task(0, cluster.submit_task(required_vm="WIN", memory=GB)) is None


def test_unknown_cpu_leaves_registry_and_host_alone(cluster, make_service):
    service = make_service(cluster)
    vms_before = list(service.registry.vms)
    commands_before = list(cluster.commands)

    assert service.new_task(0, cluster.submit_task(required_cpu="ARM", memory=GB)) is None
    assert service.registry.vms == vms_before
    assert cluster.commands == commands_before


def test_memory_never_overcommitted(make_service):
    host = InMemoryHost.uniform(2, memory_size=4 * GB)
    service = make_service(host)
    placed = [service.new_task(t, host.submit_task(memory=3 * GB)) for t in range(3)]
    assert [p.machine_id for p in placed[:2]] == [0, 1]
    assert placed[2] is None
    assert all(m["memory_used"] <= m["memory_size"] for m in host.machines)


def test_no_vms_created_after_init(cluster, make_service):
    service = make_service(cluster)
    created = sum(1 for c in cluster.commands if c[0] == "create_vm")
    for t in range(10):
        service.new_task(t, cluster.submit_task(memory=512))
    assert sum(1 for c in cluster.commands if c[0] == "create_vm") == created
