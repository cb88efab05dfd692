from cloudsched.inmemory import InMemoryHost
from cloudsched.models import CPUType, VMType
from cloudsched.policies import can_host, slack_score

from conftest import GB


def test_no_vms_provisioned_at_init(cluster, make_service):
    service = make_service(cluster, "greedy_slack")
    assert service.registry.machines == [0, 1, 2, 3]
    assert service.registry.vms == []
    assert cluster.vms == {}


def test_creates_vm_on_roomiest_machine(cluster, make_service):
    service = make_service(cluster, "greedy_slack")
    first = service.new_task(0, cluster.submit_task(memory=2 * GB))
    assert first.machine_id == 0
    assert first.created is True
    assert service.registry.vms == [first.vm_id]

    # machine 0 now carries load, machine 1 has the most slack
    second = service.new_task(1, cluster.submit_task(memory=2 * GB))
    assert second.machine_id == 1
    assert second.created is True


def test_reuses_compatible_vm(make_service):
    host = InMemoryHost.uniform(2, memory_size=8 * GB)
    service = make_service(host, "greedy_slack")
    task = host.submit_task(memory=GB)
    first = service.new_task(0, task)
    host.complete_task(task)
    service.task_complete(1, task)

    again = service.new_task(2, host.submit_task(memory=GB))
    assert again.machine_id == first.machine_id
    assert again.vm_id == first.vm_id
    assert again.created is False
    assert len(service.registry.vms) == 1


def test_new_vm_when_type_differs(make_service):
    host = InMemoryHost.uniform(1, memory_size=8 * GB)
    service = make_service(host, "greedy_slack")
    linux = service.new_task(0, host.submit_task(memory=GB))
    win = service.new_task(1, host.submit_task(memory=GB, required_vm="WIN"))
    assert win.vm_id != linux.vm_id
    assert host.vm_info(win.vm_id)["vm_type"] == VMType.WIN


def test_chosen_machine_has_highest_slack(make_service):
    host = InMemoryHost([
        {"memory_size": 8 * GB, "memory_used": 2 * GB, "active_tasks": 1},
        {"memory_size": 16 * GB, "memory_used": 4 * GB, "active_tasks": 6},
        {"memory_size": 8 * GB, "memory_used": 1 * GB, "active_tasks": 1},
        {"memory_size": 4 * GB, "memory_used": 0, "active_tasks": 0},
    ])
    service = make_service(host, "greedy_slack")
    task = host.submit_task(memory=GB)
    req = service.reader.requirements(task)
    scores = {m: slack_score(service.reader.machine(m), req)
              for m in service.registry.machines if can_host(service.reader.machine(m), req)}

    placement = service.new_task(0, task)
    assert scores[placement.machine_id] == max(scores.values())
    assert placement.score == scores[placement.machine_id]


def test_gpu_is_a_bonus_not_a_filter(make_service):
    host = InMemoryHost.uniform(2, memory_size=8 * GB)
    service = make_service(host, "greedy_slack")
    assert service.new_task(0, host.submit_task(memory=GB, gpu_capable=True)) is not None

    host = InMemoryHost.uniform(2, memory_size=8 * GB)
    host.machines[1]["gpus"] = True
    service = make_service(host, "greedy_slack")
    assert service.new_task(0, host.submit_task(memory=GB, gpu_capable=True)).machine_id == 1


def test_cpu_match_enforced_by_default(cluster, make_service):
    service = make_service(cluster, "greedy_slack")
    assert service.new_task(0, cluster.submit_task(required_cpu="ARM", memory=GB)) is None
    assert service.registry.vms == []


def test_cross_architecture_mode(cluster, make_service):
    service = make_service(cluster, "greedy_slack", match_cpu=False)
    placement = service.new_task(0, cluster.submit_task(required_cpu="ARM", memory=GB))
    assert placement is not None
    # the VM follows the machine's architecture
    assert cluster.vm_info(placement.vm_id)["cpu"] == CPUType.X86


def test_creation_failure_changes_nothing(cluster, make_service):
    service = make_service(cluster, "greedy_slack")
    cluster.fail_vm_creation = True
    commands_before = list(cluster.commands)

    assert service.new_task(0, cluster.submit_task(memory=GB)) is None
    assert service.registry.vms == []
    assert cluster.commands == commands_before

    # next task retries normally
    cluster.fail_vm_creation = False
    assert service.new_task(1, cluster.submit_task(memory=GB)).created is True


def test_attach_failure_shuts_down_fresh_vm(cluster, make_service):
    service = make_service(cluster, "greedy_slack")
    cluster.fail_attach = True
    assert service.new_task(0, cluster.submit_task(memory=GB)) is None
    assert service.registry.vms == []
    assert cluster.vms == {}
