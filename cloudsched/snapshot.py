# cloudsched/snapshot.py
from .host import Host
from .models import Machine, VM, Task, TaskRequirements


class SnapshotReader:
    """
    Point-in-time reads of host state. Nothing is cached: every call goes to
    the host, so load figures are never stale.
    """

    def __init__(self, host: Host):
        self.host = host

    def machine_count(self) -> int:
        return int(self.host.machine_count())

    def machine(self, machine_id: int) -> Machine:
        return Machine(**self.host.machine_info(machine_id))

    def vm(self, vm_id: int) -> VM:
        return VM(**self.host.vm_info(vm_id))

    def task(self, task_id: int) -> Task:
        return Task(**self.host.task_info(task_id))

    def requirements(self, task_id: int) -> TaskRequirements:
        return TaskRequirements.from_task(self.task(task_id))
