# cloudsched/registry.py
from typing import List, Set


class Registry:
    """
    The scheduler's only persistent state: which machines and VMs it manages.

    Load figures are never stored here; they are re-read from the host on each
    decision. VMs are appended only after the host has both created and
    attached them.
    """

    def __init__(self, active_machines: int = 0):
        self.active_machines = active_machines
        self.machines: List[int] = []
        self.vms: List[int] = []
        self.migrating: Set[int] = set()  # vm ids with a migration in flight

    def add_machine(self, machine_id: int):
        if machine_id not in self.machines:
            self.machines.append(machine_id)

    def add_vm(self, vm_id: int):
        if vm_id not in self.vms:
            self.vms.append(vm_id)

    def is_migrating(self, vm_id: int) -> bool:
        return vm_id in self.migrating

    def mark_migrating(self, vm_id: int):
        self.migrating.add(vm_id)

    def clear_migrating(self, vm_id: int):
        self.migrating.discard(vm_id)

    def drain_vms(self) -> List[int]:
        """Hand back every registered VM and forget them, for teardown."""
        vms, self.vms = self.vms, []
        self.migrating.clear()
        return vms

    def __contains__(self, vm_id: int) -> bool:
        return vm_id in self.vms

    def __len__(self) -> int:
        return len(self.vms)
