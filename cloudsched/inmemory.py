# cloudsched/inmemory.py
"""
In-process host: a small cluster model the scheduler can be driven against
without a simulator. It keeps just enough state for placement decisions
(power, memory, active tasks, VM attachment) and does no time accounting.
"""
import itertools
from typing import Any, Dict, Iterable, List, Optional

from .host import Host, HostError, UnknownResourceError
from .models import CPUType, MachineState, Priority, SLAType, VMType


class InMemoryHost(Host):

    def __init__(self, machines: Iterable[Dict[str, Any]], instant_power: bool = True):
        self.instant_power = instant_power
        self.machines: List[Dict[str, Any]] = []
        for i, spec in enumerate(machines):
            self.machines.append({
                "machine_id": i,
                "cpu": CPUType(spec.get("cpu", CPUType.X86)),
                "state": MachineState(spec.get("state", MachineState.OFF)),
                "memory_size": int(spec["memory_size"]),
                "memory_used": int(spec.get("memory_used", 0)),
                "num_cores": int(spec.get("num_cores", 8)),
                "gpus": bool(spec.get("gpus", False)),
                "active_tasks": int(spec.get("active_tasks", 0)),
            })
        self.vms: Dict[int, Dict[str, Any]] = {}
        self.tasks: Dict[int, Dict[str, Any]] = {}
        self.task_priority: Dict[int, Priority] = {}
        self.task_vm: Dict[int, int] = {}
        self.pending_states: Dict[int, MachineState] = {}
        self.sla_violations: Dict[SLAType, float] = {sla: 0.0 for sla in SLAType}
        self.energy = 0.0
        # failure injection
        self.fail_vm_creation = False
        self.fail_attach = False
        self._vm_ids = itertools.count()
        self._task_ids = itertools.count()
        self.commands: List[tuple] = []

    @classmethod
    def uniform(cls, count: int, **spec) -> "InMemoryHost":
        return cls([dict(spec) for _ in range(count)])

    # --- lookups ---

    def _machine(self, machine_id: int) -> Dict[str, Any]:
        if not 0 <= machine_id < len(self.machines):
            raise UnknownResourceError(f"machine {machine_id}")
        return self.machines[machine_id]

    def _vm(self, vm_id: int) -> Dict[str, Any]:
        try:
            return self.vms[vm_id]
        except KeyError:
            raise UnknownResourceError(f"vm {vm_id}") from None

    def _task(self, task_id: int) -> Dict[str, Any]:
        try:
            return self.tasks[task_id]
        except KeyError:
            raise UnknownResourceError(f"task {task_id}") from None

    # --- task workload helpers (driven by tests / local runs) ---

    def submit_task(self, required_cpu: CPUType = CPUType.X86, required_vm: VMType = VMType.LINUX,
                    memory: int = 0, gpu_capable: bool = False, sla: SLAType = SLAType.SLA3) -> int:
        task_id = next(self._task_ids)
        self.tasks[task_id] = {
            "task_id": task_id,
            "required_cpu": CPUType(required_cpu),
            "required_vm": VMType(required_vm),
            "gpu_capable": gpu_capable,
            "memory": memory,
            "sla": SLAType(sla),
        }
        return task_id

    def complete_task(self, task_id: int):
        vm_id = self.task_vm.pop(task_id, None)
        if vm_id is None:
            raise UnknownResourceError(f"task {task_id} is not running")
        vm = self._vm(vm_id)
        vm["active_tasks"].remove(task_id)
        machine = self._machine(vm["machine_id"])
        machine["active_tasks"] -= 1
        machine["memory_used"] -= self.tasks[task_id]["memory"]

    def finish_state_changes(self) -> List[int]:
        """Apply every pending power transition; returns the machines that changed."""
        done = []
        for machine_id, state in sorted(self.pending_states.items()):
            self.machines[machine_id]["state"] = state
            done.append(machine_id)
        self.pending_states.clear()
        return done

    # --- queries ---

    def machine_count(self) -> int:
        return len(self.machines)

    def machine_info(self, machine_id: int) -> Dict[str, Any]:
        return dict(self._machine(machine_id))

    def vm_info(self, vm_id: int) -> Dict[str, Any]:
        vm = self._vm(vm_id)
        return dict(vm, active_tasks=list(vm["active_tasks"]))

    def task_info(self, task_id: int) -> Dict[str, Any]:
        return dict(self._task(task_id))

    def sla_report(self, sla: SLAType) -> float:
        return self.sla_violations[SLAType(sla)]

    def cluster_energy(self) -> float:
        return self.energy

    def task_priority_of(self, task_id: int) -> Optional[Priority]:
        return self.task_priority.get(task_id)

    # --- commands ---

    def set_machine_state(self, machine_id: int, state: MachineState):
        machine = self._machine(machine_id)
        self.commands.append(("set_machine_state", machine_id, state))
        if self.instant_power:
            machine["state"] = state
        else:
            machine["state"] = MachineState.TRANSITIONING
            self.pending_states[machine_id] = state

    def create_vm(self, vm_type: VMType, cpu: CPUType) -> int:
        if self.fail_vm_creation:
            raise HostError("VM creation refused")
        vm_id = next(self._vm_ids)
        self.vms[vm_id] = {
            "vm_id": vm_id,
            "vm_type": VMType(vm_type),
            "cpu": CPUType(cpu),
            "machine_id": None,
            "active_tasks": [],
        }
        self.commands.append(("create_vm", vm_id))
        return vm_id

    def attach_vm(self, vm_id: int, machine_id: int):
        vm = self._vm(vm_id)
        machine = self._machine(machine_id)
        if self.fail_attach:
            raise HostError(f"cannot attach VM {vm_id}")
        if vm["cpu"] != machine["cpu"]:
            raise HostError(f"VM {vm_id} cpu {vm['cpu'].value} does not match machine {machine_id}")
        vm["machine_id"] = machine_id
        self.commands.append(("attach_vm", vm_id, machine_id))

    def add_task(self, vm_id: int, task_id: int, priority: Priority):
        vm = self._vm(vm_id)
        task = self._task(task_id)
        if vm["machine_id"] is None:
            raise HostError(f"VM {vm_id} is not attached")
        machine = self._machine(vm["machine_id"])
        vm["active_tasks"].append(task_id)
        machine["active_tasks"] += 1
        machine["memory_used"] += task["memory"]
        self.task_vm[task_id] = vm_id
        self.task_priority[task_id] = Priority(priority)
        self.commands.append(("add_task", vm_id, task_id))

    def set_task_priority(self, task_id: int, priority: Priority):
        self._task(task_id)
        self.task_priority[task_id] = Priority(priority)

    def shutdown_vm(self, vm_id: int):
        vm = self._vm(vm_id)
        for task_id in list(vm["active_tasks"]):
            self.complete_task(task_id)
        del self.vms[vm_id]
        self.commands.append(("shutdown_vm", vm_id))

    def migrate_vm(self, vm_id: int, machine_id: int):
        vm = self._vm(vm_id)
        target = self._machine(machine_id)
        if vm["machine_id"] is None:
            raise HostError(f"VM {vm_id} is not attached")
        source = self._machine(vm["machine_id"])
        moved = sum(self.tasks[t]["memory"] for t in vm["active_tasks"])
        source["memory_used"] -= moved
        source["active_tasks"] -= len(vm["active_tasks"])
        target["memory_used"] += moved
        target["active_tasks"] += len(vm["active_tasks"])
        vm["machine_id"] = machine_id
        self.commands.append(("migrate_vm", vm_id, machine_id))
