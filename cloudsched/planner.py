# cloudsched/planner.py
import logging
from typing import Dict, List, Optional, Tuple

from .config import HIGH_PRIORITY_FRACTION, GREEDY_MATCH_CPU
from .host import Host, HostError
from .models import (
    CPUType, Machine, Placement, STRICT_SLAS, TaskRequirements, VM, VMType, default_vm_type,
)
from .policies import can_host, slack_score, efficiency_score
from .registry import Registry
from .snapshot import SnapshotReader

logger = logging.getLogger("cloudsched.planner")


class PlacementPolicy:
    """
    Base class for placement strategies.

    A policy is bound to a host and a registry by the scheduler service, gets a
    chance to provision VMs once at init, and then answers place() for every
    arriving task. place() returns None when no host is feasible; in that case
    neither the registry nor the host may have been changed.
    """

    name = "base"
    preprovision = False

    def __init__(self):
        self.host: Optional[Host] = None
        self.reader: Optional[SnapshotReader] = None
        self.registry: Optional[Registry] = None

    def bind(self, host: Host, reader: SnapshotReader, registry: Registry):
        self.host = host
        self.reader = reader
        self.registry = registry

    def provision(self):
        """Create and attach one VM per registered machine, when the policy wants that."""
        if not self.preprovision:
            return
        for machine_id in self.registry.machines:
            machine = self.reader.machine(machine_id)
            vm_id = self._create_attached_vm(default_vm_type(machine.cpu), machine.cpu, machine_id)
            if vm_id is not None:
                self.registry.add_vm(vm_id)
        logger.info("%s: provisioned %d VMs on %d machines", self.name, len(self.registry), len(self.registry.machines))

    def place(self, req: TaskRequirements) -> Optional[Placement]:
        raise NotImplementedError

    def periodic(self, now: int):
        # consolidation / power sweeps would go here; none of the shipped policies use it
        return None

    # --- helpers shared by the strategies ---

    def _create_attached_vm(self, vm_type: VMType, cpu: CPUType, machine_id: int) -> Optional[int]:
        """
        Create a VM and attach it to machine_id. Both steps succeed or the host
        is left as it was: a VM that fails to attach is shut down again.
        """
        try:
            vm_id = self.host.create_vm(vm_type, cpu)
        except HostError:
            logger.exception("VM creation failed (type=%s cpu=%s)", vm_type.value, cpu.value)
            return None
        try:
            self.host.attach_vm(vm_id, machine_id)
        except HostError:
            logger.exception("Attaching VM %s to machine %s failed", vm_id, machine_id)
            try:
                self.host.shutdown_vm(vm_id)
            except HostError:
                logger.exception("Could not shut down orphan VM %s", vm_id)
            return None
        return vm_id

    def _attached_vms(self) -> List[Tuple[VM, Machine]]:
        """Fresh (vm, machine) pairs for every registered VM that can take work, in registry order."""
        pairs = []
        for vm_id in self.registry.vms:
            if self.registry.is_migrating(vm_id):
                continue
            vm = self.reader.vm(vm_id)
            if vm.machine_id is None:
                continue
            pairs.append((vm, self.reader.machine(vm.machine_id)))
        return pairs

    def _first_fit(self, pairs: List[Tuple[VM, Machine]], req: TaskRequirements) -> Optional[Placement]:
        for vm, machine in pairs:
            if can_host(machine, req, vm):
                return Placement(vm_id=vm.vm_id, machine_id=machine.machine_id)
        return None


class LoadBalancePolicy(PlacementPolicy):
    """Least active tasks among feasible pre-provisioned VMs; first seen wins ties."""

    name = "load_balance"
    preprovision = True

    def place(self, req: TaskRequirements) -> Optional[Placement]:
        best = None
        best_load = None
        for vm, machine in self._attached_vms():
            if not can_host(machine, req, vm):
                continue
            if best_load is None or machine.active_tasks < best_load:
                best_load = machine.active_tasks
                best = Placement(vm_id=vm.vm_id, machine_id=machine.machine_id, score=float(best_load))
        return best


class SLAPartitionPolicy(PlacementPolicy):
    """
    Machines are split into two contiguous pools by index. SLA0/SLA1 tasks try the
    first (high priority) pool, SLA2/SLA3 tasks the second (best effort), both
    first-fit. A miss falls back to first-fit over every VM.
    """

    name = "sla_partition"
    preprovision = True

    def __init__(self, high_priority_fraction: float = HIGH_PRIORITY_FRACTION):
        super().__init__()
        if not 0.0 <= high_priority_fraction <= 1.0:
            raise ValueError(f"high_priority_fraction must be within [0, 1], got {high_priority_fraction}")
        self.high_priority_fraction = high_priority_fraction

    def split_index(self) -> int:
        return int(self.registry.active_machines * self.high_priority_fraction)

    def pools(self) -> Tuple[List[int], List[int]]:
        """Machine ids of the high priority and best effort pools."""
        split = self.split_index()
        return self.registry.machines[:split], self.registry.machines[split:]

    def place(self, req: TaskRequirements) -> Optional[Placement]:
        high, best_effort = self.pools()
        preferred = set(high if req.sla in STRICT_SLAS else best_effort)

        pairs = self._attached_vms()
        placement = self._first_fit([p for p in pairs if p[1].machine_id in preferred], req)
        if placement is not None:
            return placement

        logger.debug("Task %s (%s): preferred pool full, scanning all VMs", req.task_id, req.sla.value)
        return self._first_fit(pairs, req)


class _MachineScoringPolicy(PlacementPolicy):
    """Scores registered machines, then reuses or creates a VM on the winner."""

    def _score(self, machine: Machine, req: TaskRequirements, has_compatible_vm: bool) -> float:
        raise NotImplementedError

    def _admissible(self, machine: Machine, req: TaskRequirements) -> bool:
        raise NotImplementedError

    def _vms_by_machine(self) -> Dict[int, List[VM]]:
        by_machine: Dict[int, List[VM]] = {}
        for vm, machine in self._attached_vms():
            by_machine.setdefault(machine.machine_id, []).append(vm)
        return by_machine

    @staticmethod
    def _compatible(vms: List[VM], machine: Machine, req: TaskRequirements) -> Optional[VM]:
        for vm in vms:
            if vm.vm_type == req.vm_type and vm.cpu == machine.cpu:
                return vm
        return None

    def place(self, req: TaskRequirements) -> Optional[Placement]:
        by_machine = self._vms_by_machine()

        best: Optional[Machine] = None
        best_vm: Optional[VM] = None
        best_score = None
        for machine_id in self.registry.machines:
            machine = self.reader.machine(machine_id)
            if not self._admissible(machine, req):
                continue
            existing = self._compatible(by_machine.get(machine_id, []), machine, req)
            score = self._score(machine, req, existing is not None)
            if best_score is None or score > best_score:
                best, best_vm, best_score = machine, existing, score

        if best is None:
            return None

        if best_vm is not None:
            return Placement(vm_id=best_vm.vm_id, machine_id=best.machine_id, score=best_score)

        # a VM always runs the CPU type of the machine it sits on
        vm_id = self._create_attached_vm(req.vm_type, best.cpu, best.machine_id)
        if vm_id is None:
            return None
        self.registry.add_vm(vm_id)
        logger.info("%s: created VM %s (%s/%s) on machine %s", self.name, vm_id,
                    req.vm_type.value, best.cpu.value, best.machine_id)
        return Placement(vm_id=vm_id, machine_id=best.machine_id, created=True, score=best_score)


class GreedySlackPolicy(_MachineScoringPolicy):
    """
    Picks the feasible machine with the most slack left after the task lands.

    With match_cpu=False the CPU type check is skipped entirely and a task may
    run on a machine of another architecture. GPU need only adds a bonus here,
    it does not filter.
    """

    name = "greedy_slack"

    def __init__(self, match_cpu: bool = GREEDY_MATCH_CPU):
        super().__init__()
        self.match_cpu = match_cpu

    def _admissible(self, machine, req):
        return can_host(machine, req, match_cpu=self.match_cpu, require_gpu=False)

    def _score(self, machine, req, has_compatible_vm):
        return slack_score(machine, req)


class EfficiencyPolicy(_MachineScoringPolicy):
    """
    pMapper-style consolidation: strict CPU and GPU filters, and a score that
    prefers machines already running a VM the task can join.
    """

    name = "efficiency"

    def _admissible(self, machine, req):
        return can_host(machine, req)

    def _score(self, machine, req, has_compatible_vm):
        return efficiency_score(machine, req, has_compatible_vm)


POLICIES = {
    LoadBalancePolicy.name: LoadBalancePolicy,
    SLAPartitionPolicy.name: SLAPartitionPolicy,
    GreedySlackPolicy.name: GreedySlackPolicy,
    EfficiencyPolicy.name: EfficiencyPolicy,
}


def get_policy(name: str, **options) -> PlacementPolicy:
    try:
        cls = POLICIES[name]
    except KeyError:
        raise ValueError(f"unknown placement policy {name!r}; choose from {sorted(POLICIES)}") from None
    return cls(**options)
