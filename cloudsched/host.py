# cloudsched/host.py
"""
Contract between the scheduler core and the simulation host.

The host owns time, machine and VM state and task execution. Queries return
plain dicts (the same shape a remote host sends as JSON); the snapshot reader
turns them into models. Commands mutate host state and return nothing, except
create_vm which returns the new VM id.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict

from .models import CPUType, MachineState, Priority, SLAType, VMType


class HostError(RuntimeError):
    """The host refused or failed a command (e.g. VM creation)."""


class UnknownResourceError(LookupError):
    """A machine, VM or task id the host does not know. Programming error."""


class Host(ABC):

    # --- queries ---

    @abstractmethod
    def machine_count(self) -> int: ...

    @abstractmethod
    def machine_info(self, machine_id: int) -> Dict[str, Any]: ...

    @abstractmethod
    def vm_info(self, vm_id: int) -> Dict[str, Any]: ...

    @abstractmethod
    def task_info(self, task_id: int) -> Dict[str, Any]: ...

    @abstractmethod
    def sla_report(self, sla: SLAType) -> float: ...

    @abstractmethod
    def cluster_energy(self) -> float: ...

    # --- commands ---

    @abstractmethod
    def set_machine_state(self, machine_id: int, state: MachineState) -> None: ...

    @abstractmethod
    def create_vm(self, vm_type: VMType, cpu: CPUType) -> int: ...

    @abstractmethod
    def attach_vm(self, vm_id: int, machine_id: int) -> None: ...

    @abstractmethod
    def add_task(self, vm_id: int, task_id: int, priority: Priority) -> None: ...

    @abstractmethod
    def set_task_priority(self, task_id: int, priority: Priority) -> None: ...

    @abstractmethod
    def shutdown_vm(self, vm_id: int) -> None: ...

    @abstractmethod
    def migrate_vm(self, vm_id: int, machine_id: int) -> None: ...
