# cloudsched/models.py
from enum import Enum
from typing import Optional, List, Dict

from pydantic import BaseModel


class CPUType(str, Enum):
    ARM = "ARM"
    POWER = "POWER"
    RISCV = "RISCV"
    X86 = "X86"


class VMType(str, Enum):
    LINUX = "LINUX"
    LINUX_RT = "LINUX_RT"
    WIN = "WIN"
    AIX = "AIX"


class SLAType(str, Enum):
    SLA0 = "SLA0"
    SLA1 = "SLA1"
    SLA2 = "SLA2"
    SLA3 = "SLA3"  # no violation accounting


class Priority(str, Enum):
    HIGH = "HIGH"
    MID = "MID"
    LOW = "LOW"


class MachineState(str, Enum):
    READY = "READY"
    TRANSITIONING = "TRANSITIONING"
    OFF = "OFF"


STRICT_SLAS = (SLAType.SLA0, SLAType.SLA1)
REPORTED_SLAS = (SLAType.SLA0, SLAType.SLA1, SLAType.SLA2)


def priority_for_sla(sla: SLAType) -> Priority:
    if sla == SLAType.SLA0:
        return Priority.HIGH
    if sla == SLAType.SLA1:
        return Priority.MID
    return Priority.LOW


def default_vm_type(cpu: CPUType) -> VMType:
    # POWER machines run AIX images, everything else Linux
    if cpu == CPUType.POWER:
        return VMType.AIX
    return VMType.LINUX


class Machine(BaseModel):
    machine_id: int
    cpu: CPUType
    state: MachineState = MachineState.OFF
    memory_size: int
    memory_used: int = 0
    num_cores: int = 1
    gpus: bool = False
    active_tasks: int = 0


class VM(BaseModel):
    vm_id: int
    vm_type: VMType
    cpu: CPUType
    machine_id: Optional[int] = None  # None while unattached
    active_tasks: List[int] = []


class Task(BaseModel):
    task_id: int
    required_cpu: CPUType
    required_vm: VMType
    gpu_capable: bool = False
    memory: int = 0
    sla: SLAType = SLAType.SLA3


class TaskRequirements(BaseModel):
    task_id: int
    cpu: CPUType
    vm_type: VMType
    gpu: bool
    memory: int
    sla: SLAType
    priority: Priority

    @classmethod
    def from_task(cls, task: Task) -> "TaskRequirements":
        return cls(
            task_id=task.task_id,
            cpu=task.required_cpu,
            vm_type=task.required_vm,
            gpu=task.gpu_capable,
            memory=task.memory,
            sla=task.sla,
            priority=priority_for_sla(task.sla),
        )


class Placement(BaseModel):
    vm_id: int
    machine_id: int
    created: bool = False  # True when the VM was provisioned for this task
    score: Optional[float] = None


class NewTaskEvent(BaseModel):
    time: int
    task_id: int


class TimeEvent(BaseModel):
    time: int


class MigrationRequest(BaseModel):
    time: int
    machine_id: int


class SimulationReport(BaseModel):
    time: int
    sla_violations: Dict[str, float]  # percent per SLA class
    energy_kwh: float

    @property
    def seconds(self) -> float:
        return self.time / 1_000_000
