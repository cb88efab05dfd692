# cloudsched/policies.py
from typing import Dict, Optional

from .config import (
    GREEDY_GPU_BONUS,
    EFFICIENCY_CPU_WEIGHT,
    EFFICIENCY_MEM_WEIGHT,
    EFFICIENCY_REUSE_BONUS,
    EFFICIENCY_GPU_BONUS,
)
from .models import Machine, MachineState, TaskRequirements, VM


def feasibility_checks(machine: Machine, req: TaskRequirements, vm: Optional[VM] = None,
                       match_cpu: bool = True, require_gpu: bool = True) -> Dict[str, bool]:
    """
    Evaluate every admission check for placing `req` on `machine` (through `vm`
    when one is already implicated). All checks are always computed.

    match_cpu / require_gpu turn the CPU and GPU checks into pass-throughs for
    policies that relax them; the defaults are strict.
    """
    cpu = vm.cpu if vm is not None else machine.cpu
    return {
        "power": machine.state == MachineState.READY,
        "cpu": (not match_cpu) or cpu == req.cpu,
        "vm_type": vm is None or vm.vm_type == req.vm_type,
        "gpu": (not require_gpu) or (not req.gpu) or machine.gpus,
        "memory": machine.memory_used + req.memory <= machine.memory_size,
    }


def can_host(machine: Machine, req: TaskRequirements, vm: Optional[VM] = None,
             match_cpu: bool = True, require_gpu: bool = True) -> bool:
    return all(feasibility_checks(machine, req, vm, match_cpu=match_cpu, require_gpu=require_gpu).values())


def cpu_utilization(machine: Machine) -> float:
    # active tasks per core, capped at 1.0
    if machine.num_cores <= 0:
        return 1.0
    return min(machine.active_tasks / machine.num_cores, 1.0)


def projected_memory_utilization(machine: Machine, req: TaskRequirements) -> float:
    if machine.memory_size <= 0:
        return 1.0
    return (machine.memory_used + req.memory) / machine.memory_size


def slack_score(machine: Machine, req: TaskRequirements, gpu_bonus: float = GREEDY_GPU_BONUS) -> float:
    """Headroom left after placing the task; higher means less loaded."""
    score = 1.0 - (cpu_utilization(machine) + projected_memory_utilization(machine, req))
    if req.gpu and machine.gpus:
        score += gpu_bonus
    return score


def efficiency_score(machine: Machine, req: TaskRequirements, has_compatible_vm: bool,
                     cpu_weight: float = EFFICIENCY_CPU_WEIGHT,
                     mem_weight: float = EFFICIENCY_MEM_WEIGHT,
                     reuse_bonus: float = EFFICIENCY_REUSE_BONUS,
                     gpu_bonus: float = EFFICIENCY_GPU_BONUS) -> float:
    """
    Consolidation-oriented score. Rewards machines that already carry a VM the
    task can join, so load gathers on warm hosts instead of spreading out.
    """
    score = 1.0 - (cpu_weight * cpu_utilization(machine)
                   + mem_weight * projected_memory_utilization(machine, req))
    if has_compatible_vm:
        score += reuse_bonus
    if req.gpu and machine.gpus:
        score += gpu_bonus
    return score
