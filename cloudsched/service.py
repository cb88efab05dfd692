# cloudsched/service.py
import logging
from typing import Optional

from .config import ACTIVE_MACHINES
from .host import Host, HostError
from .models import MachineState, Placement, Priority, REPORTED_SLAS, SimulationReport
from .planner import PlacementPolicy
from .registry import Registry
from .snapshot import SnapshotReader

logger = logging.getLogger("cloudsched.service")


class SchedulerService:
    """
    Event-handling surface of the scheduler.

    One instance lives for the whole simulation and is driven by the host, one
    event at a time. It owns the registry and the placement policy; all load
    figures come fresh from the host through the snapshot reader.
    """

    def __init__(self, host: Host, policy: PlacementPolicy, active_machines: int = ACTIVE_MACHINES):
        self.host = host
        self.reader = SnapshotReader(host)
        self.policy = policy
        self.requested_active = active_machines
        self.registry = Registry()
        self.policy.bind(host, self.reader, self.registry)
        self.initialized = False

    def init(self):
        if self.initialized:
            # a second init would provision a new VM set and orphan the first
            logger.warning("Scheduler already initialized, ignoring init")
            return

        total = self.reader.machine_count()
        active = total if self.requested_active <= 0 else min(self.requested_active, total)
        logger.info("Total number of machines is %d, scheduling on %d (policy=%s)", total, active, self.policy.name)

        self.registry = Registry(active_machines=active)
        self.policy.bind(self.host, self.reader, self.registry)

        for machine_id in range(total):
            machine = self.reader.machine(machine_id)
            if machine_id < active:
                if machine.state != MachineState.READY:
                    self.host.set_machine_state(machine_id, MachineState.READY)
                self.registry.add_machine(machine_id)
            elif machine.state != MachineState.OFF:
                # outside the active set: park it
                logger.info("Powering off machine %d (outside active set)", machine_id)
                self.host.set_machine_state(machine_id, MachineState.OFF)

        self.policy.provision()
        self.initialized = True
        if self.registry.vms:
            logger.debug("VM ids are %s", self.registry.vms)

    def new_task(self, now: int, task_id: int) -> Optional[Placement]:
        req = self.reader.requirements(task_id)
        placement = self.policy.place(req)
        if placement is None:
            logger.warning("No compatible host found for task %s at %s - leaving unallocated", task_id, now)
            return None
        try:
            self.host.add_task(placement.vm_id, task_id, req.priority)
        except HostError:
            logger.exception("Host rejected task %s on VM %s", task_id, placement.vm_id)
            return None
        logger.debug("Task %s assigned to VM %s on machine %s (priority=%s)",
                     task_id, placement.vm_id, placement.machine_id, req.priority.value)
        return placement

    def task_complete(self, now: int, task_id: int):
        # active task counts are re-read from the host on the next decision
        logger.debug("Task %s is complete at %s", task_id, now)

    def periodic_check(self, now: int):
        logger.debug("Periodic check at %s", now)
        self.policy.periodic(now)

    def request_migration(self, vm_id: int, machine_id: int):
        if vm_id not in self.registry:
            raise ValueError(f"VM {vm_id} is not managed by this scheduler")
        self.host.migrate_vm(vm_id, machine_id)
        self.registry.mark_migrating(vm_id)
        logger.info("Migration of VM %s to machine %s requested", vm_id, machine_id)

    def migration_complete(self, now: int, vm_id: int):
        self.registry.clear_migrating(vm_id)
        logger.debug("Migration of VM %s was completed at %s", vm_id, now)

    def state_change_complete(self, now: int, machine_id: int):
        logger.debug("State change of machine %s completed at %s", machine_id, now)

    def memory_warning(self, now: int, machine_id: int):
        logger.warning("Memory overflow at machine %s was detected at time %s", machine_id, now)

    def sla_warning(self, now: int, task_id: int):
        # a late task gets bumped to the front
        self.host.set_task_priority(task_id, Priority.HIGH)
        logger.debug("Task %s is late at %s, priority raised", task_id, now)

    def shutdown(self, now: int):
        vms = self.registry.drain_vms()
        for vm_id in vms:
            try:
                self.host.shutdown_vm(vm_id)
            except HostError:
                logger.exception("Failed to shut down VM %s", vm_id)
        logger.info("Shutdown complete at %s (%d VMs stopped)", now, len(vms))

    def simulation_complete(self, now: int) -> SimulationReport:
        # teardown runs even when the host cannot produce the report
        try:
            report = SimulationReport(
                time=now,
                sla_violations={sla.value: float(self.host.sla_report(sla)) for sla in REPORTED_SLAS},
                energy_kwh=float(self.host.cluster_energy()),
            )
        finally:
            self.shutdown(now)
        logger.info("SLA violation report: %s", ", ".join(f"{k}: {v}%" for k, v in report.sla_violations.items()))
        logger.info("Total Energy %s KW-Hour", report.energy_kwh)
        logger.info("Simulation run finished in %s seconds", report.seconds)
        return report
