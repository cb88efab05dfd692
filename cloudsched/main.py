# cloudsched/main.py
import logging
import threading

import uvicorn
from fastapi import FastAPI, HTTPException

from .api_client import HostClient
from .config import LOG_LEVEL, SCHEDULER_POLICY, SCHEDULER_PORT
from .host import HostError, UnknownResourceError
from .models import MigrationRequest, NewTaskEvent, TimeEvent
from .planner import get_policy
from .service import SchedulerService

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("cloudsched")

app = FastAPI(title="Cloud Task Scheduler")

client = HostClient()
service = SchedulerService(client, get_policy(SCHEDULER_POLICY))

# the core is single-threaded; requests are served from a thread pool
lock = threading.Lock()


def _run(fn, *args):
    with lock:
        try:
            return fn(*args)
        except UnknownResourceError as e:
            raise HTTPException(status_code=404, detail=f"unknown resource {e}")
        except HostError as e:
            logger.exception("Host call failed")
            raise HTTPException(status_code=502, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))


@app.post("/scheduler/init")
def init():
    _run(service.init)
    return {"status": "ok", "policy": service.policy.name, "vms": list(service.registry.vms)}


@app.post("/scheduler/tasks")
def new_task(event: NewTaskEvent):
    placement = _run(service.new_task, event.time, event.task_id)
    if placement is None:
        return {"status": "unallocated", "task_id": event.task_id}
    return {"status": "assigned", "task_id": event.task_id, "placement": placement.model_dump()}


@app.post("/scheduler/tasks/{task_id}/complete")
def task_complete(task_id: int, event: TimeEvent):
    _run(service.task_complete, event.time, task_id)
    return {"status": "ok"}


@app.post("/scheduler/tasks/{task_id}/sla-warning")
def sla_warning(task_id: int, event: TimeEvent):
    _run(service.sla_warning, event.time, task_id)
    return {"status": "ok"}


@app.post("/scheduler/vms/{vm_id}/migrate")
def request_migration(vm_id: int, req: MigrationRequest):
    _run(service.request_migration, vm_id, req.machine_id)
    return {"status": "migrating", "vm_id": vm_id, "machine_id": req.machine_id}


@app.post("/scheduler/vms/{vm_id}/migration-complete")
def migration_complete(vm_id: int, event: TimeEvent):
    _run(service.migration_complete, event.time, vm_id)
    return {"status": "ok"}


@app.post("/scheduler/machines/{machine_id}/state-change-complete")
def state_change_complete(machine_id: int, event: TimeEvent):
    _run(service.state_change_complete, event.time, machine_id)
    return {"status": "ok"}


@app.post("/scheduler/machines/{machine_id}/memory-warning")
def memory_warning(machine_id: int, event: TimeEvent):
    _run(service.memory_warning, event.time, machine_id)
    return {"status": "ok"}


@app.post("/scheduler/check")
def periodic_check(event: TimeEvent):
    _run(service.periodic_check, event.time)
    return {"status": "ok"}


@app.post("/scheduler/complete")
def simulation_complete(event: TimeEvent):
    report = _run(service.simulation_complete, event.time)
    return report.model_dump()


@app.get("/scheduler/health")
def health():
    return {"status": "ok", "policy": service.policy.name}


if __name__ == "__main__":
    uvicorn.run("cloudsched.main:app", host="0.0.0.0", port=SCHEDULER_PORT, log_level="info")
