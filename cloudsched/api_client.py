# cloudsched/api_client.py
import logging
from typing import Any, Dict, Optional

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import HOST_BASE_URL, HOST_TOKEN, HOST_TIMEOUT
from .host import Host, HostError, UnknownResourceError
from .models import CPUType, MachineState, Priority, SLAType, VMType

logger = logging.getLogger("cloudsched.api_client")


class HostClient(Host):
    """
    Host implementation backed by a remote simulation host speaking JSON over
    HTTP. A 404 means the id does not exist (UnknownResourceError); any other
    HTTP or transport failure surfaces as HostError.
    """

    def __init__(self, base_url=None, token=None, timeout=None):
        self.base_url = (base_url or HOST_BASE_URL).rstrip("/")
        self.token = token if token is not None else HOST_TOKEN
        self.timeout = timeout if timeout is not None else HOST_TIMEOUT
        self.session = self._make_session(self.token)

    def _make_session(self, token):
        s = Session()
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        s.headers.update(headers)
        # only idempotent reads are retried; commands must not be replayed
        retries = Retry(total=3, backoff_factor=0.5, status_forcelist=(502, 503, 504), allowed_methods=("GET",))
        s.mount("http://", HTTPAdapter(max_retries=retries))
        s.mount("https://", HTTPAdapter(max_retries=retries))
        return s

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise HostError(f"{method} {url} failed: {e}") from e
        if resp.status_code == 404:
            raise UnknownResourceError(path)
        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            raise HostError(f"{method} {url} returned {resp.status_code}: {resp.text[:200]}") from e
        if not resp.content:
            return None
        return resp.json()

    def _get(self, path: str) -> Any:
        return self._request("GET", path)

    def _post(self, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("POST", path, payload or {})

    # --- queries ---

    def machine_count(self) -> int:
        return int(self._get("/machines/count")["count"])

    def machine_info(self, machine_id: int) -> Dict[str, Any]:
        return self._get(f"/machines/{machine_id}")

    def vm_info(self, vm_id: int) -> Dict[str, Any]:
        return self._get(f"/vms/{vm_id}")

    def task_info(self, task_id: int) -> Dict[str, Any]:
        return self._get(f"/tasks/{task_id}")

    def sla_report(self, sla: SLAType) -> float:
        return float(self._get(f"/reports/sla/{SLAType(sla).value}")["percent"])

    def cluster_energy(self) -> float:
        return float(self._get("/reports/energy")["kwh"])

    # --- commands ---

    def set_machine_state(self, machine_id: int, state: MachineState):
        self._post(f"/machines/{machine_id}/state", {"state": MachineState(state).value})

    def create_vm(self, vm_type: VMType, cpu: CPUType) -> int:
        res = self._post("/vms", {"vm_type": VMType(vm_type).value, "cpu": CPUType(cpu).value})
        if not isinstance(res, dict) or "vm_id" not in res:
            raise HostError(f"unexpected VM creation response: {res!r}")
        logger.debug("Host created VM %s", res["vm_id"])
        return int(res["vm_id"])

    def attach_vm(self, vm_id: int, machine_id: int):
        self._post(f"/vms/{vm_id}/attach", {"machine_id": machine_id})

    def add_task(self, vm_id: int, task_id: int, priority: Priority):
        self._post(f"/vms/{vm_id}/tasks", {"task_id": task_id, "priority": Priority(priority).value})

    def set_task_priority(self, task_id: int, priority: Priority):
        self._post(f"/tasks/{task_id}/priority", {"priority": Priority(priority).value})

    def shutdown_vm(self, vm_id: int):
        self._post(f"/vms/{vm_id}/shutdown")

    def migrate_vm(self, vm_id: int, machine_id: int):
        self._post(f"/vms/{vm_id}/migrate", {"machine_id": machine_id})
