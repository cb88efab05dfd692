import pytest

from cloudsched.inmemory import InMemoryHost
from cloudsched.planner import get_policy
from cloudsched.service import SchedulerService


GB = 1024


@pytest.fixture
def cluster():
    """Four identical x86 machines, 8 GB each, no GPUs."""
    return InMemoryHost.uniform(4, cpu="X86", memory_size=8 * GB, num_cores=8)


@pytest.fixture
def make_service():
    def _make(host, policy="load_balance", **options):
        service = SchedulerService(host, get_policy(policy, **options))
        service.init()
        return service
    return _make
