from .host import Host, HostError, UnknownResourceError
from .planner import (
    PlacementPolicy,
    LoadBalancePolicy,
    SLAPartitionPolicy,
    GreedySlackPolicy,
    EfficiencyPolicy,
    get_policy,
)
from .service import SchedulerService

__version__ = "0.1.0"
