# cloudsched/config.py
import os

# Host connection (set via env when the scheduler runs next to a remote simulator)
HOST_BASE_URL = os.getenv("HOST_BASE_URL", "http://localhost:8100")
HOST_TOKEN = os.getenv("HOST_TOKEN")
HOST_TIMEOUT = float(os.getenv("HOST_TIMEOUT", "5"))  # seconds

# Scheduler behavior
SCHEDULER_POLICY = os.getenv("SCHEDULER_POLICY", "load_balance")
ACTIVE_MACHINES = int(os.getenv("ACTIVE_MACHINES", "0"))  # 0 = every machine the host reports
HIGH_PRIORITY_FRACTION = float(os.getenv("HIGH_PRIORITY_FRACTION", "0.5"))  # share of machines reserved for SLA0/SLA1

# Greedy slack policy
GREEDY_MATCH_CPU = os.getenv("GREEDY_MATCH_CPU", "true").lower() in ("1", "true", "yes")
GREEDY_GPU_BONUS = float(os.getenv("GREEDY_GPU_BONUS", "0.05"))

# Efficiency policy weights
EFFICIENCY_CPU_WEIGHT = float(os.getenv("EFFICIENCY_CPU_WEIGHT", "0.5"))
EFFICIENCY_MEM_WEIGHT = float(os.getenv("EFFICIENCY_MEM_WEIGHT", "0.5"))
EFFICIENCY_REUSE_BONUS = float(os.getenv("EFFICIENCY_REUSE_BONUS", "0.1"))
EFFICIENCY_GPU_BONUS = float(os.getenv("EFFICIENCY_GPU_BONUS", "0.1"))

# Service / logging
SCHEDULER_PORT = int(os.getenv("SCHEDULER_PORT", "9000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
