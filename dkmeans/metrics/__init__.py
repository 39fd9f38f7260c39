from .timers import PhaseTimings, Timer
from .metrics import cluster_sizes, inertia, purity, throughput

__all__ = [
    "PhaseTimings",
    "Timer",
    "cluster_sizes",
    "inertia",
    "purity",
    "throughput",
]
