from .core import (
    Cluster,
    ClusteringResult,
    DistributedKMeans,
    KMeansConfig,
    RunState,
    run_processes,
    run_threads,
)
from .errors import (
    CollectiveAborted,
    ConfigurationError,
    KMeansError,
    PartitionError,
)

__all__ = [
    "Cluster",
    "ClusteringResult",
    "DistributedKMeans",
    "KMeansConfig",
    "RunState",
    "run_processes",
    "run_threads",
    "CollectiveAborted",
    "ConfigurationError",
    "KMeansError",
    "PartitionError",
]
