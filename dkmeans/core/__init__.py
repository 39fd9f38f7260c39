from .aggregation import CentroidAggregator, merge_reports, update_centroid
from .assignment import AssignmentEngine, LocalCluster
from .collect import Cluster, ClusteringResult, ResultCollector
from .convergence import ConvergenceController, RunState
from .distance import (
    DistanceMetric,
    EuclideanDistance,
    ManhattanDistance,
    SquaredEuclideanDistance,
    get_metric,
)
from .element import KMeansConfig, ValueDomain, as_elements, validate_run
from .engine import DistributedKMeans, run_processes, run_threads
from .partition import Partitioner, Shard, partition_dataset, shard_sizes
from .selection import (
    CentroidSelector,
    FirstKSelector,
    FixedSelector,
    RandomSampleSelector,
)
from .sync import CentroidSynchronizer

__all__ = [
    "CentroidAggregator",
    "merge_reports",
    "update_centroid",
    "AssignmentEngine",
    "LocalCluster",
    "Cluster",
    "ClusteringResult",
    "ResultCollector",
    "ConvergenceController",
    "RunState",
    "DistanceMetric",
    "EuclideanDistance",
    "ManhattanDistance",
    "SquaredEuclideanDistance",
    "get_metric",
    "KMeansConfig",
    "ValueDomain",
    "as_elements",
    "validate_run",
    "DistributedKMeans",
    "run_processes",
    "run_threads",
    "Partitioner",
    "Shard",
    "partition_dataset",
    "shard_sizes",
    "CentroidSelector",
    "FirstKSelector",
    "FixedSelector",
    "RandomSampleSelector",
    "CentroidSynchronizer",
]
