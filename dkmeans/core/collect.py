"""
Сбор итогового разбиения на координаторе.

Каждый воркер отправляет списки членов своих локальных кластеров в
глобальных индексах; размеры списков у воркеров разные, поэтому это
gather переменной длины. Координатор склеивает списки по кластерам в
порядке рангов.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from dkmeans.collective.base import Communicator
from dkmeans.core.assignment import AssignmentEngine
from dkmeans.core.convergence import RunState


@dataclass(eq=False)
class Cluster:
    """Итоговый кластер: центроид и глобальные индексы членов."""

    centroid: np.ndarray
    members: List[int] = field(default_factory=list)

    def __eq__(self, other: object) -> bool:
        # Равенство по центроиду; состав кластера не учитывается
        if not isinstance(other, Cluster):
            return NotImplemented
        return bool(np.array_equal(self.centroid, other.centroid))

    def __len__(self) -> int:
        return len(self.members)


@dataclass
class ClusteringResult:
    """Результат запуска для передачи отчётам."""

    clusters: List[Cluster]
    state: RunState
    generations: int
    t_assign_total: float = 0.0
    t_aggregate_total: float = 0.0
    t_sync_total: float = 0.0

    @property
    def centroids(self) -> np.ndarray:
        return np.stack([c.centroid for c in self.clusters])

    @property
    def converged(self) -> bool:
        return self.state is RunState.CONVERGED

    def labels(self, n: int) -> np.ndarray:
        """Метка кластера для каждого из ``n`` элементов датасета."""
        labels = np.full(n, -1, dtype=np.int64)
        for j, cluster in enumerate(self.clusters):
            labels[np.asarray(cluster.members, dtype=np.int64)] = j
        return labels

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "generations": self.generations,
            "centroids": self.centroids.tolist(),
            "clusters": [
                {"size": len(c), "members": list(c.members)} for c in self.clusters
            ],
            "T_assign_total": self.t_assign_total,
            "T_aggregate_total": self.t_aggregate_total,
            "T_sync_total": self.t_sync_total,
        }


class ResultCollector:
    def __init__(self, logger: Any | None = None) -> None:
        self.logger = logger

    def collect(
        self,
        comm: Communicator,
        engine: AssignmentEngine,
        centroids: np.ndarray,
    ) -> Optional[List[Cluster]]:
        """Собирает членство кластеров; на некоординаторах возвращает ``None``."""
        local = [ids.tolist() for ids in engine.global_members()]
        if self.logger:
            self.logger.debug(f"sending {sum(len(m) for m in local)} assignments")

        gathered = comm.gather(local)
        if gathered is None:
            return None

        clusters = [Cluster(centroid=np.array(c, copy=True)) for c in centroids]
        for per_rank in gathered:
            for j, members in enumerate(per_rank):
                clusters[j].members.extend(members)
        return clusters
