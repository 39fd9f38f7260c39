"""
Шаг назначения на одном воркере.

Работает только с локальным шардом, без обмена сообщениями. Для каждого
элемента ищется ближайший центроид (при равенстве — с меньшим индексом),
элемент добавляется в список членов кластера и вливается в локальный
центроид по правилу инкрементального среднего.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from dkmeans.core.aggregation import PartialReport, update_centroid
from dkmeans.core.distance import DistanceMetric
from dkmeans.core.element import ValueDomain
from dkmeans.core.partition import Shard


@dataclass
class LocalCluster:
    """Локальный кластер воркера: частичный центроид и локальные индексы членов."""

    centroid: np.ndarray
    members: List[int] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.members)


class AssignmentEngine:
    """Назначение элементов шарда ближайшим центроидам."""

    def __init__(
        self,
        shard: Shard,
        k: int,
        metric: DistanceMetric,
        domain: ValueDomain,
    ) -> None:
        self.shard = shard
        self.k = k
        self.metric = metric
        self.domain = domain

        d = shard.elements.shape[1]
        # Таблица расстояний maxNum x k, размер задаётся шардом
        self.dist = np.zeros((shard.size, k), dtype=np.float64)
        self.clusters: List[LocalCluster] = [
            LocalCluster(centroid=domain.zeros(d)) for _ in range(k)
        ]
        self.labels: Optional[np.ndarray] = None

    def update_distances(self, centroids: np.ndarray) -> np.ndarray:
        """Пересчитывает ``dist[i, j]`` между локальными элементами и центроидами."""
        if centroids.shape[0] != self.k:
            raise ValueError(f"Expected {self.k} centroids, got {centroids.shape[0]}")
        table = self.metric.table(self.shard.elements, centroids)
        if table.shape != self.dist.shape:
            raise ValueError(
                f"Distance table has shape {table.shape}, expected {self.dist.shape}"
            )
        if not np.all(np.isfinite(table)):
            raise FloatingPointError("Distance metric produced non-finite values")
        self.dist[:] = table
        return self.dist

    def assign(self) -> List[LocalCluster]:
        """
        Перестраивает локальные кластеры по текущей таблице расстояний.

        ``np.argmin`` возвращает первый минимум, что и даёт правило
        «меньший индекс центроида выигрывает».
        """
        d = self.shard.elements.shape[1]
        self.clusters = [LocalCluster(centroid=self.domain.zeros(d)) for _ in range(self.k)]
        self.labels = np.argmin(self.dist, axis=1).astype(np.int64, copy=False)

        for i, j in enumerate(self.labels):
            cluster = self.clusters[j]
            cluster.centroid = update_centroid(
                cluster.centroid, cluster.count, self.shard.elements[i], 1, self.domain
            )
            cluster.members.append(i)

        return self.clusters

    def step(self, centroids: np.ndarray) -> List[LocalCluster]:
        self.update_distances(centroids)
        return self.assign()

    def partial_report(self) -> PartialReport:
        """Частичные центроиды ``(k, d)`` и счётчики ``(k,)`` для агрегации."""
        centroids = np.stack([c.centroid for c in self.clusters])
        counts = np.array([c.count for c in self.clusters], dtype=np.int64)
        return centroids, counts

    def global_members(self) -> List[np.ndarray]:
        """Члены каждого кластера в глобальных индексах датасета."""
        ids = self.shard.global_ids
        return [ids[np.asarray(c.members, dtype=np.int64)] for c in self.clusters]
