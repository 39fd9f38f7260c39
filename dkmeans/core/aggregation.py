"""
Инкрементальное среднее и слияние частичных центроидов.

Правило обновления (покомпонентно):

    new = (old * old_count + value * value_count) / (old_count + value_count)

Результат квантуется в область значений элемента после каждого шага.
Хранить полные суммы не требуется, поэтому узкие (однобайтовые) каналы
не переполняются.

Математически взвешенное среднее не зависит от порядка слияния, но из-за
отбрасывания дробной части на каждом шаге итоговое значение может
зависеть от порядка. Отчёты воркеров всегда сливаются в порядке рангов,
поэтому результат детерминирован для фиксированного ``P``.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from dkmeans.collective.base import Communicator
from dkmeans.core.element import ValueDomain

PartialReport = Tuple[np.ndarray, np.ndarray]


def update_centroid(
    centroid: np.ndarray,
    count: int,
    value: np.ndarray,
    value_count: int,
    domain: ValueDomain,
) -> np.ndarray:
    """Вливает ``value`` с весом ``value_count`` в центроид с весом ``count``."""
    total = count + value_count
    if total <= 0:
        raise ValueError("Cannot merge two empty contributions")
    merged = (
        centroid.astype(np.float64) * count + value.astype(np.float64) * value_count
    ) / total
    return domain.quantize(merged)


def merge_reports(
    previous: np.ndarray,
    reports: Sequence[PartialReport],
    domain: ValueDomain,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Сливает частичные отчёты ``(centroids[k, d], counts[k])`` в новые центроиды.

    Слияние начинается с предыдущего центроида с весом 0, так что первый
    непустой вклад переносится как есть, а кластер, пустой на всех воркерах,
    сохраняет предыдущий центроид.

    Returns:
        Кортеж ``(centroids[k, d], counts[k])``.
    """
    k = previous.shape[0]
    centroids = np.array(previous, dtype=domain.dtype, copy=True)
    counts = np.zeros(k, dtype=np.int64)

    for local_centroids, local_counts in reports:
        for j in range(k):
            size = int(local_counts[j])
            if size == 0:
                continue
            centroids[j] = update_centroid(
                centroids[j], int(counts[j]), local_centroids[j], size, domain
            )
            counts[j] += size

    return centroids, counts


class CentroidAggregator:
    """Сбор частичных отчётов на координаторе и пересчёт глобальных центроидов."""

    def __init__(self, domain: ValueDomain, logger: Any | None = None) -> None:
        self.domain = domain
        self.logger = logger
        self.last_counts: Optional[np.ndarray] = None

    def combine(
        self,
        comm: Communicator,
        report: PartialReport,
        previous: np.ndarray,
    ) -> Optional[np.ndarray]:
        """
        Коллективно собирает отчёты всех рангов.

        Returns:
            Новые центроиды на координаторе, ``None`` на остальных рангах.
        """
        reports: Optional[List[PartialReport]] = comm.gather(report)
        if reports is None:
            return None

        centroids, counts = merge_reports(previous, reports, self.domain)
        self.last_counts = counts

        empty = np.flatnonzero(counts == 0)
        if self.logger and empty.size:
            self.logger.debug(
                f"clusters {empty.tolist()} received no elements, centroids kept"
            )
        return centroids
