"""
Метрики расстояния для шага назначения.

Метрика — небольшой подключаемый объект: ``metric(a, b)`` для пары
элементов и ``metric.table(points, centroids)`` для плотной таблицы
``(m, k)``. Базовая реализация таблицы просто вызывает ``__call__``
попарно, конкретные метрики векторизуют её через NumPy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from dkmeans.errors import ConfigurationError


class DistanceMetric(ABC):
    """Базовый класс метрики расстояния."""

    name: str = "custom"

    @abstractmethod
    def __call__(self, a: np.ndarray, b: np.ndarray) -> float:
        raise NotImplementedError

    def table(self, points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        """Таблица расстояний ``dist[i, j] = metric(points[i], centroids[j])``."""
        m, k = points.shape[0], centroids.shape[0]
        dist = np.empty((m, k), dtype=np.float64)
        for i in range(m):
            for j in range(k):
                dist[i, j] = self(points[i], centroids[j])
        return dist


def _diff(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    # (m, k, d); float64, чтобы не переполнять узкие целочисленные каналы
    return (
        points.astype(np.float64, copy=False)[:, None, :]
        - centroids.astype(np.float64, copy=False)[None, :, :]
    )


class SquaredEuclideanDistance(DistanceMetric):
    """Сумма квадратов покомпонентных разностей."""

    name = "sqeuclidean"

    def __call__(self, a: np.ndarray, b: np.ndarray) -> float:
        diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
        return float(np.dot(diff, diff))

    def table(self, points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        diff = _diff(points, centroids)
        return np.einsum("mkd,mkd->mk", diff, diff, optimize=True)


class EuclideanDistance(SquaredEuclideanDistance):
    """Евклидово расстояние (метрика по умолчанию)."""

    name = "euclidean"

    def __call__(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(np.sqrt(super().__call__(a, b)))

    def table(self, points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        return np.sqrt(super().table(points, centroids))


class ManhattanDistance(DistanceMetric):
    """Сумма модулей покомпонентных разностей."""

    name = "manhattan"

    def __call__(self, a: np.ndarray, b: np.ndarray) -> float:
        diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
        return float(np.abs(diff).sum())

    def table(self, points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        return np.abs(_diff(points, centroids)).sum(axis=2)


METRICS: dict[str, type[DistanceMetric]] = {
    EuclideanDistance.name: EuclideanDistance,
    SquaredEuclideanDistance.name: SquaredEuclideanDistance,
    ManhattanDistance.name: ManhattanDistance,
}


def get_metric(name: str) -> DistanceMetric:
    """Возвращает экземпляр метрики по имени из конфигурации."""
    try:
        return METRICS[name]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown distance metric '{name}', expected one of {sorted(METRICS)}"
        ) from None
