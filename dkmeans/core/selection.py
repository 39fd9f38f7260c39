"""Стратегии выбора начальных центроидов (только на координаторе)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np


class CentroidSelector(ABC):
    """Выбирает ``k`` начальных центроидов из полного датасета."""

    @abstractmethod
    def select(self, dataset: np.ndarray, k: int) -> np.ndarray:
        raise NotImplementedError


class RandomSampleSelector(CentroidSelector):
    """Равномерная выборка ``k`` различных элементов без возвращения."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def select(self, dataset: np.ndarray, k: int) -> np.ndarray:
        idx = self._rng.choice(dataset.shape[0], size=k, replace=False)
        return np.array(dataset[idx], copy=True)


class FirstKSelector(CentroidSelector):
    """Первые ``k`` элементов датасета; детерминированный выбор."""

    def select(self, dataset: np.ndarray, k: int) -> np.ndarray:
        return np.array(dataset[:k], copy=True)


class FixedSelector(CentroidSelector):
    """Заранее заданные центроиды (например, из файла датасета)."""

    def __init__(self, centroids: np.ndarray) -> None:
        self.centroids = np.asarray(centroids)

    def select(self, dataset: np.ndarray, k: int) -> np.ndarray:
        if self.centroids.shape != (k, dataset.shape[1]):
            raise ValueError(
                f"Expected centroids shape ({k}, {dataset.shape[1]}), "
                f"got {self.centroids.shape}"
            )
        return self.centroids.astype(dataset.dtype, copy=True)
