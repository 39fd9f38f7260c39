"""
Общие фикстуры для всех тестов.
"""

import numpy as np
import pytest

from dkmeans.core.distance import DistanceMetric
from dkmeans.core.element import as_elements


class FarthestDistance(DistanceMetric):
    """«Обратная» метрика: ближайшим считается самый дальний центроид."""

    name = "farthest"

    def __call__(self, a, b):
        diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
        return -float(np.sqrt(np.dot(diff, diff)))


@pytest.fixture
def two_groups():
    """Восемь одномерных элементов в двух явно разделённых группах."""
    return as_elements([0, 1, 2, 3, 100, 101, 102, 103])


@pytest.fixture
def small_blobs():
    """Небольшой датасет uint8 (2D, 3 кластера) вокруг известных центров."""
    rng = np.random.default_rng(42)
    centers = np.array([[30, 30], [128, 200], [220, 60]])
    points = np.vstack([c + rng.integers(-10, 11, size=(40, 2)) for c in centers])
    return as_elements(points)


@pytest.fixture
def float_blobs():
    """Вещественный датасет (3D, 2 кластера)."""
    rng = np.random.default_rng(7)
    cluster1 = rng.normal(0.0, 1.0, size=(30, 3))
    cluster2 = rng.normal(10.0, 1.0, size=(30, 3))
    return as_elements(np.vstack([cluster1, cluster2]), dtype="float64")


@pytest.fixture
def farthest_metric():
    return FarthestDistance()
