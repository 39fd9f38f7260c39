"""
Метрики качества и производительности для итогового разбиения.

Модуль предоставляет функции для вычисления инерции, размеров кластеров,
чистоты относительно эталонных меток и пропускной способности.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np


def inertia(X: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> float:
    """
    Сумма квадратов расстояний от элементов до центроидов их кластеров.

    Args:
        X: Датасет (N x D)
        labels: Метки кластеров (N,)
        centroids: Центроиды (K x D)

    Returns:
        Значение инерции
    """
    diff = X.astype(np.float64) - centroids.astype(np.float64)[labels]
    return float(np.einsum("nd,nd->", diff, diff))


def cluster_sizes(labels: np.ndarray, k: int) -> np.ndarray:
    """Количество элементов в каждом из ``k`` кластеров."""
    return np.bincount(labels, minlength=k)


def purity(members: Sequence[Sequence[int]], labels_true: np.ndarray) -> float:
    """
    Чистота разбиения относительно эталонных меток.

    Для каждого кластера берётся самая частая эталонная метка среди его
    членов; чистота — доля элементов, совпавших с меткой своего кластера.

    Args:
        members: Глобальные индексы членов каждого кластера
        labels_true: Эталонные метки (N,)

    Returns:
        Значение от 0 до 1

    Raises:
        ZeroDivisionError: Если кластеры пусты
    """
    total = sum(len(m) for m in members)
    if total == 0:
        raise ZeroDivisionError("Clusters contain no elements")
    hits = 0
    for ids in members:
        if len(ids) == 0:
            continue
        _, counts = np.unique(labels_true[np.asarray(ids, dtype=np.int64)], return_counts=True)
        hits += int(counts.max())
    return hits / total


def throughput(
    N: int, K: int, D: int, n_iters: int, total_time: float
) -> float:
    """
    Вычисляет пропускную способность алгоритма.

    Пропускная способность = (N × K × D × n_iters) / total_time

    Raises:
        ZeroDivisionError: Если total_time равно нулю
    """
    if total_time == 0:
        raise ZeroDivisionError("Total time cannot be zero")
    return (N * K * D * n_iters) / total_time
