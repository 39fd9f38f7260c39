"""
Генератор синтетических датасетов для распределённого K-means.

Данные создаются через ``sklearn.datasets.make_blobs`` и масштабируются в
однобайтовую область значений 0..255, в которой работает движок.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
from sklearn.datasets import make_blobs
from sklearn.preprocessing import MinMaxScaler


@dataclass
class GeneratedDataset:
    """Контейнер для сгенерированных данных."""

    data: np.ndarray
    labels: np.ndarray
    centers: np.ndarray
    metadata: dict[str, Any]


def generate_blobs(
    N: int,
    D: int,
    K: int,
    cluster_std: float = 1.0,
    seed: int = 42,
    center_box_range: tuple[float, float] = (-10.0, 10.0),
) -> GeneratedDataset:
    """
    Генерация кластеризованных данных в области 0..255.

    Args:
        N: Количество точек
        D: Размерность пространства
        K: Количество кластеров
        cluster_std: Стандартное отклонение кластеров
        seed: Seed для воспроизводимости
        center_box_range: Диапазон расположения центров до масштабирования

    Returns:
        GeneratedDataset с данными и центрами типа uint8
    """
    data, labels, centers = make_blobs(
        n_samples=N,
        n_features=D,
        centers=K,
        cluster_std=cluster_std,
        center_box=center_box_range,
        random_state=seed,
        return_centers=True,
    )

    scaler = MinMaxScaler(feature_range=(0, 255))
    data = scaler.fit_transform(data)
    centers = np.clip(scaler.transform(centers), 0, 255)

    metadata = {
        "N": N,
        "D": D,
        "K": K,
        "cluster_std": cluster_std,
        "center_box_range": list(center_box_range),
        "seed": seed,
        "dtype": "uint8",
        "generated": time.strftime("%Y-%m-%d %H:%M:%S"),
        "data_type": "synthetic_blobs",
    }
    return GeneratedDataset(
        data=np.clip(np.rint(data), 0, 255).astype(np.uint8),
        labels=labels.astype(np.int32),
        centers=np.rint(centers).astype(np.uint8),
        metadata=metadata,
    )


def save_dataset_txt(dataset: GeneratedDataset, filepath: str | Path) -> Path:
    """
    Сохранение датасета в текстовом формате.

    Формат файла:
    # Метаданные в формате JSON
    # Центроиды (K строк, D+1 колонок: метка + координаты)
    # Данные (N строк, D+1 колонок: метка + координаты)
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w", encoding="utf-8") as f:
        f.write("# " + json.dumps(dataset.metadata, ensure_ascii=False) + "\n")
        for label, center in enumerate(dataset.centers):
            f.write(f"{label} " + " ".join(str(int(v)) for v in center) + "\n")
        f.write("\n")
        for label, row in zip(dataset.labels, dataset.data):
            f.write(f"{int(label)} " + " ".join(str(int(v)) for v in row) + "\n")

    return filepath
