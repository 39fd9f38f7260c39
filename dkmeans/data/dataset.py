"""
Загрузка датасетов для распределённого K-means.

Модуль предоставляет класс Dataset для загрузки данных из текстовых файлов
в формате, созданном :func:`dkmeans.data.synthetic.save_dataset_txt`.
Датасет читается только на координаторе.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np

from dkmeans.core.element import as_elements


class Dataset:
    """
    Представление датасета.

    Формат файла:
    # Метаданные в JSON
    # Центроиды (K строк: метка + координаты)
    # Данные (N строк: метка + координаты)
    """

    def __init__(self, data_path: str | Path, dtype: str | None = None) -> None:
        """
        Args:
            data_path: Путь к файлу датасета
            dtype: Тип элементов; по умолчанию берётся из метаданных
                (ключ ``dtype``), иначе ``uint8``
        """
        self.data_path = Path(data_path)
        self.dataset_info: dict[str, Any] = {}
        self.dtype = dtype
        self.X: np.ndarray | None = None
        self.labels_true: np.ndarray | None = None
        self.initial_centroids: np.ndarray | None = None

        logging.getLogger("dkmeans").info(f"Loading dataset from {self.data_path}")
        self._load_data()

    def _load_data(self) -> None:
        centroids: list[list[float]] = []
        points: list[list[float]] = []
        labels: list[int] = []

        with open(self.data_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                if line.startswith("#"):
                    # Первый комментарий с JSON — метаданные
                    body = line.lstrip("#").strip()
                    if not self.dataset_info and body.startswith("{"):
                        self.dataset_info = json.loads(body)
                    continue

                parts = line.split()
                label = int(parts[0])
                values = [float(v) for v in parts[1:]]

                K = self.dataset_info.get("K", 0)
                # Первые K строк с метками 0..K-1 — это центроиды
                if len(centroids) < K and label < K:
                    centroids.append(values)
                else:
                    points.append(values)
                    labels.append(label)

        if not points:
            raise ValueError(f"No data points found in {self.data_path}")

        dtype = self.dtype or self.dataset_info.get("dtype", "uint8")
        self.dtype = dtype
        self.X = as_elements(points, dtype)
        self.labels_true = np.array(labels, dtype=np.int32)
        if centroids:
            self.initial_centroids = as_elements(centroids, dtype)

        logging.getLogger("dkmeans").info(
            f"Dataset loaded: X.shape={self.X.shape}, dtype={self.X.dtype}, "
            f"initial_centroids={None if self.initial_centroids is None else self.initial_centroids.shape}"
        )

    @property
    def n(self) -> int:
        return int(self.X.shape[0])

    @property
    def d(self) -> int:
        return int(self.X.shape[1])
