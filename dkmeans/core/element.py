"""
Модель элемента и параметры запуска.

Элемент — строка двумерного массива ``(n, d)`` фиксированного dtype
(по умолчанию ``uint8``, значения 0..255). Параметры ``k``, ``d`` и ``P``
общие для всех воркеров и не меняются в течение запуска.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from dkmeans.core.distance import METRICS
from dkmeans.errors import ConfigurationError


class ValueDomain:
    """
    Область значений элементов.

    Результаты формулы инкрементального среднего считаются в float64 и
    затем квантуются обратно в dtype элемента: для целочисленных типов —
    отбрасывание дробной части и обрезка по границам типа, для
    вещественных — простое приведение.
    """

    def __init__(self, dtype: str | np.dtype = "uint8") -> None:
        self.dtype = np.dtype(dtype)
        if self.dtype.kind not in "uif":
            raise ConfigurationError(f"Unsupported element dtype: {self.dtype}")
        self.is_integer = self.dtype.kind in "ui"

    def quantize(self, values: np.ndarray) -> np.ndarray:
        values = np.asarray(values, dtype=np.float64)
        if not self.is_integer:
            return values.astype(self.dtype)
        info = np.iinfo(self.dtype)
        return np.clip(np.trunc(values), info.min, info.max).astype(self.dtype)

    def check(self, values: np.ndarray) -> None:
        """
        Проверяет, что входные значения представимы в домене без потерь.

        Raises:
            ConfigurationError: нечисловые, NaN/inf, дробные значения для
                целочисленного домена или выход за границы типа
        """
        values = np.asarray(values)
        if values.dtype.kind not in "biuf":
            raise ConfigurationError(f"Elements must be numeric, got dtype {values.dtype}")
        if values.size == 0:
            return
        if values.dtype.kind == "f" and not np.all(np.isfinite(values)):
            raise ConfigurationError("Elements contain NaN or infinite values")
        if not self.is_integer:
            return
        if values.dtype.kind == "f" and np.any(values != np.trunc(values)):
            raise ConfigurationError(f"Elements must be integral for dtype {self.dtype}")
        info = np.iinfo(self.dtype)
        lo, hi = values.min(), values.max()
        if lo < info.min or hi > info.max:
            raise ConfigurationError(
                f"Element values [{lo}, {hi}] are outside the {self.dtype} "
                f"range [{info.min}, {info.max}]"
            )

    def zeros(self, *shape: int) -> np.ndarray:
        return np.zeros(shape, dtype=self.dtype)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ValueDomain) and other.dtype == self.dtype

    def __repr__(self) -> str:
        return f"ValueDomain({self.dtype.name!r})"


@dataclass(frozen=True)
class KMeansConfig:
    """Параметры распределённого KMeans."""

    n_clusters: int
    n_dims: int
    n_workers: int = 1
    max_generations: int = 300
    metric: str = "euclidean"
    dtype: str = "uint8"
    seed: Optional[int] = None

    @property
    def domain(self) -> ValueDomain:
        return ValueDomain(self.dtype)

    def validate(self) -> None:
        """Проверки, не зависящие от данных; выполняются на каждом ранге."""
        if self.n_clusters < 1:
            raise ConfigurationError(f"n_clusters must be >= 1, got {self.n_clusters}")
        if self.n_dims < 1:
            raise ConfigurationError(f"n_dims must be >= 1, got {self.n_dims}")
        if self.n_workers < 1:
            raise ConfigurationError(f"n_workers must be >= 1, got {self.n_workers}")
        if self.max_generations < 1:
            raise ConfigurationError(
                f"max_generations must be >= 1, got {self.max_generations}"
            )
        if self.metric not in METRICS:
            raise ConfigurationError(
                f"Unknown distance metric '{self.metric}', "
                f"expected one of {sorted(METRICS)}"
            )
        try:
            ValueDomain(self.dtype)
        except TypeError as exc:
            raise ConfigurationError(f"Unknown element dtype '{self.dtype}'") from exc


def as_elements(data: np.ndarray | list, dtype: str | np.dtype = "uint8") -> np.ndarray:
    """
    Приводит входные данные к неизменяемому массиву элементов ``(n, d)``.

    Одномерный вход трактуется как ``n`` элементов размерности 1. Значения
    не приводятся молча: выход за область значений dtype — ошибка.
    """
    raw = np.asarray(data)
    ValueDomain(dtype).check(raw)
    arr = np.array(raw, dtype=dtype)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    arr.flags.writeable = False
    return arr


def validate_run(dataset: np.ndarray, config: KMeansConfig) -> None:
    """
    Проверяет согласованность датасета и конфигурации до начала
    коллективных операций.

    Raises:
        ConfigurationError: если k > n, P > n, размерность не совпадает и т.п.
    """
    config.validate()
    if dataset.ndim != 2:
        raise ConfigurationError(f"Dataset must be 2-D, got shape {dataset.shape}")
    n, d = dataset.shape
    if n < 1:
        raise ConfigurationError("Dataset is empty")
    if d != config.n_dims:
        raise ConfigurationError(f"Expected {config.n_dims} dimensions, got {d}")
    if config.n_clusters > n:
        raise ConfigurationError(
            f"n_clusters={config.n_clusters} exceeds dataset size n={n}"
        )
    if config.n_workers > n:
        raise ConfigurationError(
            f"n_workers={config.n_workers} exceeds dataset size n={n}"
        )
