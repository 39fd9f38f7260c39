"""
Разбиение датасета на непрерывные шарды по воркерам.

Все шарды, кроме последнего, имеют размер ``n // P``; последний получает
остаток ``n - (P - 1) * (n // P)``. Неравномерный хвост — часть
контракта, а не приближение.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np

from dkmeans.collective.base import Communicator
from dkmeans.errors import PartitionError


def shard_sizes(n: int, n_workers: int) -> List[int]:
    """Размеры шардов для ``n`` элементов и ``n_workers`` воркеров."""
    if n_workers < 1:
        raise ValueError(f"n_workers must be >= 1, got {n_workers}")
    each = n // n_workers
    return [each] * (n_workers - 1) + [n - (n_workers - 1) * each]


@dataclass(frozen=True)
class Shard:
    """Непрерывный срез датасета и отображение локальных индексов в глобальные."""

    rank: int
    elements: np.ndarray
    global_ids: np.ndarray

    @property
    def size(self) -> int:
        return int(self.elements.shape[0])

    def __post_init__(self) -> None:
        if self.elements.shape[0] != self.global_ids.shape[0]:
            raise PartitionError(
                f"Shard {self.rank}: {self.elements.shape[0]} elements "
                f"but {self.global_ids.shape[0]} ids"
            )


def partition_dataset(dataset: np.ndarray, n_workers: int) -> List[Shard]:
    """Нарезает датасет на шарды в порядке рангов (без копирования данных)."""
    shards: List[Shard] = []
    start = 0
    for rank, size in enumerate(shard_sizes(dataset.shape[0], n_workers)):
        stop = start + size
        shards.append(
            Shard(
                rank=rank,
                elements=dataset[start:stop],
                global_ids=np.arange(start, stop, dtype=np.int64),
            )
        )
        start = stop
    return shards


class Partitioner:
    """Коллективная раздача шардов с координатора."""

    def __init__(self, logger: Any | None = None) -> None:
        self.logger = logger

    def scatter(self, comm: Communicator, dataset: Optional[np.ndarray] = None) -> Shard:
        """
        Рассылает заголовок ``(n, d)`` и шарды; вызывается всеми рангами.

        Каждый ранг блокируется, пока не получит свой шард. Размер шарда
        сверяется с ожидаемым по правилу остатка.
        """
        header = None
        if comm.is_root:
            if dataset is None:
                raise ValueError("Coordinator must provide the dataset")
            header = tuple(dataset.shape)
        n, d = comm.bcast(header)

        chunks = partition_dataset(dataset, comm.size) if comm.is_root else None
        shard: Shard = comm.scatter(chunks)

        expected = shard_sizes(n, comm.size)[comm.rank]
        if shard.rank != comm.rank or shard.size != expected:
            raise PartitionError(
                f"Rank {comm.rank} received shard {shard.rank} of size "
                f"{shard.size}, expected {expected}"
            )
        if shard.elements.ndim != 2 or shard.elements.shape[1] != d:
            raise PartitionError(
                f"Rank {comm.rank} received elements of shape {shard.elements.shape}, "
                f"expected (*, {d})"
            )
        if self.logger:
            self.logger.debug(
                f"received shard of {shard.size} elements "
                f"(global ids {shard.global_ids[:1].tolist()}..)"
            )
        return shard
