"""Синхронизация центроидов: рассылка с координатора всем воркерам."""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from dkmeans.collective.base import Communicator
from dkmeans.core.element import ValueDomain


class CentroidSynchronizer:
    """
    Рассылает авторитетный набор ``(k, d)`` центроидов.

    После возврата на любом ранге его копия побайтно совпадает с копией
    координатора; частично обновлённый набор наблюдать нельзя.
    """

    def __init__(self, k: int, d: int, domain: ValueDomain, logger: Any | None = None) -> None:
        self.k = k
        self.d = d
        self.domain = domain
        self.logger = logger

    def broadcast(self, comm: Communicator, centroids: Optional[np.ndarray]) -> np.ndarray:
        payload = None
        if comm.is_root:
            payload = np.ascontiguousarray(centroids, dtype=self.domain.dtype)
            if payload.shape != (self.k, self.d):
                raise ValueError(
                    f"Expected centroids shape ({self.k}, {self.d}), got {payload.shape}"
                )
        received = comm.bcast(payload)
        # Собственная копия ранга, не разделяемая с транспортом
        local = np.array(received, dtype=self.domain.dtype, copy=True)
        if self.logger:
            self.logger.debug(f"centroids synchronized ({self.k}x{self.d})")
        return local
