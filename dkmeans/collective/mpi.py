"""
Адаптер коллективного канала для MPI (``mpi4py``).

Запуск: ``mpiexec -n P python -m dkmeans.main run --backend mpi ...``.
Модуль импортируется только при выборе MPI-бэкенда.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from mpi4py import MPI

from dkmeans.collective.base import Communicator


class MPICommunicator(Communicator):
    """Обёртка над ``MPI.COMM_WORLD`` (или другим интракоммуникатором)."""

    def __init__(self, comm: Any = None) -> None:
        self._comm = comm if comm is not None else MPI.COMM_WORLD
        self.rank = self._comm.Get_rank()
        self.size = self._comm.Get_size()

    def bcast(self, obj: Any, root: int = 0) -> Any:
        return self._comm.bcast(obj, root=root)

    def scatter(self, chunks: Optional[Sequence[Any]], root: int = 0) -> Any:
        if self.rank == root:
            chunks = list(self._check_chunks(chunks))
        return self._comm.scatter(chunks, root=root)

    def gather(self, obj: Any, root: int = 0) -> Optional[List[Any]]:
        return self._comm.gather(obj, root=root)

    def barrier(self) -> None:
        self._comm.Barrier()
