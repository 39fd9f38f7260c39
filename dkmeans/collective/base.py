"""
Абстракция коллективного канала.

API повторяет строчные методы ``mpi4py`` (``bcast``, ``scatter``,
``gather``, ``barrier``), поэтому алгоритм не зависит от транспорта:
в тестах используется канал на потоках, в рабочих запусках —
``multiprocessing`` или MPI.

Каждая операция — точка синхронизации: её должны вызвать все ``size``
рангов в одном и том же порядке. Таймаутов нет: если ранг не дошёл до
операции, остальные ждут, пока лаунчер не прервёт группу.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence


class Communicator(ABC):
    """Коллективный канал одного ранга."""

    rank: int
    size: int

    @property
    def is_root(self) -> bool:
        return self.rank == 0

    @abstractmethod
    def bcast(self, obj: Any, root: int = 0) -> Any:
        """Рассылает ``obj`` с ранга ``root`` всем; возвращает копию."""
        raise NotImplementedError

    @abstractmethod
    def scatter(self, chunks: Optional[Sequence[Any]], root: int = 0) -> Any:
        """Ранг ``root`` передаёт ``chunks[r]`` рангу ``r``."""
        raise NotImplementedError

    @abstractmethod
    def gather(self, obj: Any, root: int = 0) -> Optional[List[Any]]:
        """
        Собирает объекты всех рангов на ``root`` в порядке рангов.

        Размеры объектов могут различаться (аналог ``Gatherv``).
        На остальных рангах возвращает ``None``.
        """
        raise NotImplementedError

    def barrier(self) -> None:
        self.gather(None)
        self.bcast(None)

    def _check_chunks(self, chunks: Optional[Sequence[Any]]) -> Sequence[Any]:
        if chunks is None or len(chunks) != self.size:
            got = None if chunks is None else len(chunks)
            raise ValueError(f"scatter expects {self.size} chunks on root, got {got}")
        return chunks
