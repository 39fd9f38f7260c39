"""
Канал на потоках одного процесса.

Используется в тестах и для небольших запусков: все ранги работают в
потоках, обмен идёт через общий массив слотов, а синхронизация — через
``threading.Barrier``. Полезная нагрузка проходит через ``pickle``, так что
ранги, как и в настоящем транспорте, никогда не делят изменяемые объекты.
"""

from __future__ import annotations

import logging
import pickle
import threading
from typing import Any, Callable, List, Optional, Sequence

from dkmeans.collective.base import Communicator
from dkmeans.errors import CollectiveAborted

logger = logging.getLogger("dkmeans")


class ThreadGroup:
    """Общее состояние группы из ``size`` рангов-потоков."""

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("size must be >= 1")
        self.size = size
        self._barrier = threading.Barrier(size)
        self._slots: List[Optional[bytes]] = [None] * size

    def communicator(self, rank: int) -> "ThreadCommunicator":
        return ThreadCommunicator(self, rank)

    def abort(self) -> None:
        """Разблокирует все ждущие ранги (они получат CollectiveAborted)."""
        self._barrier.abort()

    def wait(self) -> None:
        try:
            self._barrier.wait()
        except threading.BrokenBarrierError:
            raise CollectiveAborted("Collective operation aborted by a failed rank") from None


class ThreadCommunicator(Communicator):
    """Коллективный канал одного ранга внутри ``ThreadGroup``."""

    def __init__(self, group: ThreadGroup, rank: int) -> None:
        if not 0 <= rank < group.size:
            raise ValueError(f"rank {rank} out of range for group of {group.size}")
        self._group = group
        self.rank = rank
        self.size = group.size

    # Каждая операция: запись -> барьер -> чтение -> барьер.
    # Второй барьер не даёт следующей операции перезаписать слоты,
    # пока кто-то ещё читает.

    def bcast(self, obj: Any, root: int = 0) -> Any:
        slots = self._group._slots
        if self.rank == root:
            slots[root] = pickle.dumps(obj)
        self._group.wait()
        data = slots[root]
        self._group.wait()
        return pickle.loads(data)

    def scatter(self, chunks: Optional[Sequence[Any]], root: int = 0) -> Any:
        slots = self._group._slots
        if self.rank == root:
            chunks = self._check_chunks(chunks)
            for r, chunk in enumerate(chunks):
                slots[r] = pickle.dumps(chunk)
        self._group.wait()
        data = slots[self.rank]
        self._group.wait()
        return pickle.loads(data)

    def gather(self, obj: Any, root: int = 0) -> Optional[List[Any]]:
        slots = self._group._slots
        slots[self.rank] = pickle.dumps(obj)
        self._group.wait()
        data = list(slots) if self.rank == root else None
        self._group.wait()
        if data is None:
            return None
        return [pickle.loads(item) for item in data]


def run_in_threads(
    size: int,
    target: Callable[..., Any],
    args: Sequence[Any] = (),
    root_args: Optional[Sequence[Any]] = None,
) -> List[Any]:
    """
    Запускает ``target(comm, *args)`` в ``size`` потоках, по одному на ранг.

    Ранг 0 получает ``root_args`` (если заданы) вместо ``args``.
    Если какой-либо ранг падает, группа прерывается, и исключение
    первого упавшего ранга пробрасывается вызывающему.

    Returns:
        Список результатов ``target`` в порядке рангов.
    """
    group = ThreadGroup(size)
    results: List[Any] = [None] * size
    errors: List[Optional[BaseException]] = [None] * size

    def _entry(rank: int) -> None:
        comm = group.communicator(rank)
        call_args = root_args if rank == 0 and root_args is not None else args
        try:
            results[rank] = target(comm, *call_args)
        except BaseException as exc:  # noqa: BLE001
            errors[rank] = exc
            group.abort()

    threads = [
        threading.Thread(target=_entry, args=(rank,), name=f"dkmeans-rank-{rank}")
        for rank in range(size)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    failures = [(rank, exc) for rank, exc in enumerate(errors) if exc is not None]
    if failures:
        # Первопричина важнее ранков, прерванных вслед за ней
        primary = [f for f in failures if not isinstance(f[1], CollectiveAborted)]
        rank, exc = (primary or failures)[0]
        logger.error(f"Rank {rank} failed: {exc!r}")
        raise exc

    return results
