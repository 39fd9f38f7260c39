"""
Канал поверх ``multiprocessing``: по одному процессу на ранг.

У каждого ранга есть входящая очередь. Сообщения помечаются номером
коллективной операции и рангом отправителя, поэтому порядок прихода
сообщений от разных рангов не важен. Общий ``Event`` выставляется рангом,
который упал, после того как он отправил своё исключение в общую очередь
ошибок; остальные, обнаружив событие при ожидании, получают
``CollectiveAborted``.
"""

from __future__ import annotations

import logging
import multiprocessing
import pickle
import queue
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from dkmeans.collective.base import Communicator
from dkmeans.errors import CollectiveAborted, KMeansError

logger = logging.getLogger("dkmeans")


class ProcessCommunicator(Communicator):
    """Коллективный канал одного ранга-процесса."""

    def __init__(
        self,
        rank: int,
        inboxes: Sequence[Any],
        abort_event: Any,
        poll_interval: float = 0.1,
    ) -> None:
        self.rank = rank
        self.size = len(inboxes)
        self._inboxes = inboxes
        self._abort = abort_event
        self._poll = poll_interval
        self._seq = 0
        self._pending: Dict[Tuple[int, int], Any] = {}

    def _send(self, dest: int, payload: Any) -> None:
        self._inboxes[dest].put((self._seq, self.rank, payload))

    def _recv(self, src: int) -> Any:
        key = (self._seq, src)
        while key not in self._pending:
            try:
                seq, sender, payload = self._inboxes[self.rank].get(timeout=self._poll)
            except queue.Empty:
                if self._abort.is_set():
                    raise CollectiveAborted(
                        f"Rank {self.rank}: collective operation aborted by a failed rank"
                    ) from None
                continue
            self._pending[(seq, sender)] = payload
        return self._pending.pop(key)

    def bcast(self, obj: Any, root: int = 0) -> Any:
        if self.rank == root:
            for dest in range(self.size):
                if dest != root:
                    self._send(dest, obj)
            result = obj
        else:
            result = self._recv(root)
        self._seq += 1
        return result

    def scatter(self, chunks: Optional[Sequence[Any]], root: int = 0) -> Any:
        if self.rank == root:
            chunks = self._check_chunks(chunks)
            for dest in range(self.size):
                if dest != root:
                    self._send(dest, chunks[dest])
            result = chunks[root]
        else:
            result = self._recv(root)
        self._seq += 1
        return result

    def gather(self, obj: Any, root: int = 0) -> Optional[List[Any]]:
        if self.rank == root:
            result: Optional[List[Any]] = [
                obj if src == root else self._recv(src) for src in range(self.size)
            ]
        else:
            self._send(root, obj)
            result = None
        self._seq += 1
        return result


def _portable(exc: BaseException) -> BaseException:
    # Исключение должно пережить pickle, иначе очередь молча его потеряет
    try:
        pickle.loads(pickle.dumps(exc))
    except Exception:
        return KMeansError(f"{type(exc).__name__}: {exc}")
    return exc


def _process_entry(
    rank: int,
    inboxes: Sequence[Any],
    failures: Any,
    abort_event: Any,
    target: Callable[..., Any],
    args: Sequence[Any],
) -> None:
    """Точка входа дочернего процесса (должна быть доступна для pickle)."""
    comm = ProcessCommunicator(rank, inboxes, abort_event)
    try:
        target(comm, *args)
    except BaseException as exc:
        # Сначала причина, потом сигнал: координатор прочитает её после join
        failures.put((rank, _portable(exc)))
        abort_event.set()
        raise


def run_in_processes(
    size: int,
    target: Callable[..., Any],
    args: Sequence[Any] = (),
    root_args: Optional[Sequence[Any]] = None,
    join_timeout: float = 5.0,
) -> Any:
    """
    Запускает ``target(comm, *args)`` в ``size`` рангах.

    Ранги 1..size-1 — дочерние процессы, ранг 0 (координатор) выполняется
    в текущем процессе и получает ``root_args``, если они заданы.
    ``target`` должен быть функцией уровня модуля.

    Упавший дочерний ранг отправляет своё исключение координатору; как и
    в ``run_in_threads``, вызывающему пробрасывается первая настоящая
    причина, а не ``CollectiveAborted`` рангов, прерванных вслед за ней.

    Returns:
        Результат ``target`` на ранге 0.
    """
    if size < 1:
        raise ValueError("size must be >= 1")

    ctx = multiprocessing.get_context()
    inboxes = [ctx.Queue() for _ in range(size)]
    failures_queue = ctx.Queue()
    abort_event = ctx.Event()

    procs = [
        ctx.Process(
            target=_process_entry,
            args=(rank, inboxes, failures_queue, abort_event, target, tuple(args)),
            name=f"dkmeans-rank-{rank}",
        )
        for rank in range(1, size)
    ]
    for p in procs:
        p.start()

    comm = ProcessCommunicator(0, inboxes, abort_event)
    call_args = root_args if root_args is not None else args
    try:
        result = target(comm, *call_args)
    except BaseException as exc:
        abort_event.set()
        _join_all(procs, join_timeout)
        raise _primary([(0, exc)] + _drain(failures_queue))

    _join_all(procs, None)
    failures = _drain(failures_queue)
    if failures:
        raise _primary(failures)
    failed = [(p.name, p.exitcode) for p in procs if p.exitcode != 0]
    if failed:
        raise KMeansError(f"Worker processes exited abnormally: {failed}")
    return result


def _drain(failures_queue: Any) -> List[Tuple[int, BaseException]]:
    failures: List[Tuple[int, BaseException]] = []
    while True:
        try:
            failures.append(failures_queue.get(timeout=0.1))
        except queue.Empty:
            return failures


def _primary(failures: Sequence[Tuple[int, BaseException]]) -> BaseException:
    primary = [f for f in failures if not isinstance(f[1], CollectiveAborted)]
    rank, exc = (primary or failures)[0]
    logger.error(f"Rank {rank} failed: {exc!r}")
    return exc


def _join_all(procs: Sequence[Any], timeout: Optional[float]) -> None:
    for p in procs:
        p.join(timeout)
        if p.is_alive():
            logger.warning(f"Terminating stalled worker process {p.name}")
            p.terminate()
            p.join()
