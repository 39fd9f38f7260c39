"""
Таймеры для замера фаз поколения.

``Timer`` — контекстный менеджер на ``time.perf_counter()``;
``PhaseTimings`` накапливает суммарное время по фазам за один запуск.
"""
from __future__ import annotations

import time
from collections import defaultdict
from typing import Any, Dict, Iterator
from contextlib import contextmanager


class Timer:
    """
    Контекстный менеджер для измерения времени выполнения кода.

    Пример использования:
        with Timer() as t:
            ...
        elapsed_time = t.elapsed
    """

    def __init__(self) -> None:
        self.start: float = 0.0
        self.end: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> Timer:
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.end = time.perf_counter()
        self.elapsed = self.end - self.start


class PhaseTimings:
    """Суммарное время по именованным фазам (assign, aggregate, sync, ...)."""

    def __init__(self) -> None:
        self._totals: Dict[str, float] = defaultdict(float)
        self.last: Dict[str, float] = {}

    @contextmanager
    def measure(self, phase: str) -> Iterator[Timer]:
        timer = Timer()
        with timer:
            yield timer
        self._totals[phase] += timer.elapsed
        self.last[phase] = timer.elapsed

    def total(self, phase: str) -> float:
        return self._totals.get(phase, 0.0)
