from __future__ import annotations

from enum import Enum

import numpy as np


class RunState(str, Enum):
    INITIALIZING = "initializing"
    ITERATING = "iterating"
    CONVERGED = "converged"
    CAPPED = "capped"


class ConvergenceController:
    """
    Конечный автомат цикла поколений:
    INITIALIZING -> ITERATING -> CONVERGED | CAPPED.

    Первое поколение выполняется всегда: проверка неподвижной точки
    делается только после рассылки новых центроидов. Достижение лимита
    поколений — штатное завершение (best effort), а не ошибка.
    """

    def __init__(self, max_generations: int = 300) -> None:
        if max_generations < 1:
            raise ValueError("max_generations must be >= 1")
        self.max_generations = max_generations
        self.state = RunState.INITIALIZING
        self.generation = 0

    def start(self) -> None:
        if self.state is not RunState.INITIALIZING:
            raise RuntimeError(f"Cannot start from state {self.state.value}")
        self.state = RunState.ITERATING

    @property
    def finished(self) -> bool:
        return self.state in (RunState.CONVERGED, RunState.CAPPED)

    def observe(self, previous: np.ndarray, current: np.ndarray) -> RunState:
        """Учитывает завершённое поколение и возвращает новое состояние."""
        if self.state is not RunState.ITERATING:
            raise RuntimeError(f"Cannot observe a generation in state {self.state.value}")
        self.generation += 1
        if np.array_equal(previous, current):
            self.state = RunState.CONVERGED
        elif self.generation >= self.max_generations:
            self.state = RunState.CAPPED
        return self.state
