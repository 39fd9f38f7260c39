import logging
from typing import Any, MutableMapping, Tuple

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"


def setup_logger(level: int = logging.INFO, name: str = "dkmeans") -> logging.Logger:
    """
    Настраивает логгер пакета: один потоковый обработчик, без всплытия в root.

    Повторный вызов только меняет уровень; дочерние логгеры
    (``dkmeans.*``) пишут через тот же обработчик.

    :param level: минимальный уровень логирования
    :param name: имя логгера пакета
    :return: настроенный экземпляр :class:`logging.Logger`
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def format_run_prefix(rank: int, size: int, k: int, d: int) -> str:
    """
    Формирует текстовый префикс для логов конкретного воркера.

    Ранги нумеруются с нуля, ранг 0 — координатор.
    """
    return f"[rank={rank}/{size} k={k} d={d}]"


class RankLogger(logging.LoggerAdapter):
    """Адаптер, добавляющий префикс ранга к каждому сообщению."""

    def __init__(self, logger: logging.Logger, prefix: str) -> None:
        super().__init__(logger, {"rank_prefix": prefix})

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[str, MutableMapping[str, Any]]:
        return f"{self.extra['rank_prefix']} {msg}", kwargs
