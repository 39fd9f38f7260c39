"""
Иерархия исключений распределённого K-means.

Несходимость за отведённое число поколений ошибкой не считается:
это терминальное состояние ``RunState.CAPPED``.
"""

from __future__ import annotations


class KMeansError(Exception):
    """Базовое исключение пакета."""


class ConfigurationError(KMeansError, ValueError):
    """Некорректные параметры запуска (k > n, P < 1 и т.п.)."""


class PartitionError(KMeansError):
    """Шард воркера не соответствует ожидаемому разбиению."""


class CollectiveAborted(KMeansError):
    """Коллективная операция прервана из-за сбоя другого воркера."""
