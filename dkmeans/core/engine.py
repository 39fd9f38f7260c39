"""
Распределённый KMeans: цикл поколений поверх коллективного канала.

Все ``P`` рангов вызывают :meth:`DistributedKMeans.fit` одновременно и
проходят одни и те же точки синхронизации в одном порядке:

    шарды -> начальные центроиды -> [назначение -> сбор -> рассылка]* -> итоги

Координатор (ранг 0) владеет полным датасетом и авторитетными
центроидами. Каждый ранг ведёт собственный ``ConvergenceController`` на
побайтно одинаковых центроидах, поэтому все ранги останавливаются на
одном поколении без дополнительных сообщений.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np

from dkmeans.collective.base import Communicator
from dkmeans.collective.local import run_in_threads
from dkmeans.collective.process import run_in_processes
from dkmeans.core.aggregation import CentroidAggregator
from dkmeans.core.assignment import AssignmentEngine
from dkmeans.core.collect import ClusteringResult, ResultCollector
from dkmeans.core.convergence import ConvergenceController, RunState
from dkmeans.core.distance import DistanceMetric, get_metric
from dkmeans.core.element import KMeansConfig, as_elements, validate_run
from dkmeans.core.partition import Partitioner
from dkmeans.core.selection import CentroidSelector, RandomSampleSelector
from dkmeans.core.sync import CentroidSynchronizer
from dkmeans.errors import ConfigurationError, PartitionError
from dkmeans.metrics.timers import PhaseTimings
from dkmeans.utils.logging import RankLogger, format_run_prefix


class DistributedKMeans:
    """
    K-Means с раздачей данных по воркерам и синхронными раундами агрегации.

    Метрика расстояния и стратегия выбора начальных центроидов подключаются
    через конструктор. После ``fit`` на координаторе доступны
    ``centroids``, ``state``, ``generations`` и тайминги фаз.
    """

    def __init__(
        self,
        config: KMeansConfig,
        metric: Optional[DistanceMetric] = None,
        selector: Optional[CentroidSelector] = None,
        logger: Any | None = None,
    ) -> None:
        config.validate()
        self.config = config
        self.domain = config.domain
        self.metric = metric if metric is not None else get_metric(config.metric)
        self.selector = selector if selector is not None else RandomSampleSelector(config.seed)
        self.logger = logger or logging.getLogger("dkmeans")

        self.centroids: np.ndarray | None = None
        self.state: RunState = RunState.INITIALIZING
        self.generations: int = 0

        self.t_assign_total: float = 0.0
        self.t_aggregate_total: float = 0.0
        self.t_sync_total: float = 0.0

    def fit(
        self,
        comm: Communicator,
        dataset: np.ndarray | None = None,
    ) -> Optional[ClusteringResult]:
        """
        Работа одного ранга.

        Координатор передаёт ``dataset``, остальные ранги — ``None``.

        Returns:
            ``ClusteringResult`` на координаторе, ``None`` на других рангах.
        """
        cfg = self.config
        if comm.size != cfg.n_workers:
            raise ConfigurationError(
                f"Communicator has {comm.size} ranks, config expects {cfg.n_workers}"
            )
        log = RankLogger(
            self.logger, format_run_prefix(comm.rank, comm.size, cfg.n_clusters, cfg.n_dims)
        )

        if comm.is_root:
            if dataset is None:
                raise ValueError("Coordinator must be given the dataset")
            dataset = as_elements(dataset, self.domain.dtype)
            validate_run(dataset, cfg)
            log.info(
                f"Starting run: n={dataset.shape[0]}, P={comm.size}, "
                f"metric={getattr(self.metric, 'name', type(self.metric).__name__)}, "
                f"max_generations={cfg.max_generations}"
            )

        timings = PhaseTimings()
        controller = ConvergenceController(cfg.max_generations)

        shard = Partitioner(log).scatter(comm, dataset)
        engine = AssignmentEngine(shard, cfg.n_clusters, self.metric, self.domain)
        sync = CentroidSynchronizer(cfg.n_clusters, cfg.n_dims, self.domain, log)
        aggregator = CentroidAggregator(self.domain, log)

        initial = self.selector.select(dataset, cfg.n_clusters) if comm.is_root else None
        with timings.measure("sync"):
            centroids = sync.broadcast(comm, initial)
        controller.start()

        while not controller.finished:
            previous = centroids
            with timings.measure("assign"):
                engine.step(centroids)
            with timings.measure("aggregate"):
                merged = aggregator.combine(comm, engine.partial_report(), centroids)
            if merged is not None:
                self._check_counts(aggregator.last_counts, dataset.shape[0])
            with timings.measure("sync"):
                centroids = sync.broadcast(comm, merged)
            state = controller.observe(previous, centroids)

            gen = controller.generation
            if comm.is_root and (gen == 1 or gen % 10 == 0 or controller.finished):
                status = f" ({state.value})" if controller.finished else ""
                log.info(
                    f"  Generation {gen}/{cfg.max_generations}{status} "
                    f"(T_assign={timings.last['assign']:.6f}s, "
                    f"T_aggregate={timings.last['aggregate']:.6f}s, "
                    f"T_sync={timings.last['sync']:.6f}s)"
                )
            else:
                log.debug(f"generation {gen} done, state={state.value}")

        clusters = ResultCollector(log).collect(comm, engine, centroids)
        # Шард и таблица расстояний больше не нужны
        del engine, shard

        if not comm.is_root:
            return None

        self.centroids = centroids
        self.state = controller.state
        self.generations = controller.generation
        self.t_assign_total = timings.total("assign")
        self.t_aggregate_total = timings.total("aggregate")
        self.t_sync_total = timings.total("sync")

        if self.state is RunState.CAPPED:
            log.warning(
                f"No convergence after {self.generations} generations, "
                f"keeping the last broadcast centroids"
            )
        else:
            log.info(f"Convergence reached after {self.generations} generations")

        return ClusteringResult(
            clusters=clusters,
            state=self.state,
            generations=self.generations,
            t_assign_total=self.t_assign_total,
            t_aggregate_total=self.t_aggregate_total,
            t_sync_total=self.t_sync_total,
        )

    @staticmethod
    def _check_counts(counts: np.ndarray | None, n: int) -> None:
        total = int(counts.sum()) if counts is not None else -1
        if total != n:
            raise PartitionError(f"Clusters hold {total} elements, dataset has {n}")


def _fit_rank(
    comm: Communicator,
    model: DistributedKMeans,
    dataset: np.ndarray | None,
) -> Optional[ClusteringResult]:
    return model.fit(comm, dataset)


def run_threads(
    dataset: np.ndarray,
    config: KMeansConfig,
    metric: Optional[DistanceMetric] = None,
    selector: Optional[CentroidSelector] = None,
    logger: Any | None = None,
) -> ClusteringResult:
    """Запуск на ``config.n_workers`` потоках внутри текущего процесса."""
    dataset = as_elements(dataset, config.dtype)
    validate_run(dataset, config)
    model = DistributedKMeans(config, metric=metric, selector=selector, logger=logger)
    results = run_in_threads(
        config.n_workers, _fit_rank, args=(model, None), root_args=(model, dataset)
    )
    return results[0]


def run_processes(
    dataset: np.ndarray,
    config: KMeansConfig,
    metric: Optional[DistanceMetric] = None,
    selector: Optional[CentroidSelector] = None,
    logger: Any | None = None,
) -> ClusteringResult:
    """Запуск на ``config.n_workers`` процессах (координатор — текущий процесс)."""
    dataset = as_elements(dataset, config.dtype)
    validate_run(dataset, config)
    model = DistributedKMeans(config, metric=metric, selector=selector, logger=logger)
    return run_in_processes(
        config.n_workers, _fit_rank, args=(model, None), root_args=(model, dataset)
    )
