"""
Командная строка распределённого K-means.

Режимы:
1. ``generate`` — синтетический датасет в текстовом формате
2. ``run`` — кластеризация датасета на P воркерах
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dkmeans.core.collect import ClusteringResult
from dkmeans.core.element import KMeansConfig
from dkmeans.core.engine import DistributedKMeans, run_processes, run_threads
from dkmeans.core.selection import (
    CentroidSelector,
    FirstKSelector,
    FixedSelector,
    RandomSampleSelector,
)
from dkmeans.data.dataset import Dataset
from dkmeans.data.synthetic import generate_blobs, save_dataset_txt
from dkmeans.metrics.metrics import cluster_sizes, inertia, purity, throughput
from dkmeans.utils.logging import setup_logger

BACKENDS = ("threads", "processes", "mpi")


def run_generate(args: argparse.Namespace, logger: logging.Logger) -> None:
    generated = generate_blobs(
        N=args.n, D=args.d, K=args.k, cluster_std=args.cluster_std, seed=args.seed
    )
    path = save_dataset_txt(generated, args.output)
    logger.info(f"Dataset N={args.n} D={args.d} K={args.k} saved to {path}")


def _make_selector(args: argparse.Namespace, dataset: Dataset) -> CentroidSelector:
    if args.init == "file":
        if dataset.initial_centroids is None:
            raise SystemExit("Dataset file has no initial centroids, use --init random")
        return FixedSelector(dataset.initial_centroids)
    if args.init == "first":
        return FirstKSelector()
    return RandomSampleSelector(args.seed)


def _make_config(args: argparse.Namespace, dataset: Dataset, n_workers: int) -> KMeansConfig:
    k = args.k or dataset.dataset_info.get("K")
    if not k:
        raise SystemExit("Number of clusters is unknown, pass -k")
    return KMeansConfig(
        n_clusters=int(k),
        n_dims=dataset.d,
        n_workers=n_workers,
        max_generations=args.max_generations,
        metric=args.metric,
        dtype=str(dataset.X.dtype),
        seed=args.seed,
    )


def _report(
    result: ClusteringResult,
    dataset: Dataset,
    logger: logging.Logger,
    output: str | None,
) -> None:
    labels = result.labels(dataset.n)
    k = len(result.clusters)
    sizes = cluster_sizes(labels, k)
    summary: dict[str, Any] = result.to_dict()
    summary["inertia"] = inertia(dataset.X, labels, result.centroids)
    summary["cluster_sizes"] = sizes.tolist()
    total_time = result.t_assign_total + result.t_aggregate_total + result.t_sync_total
    if total_time > 0:
        summary["throughput"] = throughput(dataset.n, k, dataset.d, result.generations, total_time)
    if dataset.labels_true is not None:
        summary["purity"] = purity([c.members for c in result.clusters], dataset.labels_true)

    logger.info(
        f"Finished: state={result.state.value}, generations={result.generations}, "
        f"inertia={summary['inertia']:.2f}"
    )
    for j, cluster in enumerate(result.clusters):
        logger.info(f"  cluster {j}: size={sizes[j]} centroid[:4]={cluster.centroid[:4].tolist()}")

    if output:
        with open(output, "w", encoding="utf-8") as f:
            json.dump(summary, f, ensure_ascii=False)
        logger.info(f"Result saved to {output}")


def run_clustering(args: argparse.Namespace, logger: logging.Logger) -> None:
    if args.backend == "mpi":
        _run_mpi(args, logger)
        return

    dataset = Dataset(args.data)
    config = _make_config(args, dataset, args.workers)
    selector = _make_selector(args, dataset)
    launcher = run_threads if args.backend == "threads" else run_processes
    result = launcher(dataset.X, config, selector=selector, logger=logger)
    _report(result, dataset, logger, args.output)


def _run_mpi(args: argparse.Namespace, logger: logging.Logger) -> None:
    from dkmeans.collective.mpi import MPICommunicator

    comm = MPICommunicator()
    dataset = None
    payload = None
    if comm.is_root:
        dataset = Dataset(args.data)
        payload = (_make_config(args, dataset, comm.size), _make_selector(args, dataset))
    # Конфигурация известна только координатору, остальные получают её рассылкой
    config, selector = comm.bcast(payload)

    model = DistributedKMeans(config, selector=selector, logger=logger)
    result = model.fit(comm, dataset.X if dataset is not None else None)
    if result is not None:
        _report(result, dataset, logger, args.output)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Распределённая кластеризация K-means",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры использования:

  # Синтетический датасет
  python -m dkmeans.main generate --n 10000 --d 8 --k 5 --output datasets/blobs.txt

  # Кластеризация на 4 процессах
  python -m dkmeans.main run --data datasets/blobs.txt --workers 4 --backend processes

  # Запуск под MPI
  mpiexec -n 4 python -m dkmeans.main run --data datasets/blobs.txt --backend mpi
        """,
    )
    parser.add_argument("--verbose", action="store_true", help="Подробный (DEBUG) лог")

    subparsers = parser.add_subparsers(dest="mode", help="Режим работы")

    gen_parser = subparsers.add_parser("generate", help="Генерация синтетического датасета")
    gen_parser.add_argument("--n", type=int, default=10_000, help="Количество точек")
    gen_parser.add_argument("--d", type=int, default=8, help="Размерность")
    gen_parser.add_argument("--k", type=int, default=5, help="Количество кластеров")
    gen_parser.add_argument("--cluster-std", type=float, default=1.0)
    gen_parser.add_argument("--seed", type=int, default=42)
    gen_parser.add_argument("--output", type=str, required=True, help="Путь к файлу датасета")

    run_parser = subparsers.add_parser("run", help="Кластеризация датасета")
    run_parser.add_argument("--data", type=str, required=True, help="Путь к файлу датасета")
    run_parser.add_argument("-k", type=int, default=None, help="Количество кластеров (по умолчанию K из метаданных)")
    run_parser.add_argument("--workers", type=int, default=2, help="Количество воркеров P")
    run_parser.add_argument("--backend", choices=BACKENDS, default="processes")
    run_parser.add_argument("--max-generations", type=int, default=300)
    run_parser.add_argument("--metric", type=str, default="euclidean")
    run_parser.add_argument("--init", choices=("random", "first", "file"), default="random")
    run_parser.add_argument("--seed", type=int, default=None)
    run_parser.add_argument("--output", type=str, default=None, help="JSON с результатом")

    args = parser.parse_args(argv)
    logger = setup_logger(logging.DEBUG if args.verbose else logging.INFO)

    if args.mode == "generate":
        run_generate(args, logger)
    elif args.mode == "run":
        if args.output:
            Path(args.output).parent.mkdir(parents=True, exist_ok=True)
        run_clustering(args, logger)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
