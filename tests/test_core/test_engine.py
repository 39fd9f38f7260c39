"""
Интеграционные тесты распределённого K-means (потоки и процессы).
"""

import numpy as np
import pytest

from dkmeans.collective.local import run_in_threads
from dkmeans.core.distance import EuclideanDistance, ManhattanDistance
from dkmeans.core.element import KMeansConfig, as_elements
from dkmeans.core.engine import DistributedKMeans, run_processes, run_threads
from dkmeans.core.convergence import RunState
from dkmeans.core.selection import FirstKSelector, FixedSelector
from dkmeans.errors import ConfigurationError


def sorted_clusters(result):
    """Кластеры, упорядоченные по первой координате центроида."""
    return sorted(result.clusters, key=lambda c: c.centroid.tolist())


def assert_exact_cover(result, n):
    """Каждый элемент датасета ровно в одном кластере."""
    ids = np.concatenate([np.asarray(c.members, dtype=np.int64) for c in result.clusters])
    assert ids.size == n
    np.testing.assert_array_equal(np.sort(ids), np.arange(n))


class TestTwoGroupsExample:
    """Пример из 8 одномерных элементов, k=2, P=2."""

    def test_converges_within_two_generations(self, two_groups):
        config = KMeansConfig(n_clusters=2, n_dims=1, n_workers=2)
        result = run_threads(two_groups, config, selector=FixedSelector([[2], [101]]))

        assert result.state is RunState.CONVERGED
        assert result.generations <= 2

        low, high = sorted_clusters(result)
        # средние с отбрасыванием дроби после каждого шага: около 1 и 102
        assert abs(int(low.centroid[0]) - 1) <= 1
        assert abs(int(high.centroid[0]) - 102) <= 2
        assert sorted(low.members) == [0, 1, 2, 3]
        assert sorted(high.members) == [4, 5, 6, 7]

    @pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
    def test_random_initialization(self, two_groups, seed):
        config = KMeansConfig(n_clusters=2, n_dims=1, n_workers=2, seed=seed)
        result = run_threads(two_groups, config)

        assert result.converged
        low, high = sorted_clusters(result)
        assert sorted(low.members) == [0, 1, 2, 3]
        assert sorted(high.members) == [4, 5, 6, 7]

    def test_both_seeds_in_one_group(self, two_groups):
        """Оба начальных центроида из первой группы: сходимость за 3 поколения."""
        config = KMeansConfig(n_clusters=2, n_dims=1, n_workers=2)
        result = run_threads(two_groups, config, selector=FirstKSelector())

        # [0, 1] -> [0, 57] -> [0, 100] -> [0, 100]
        assert result.state is RunState.CONVERGED
        assert result.generations == 3
        assert result.centroids.tolist() == [[0], [100]]


class TestSingleCluster:
    def test_first_generation_reaches_mean(self):
        """k=1: уже первый раунд даёт среднее по всему датасету."""
        data = as_elements([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], "float64")
        config = KMeansConfig(
            n_clusters=1, n_dims=1, n_workers=2, dtype="float64", max_generations=1
        )
        result = run_threads(data, config, selector=FirstKSelector())

        assert result.generations == 1
        assert result.centroids[0, 0] == pytest.approx(3.5)

    def test_full_run_confirms_mean(self):
        data = as_elements([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], "float64")
        config = KMeansConfig(n_clusters=1, n_dims=1, n_workers=2, dtype="float64")
        result = run_threads(data, config, selector=FirstKSelector())

        # второй раунд лишь подтверждает неподвижную точку
        assert result.state is RunState.CONVERGED
        assert result.generations == 2
        assert result.centroids[0, 0] == pytest.approx(3.5)
        assert sorted(result.clusters[0].members) == list(range(6))


class TestGenerationCap:
    def test_oscillation_is_capped(self, farthest_metric):
        """Метрика «дальний центроид» раскачивает центроиды бесконечно."""
        data = as_elements([0, 10])
        config = KMeansConfig(n_clusters=2, n_dims=1, n_workers=2, max_generations=7)
        result = run_threads(data, config, metric=farthest_metric, selector=FirstKSelector())

        assert result.state is RunState.CAPPED
        assert result.generations == 7
        assert not result.converged
        assert_exact_cover(result, 2)

    def test_oscillation_single_worker(self, farthest_metric):
        data = as_elements([0, 10])
        config = KMeansConfig(n_clusters=2, n_dims=1, n_workers=1, max_generations=4)
        result = run_threads(data, config, metric=farthest_metric, selector=FirstKSelector())

        assert result.state is RunState.CAPPED
        assert result.generations == 4
        # после чётного числа поколений центроиды вернулись к исходным
        assert result.centroids.tolist() == [[0], [10]]


class TestInvariants:
    @pytest.mark.parametrize("n_workers", [1, 2, 3, 5])
    def test_every_element_assigned_once(self, small_blobs, n_workers):
        config = KMeansConfig(n_clusters=3, n_dims=2, n_workers=n_workers, seed=11)
        result = run_threads(small_blobs, config)

        assert_exact_cover(result, small_blobs.shape[0])
        assert sum(len(c) for c in result.clusters) == small_blobs.shape[0]

    def test_assignment_is_nearest_centroid(self, small_blobs):
        """После сходимости каждый элемент принадлежит ближайшему центроиду."""
        config = KMeansConfig(n_clusters=3, n_dims=2, n_workers=3)
        result = run_threads(
            small_blobs, config, selector=FixedSelector([[30, 30], [128, 200], [220, 60]])
        )
        assert result.converged

        labels = result.labels(small_blobs.shape[0])
        dist = EuclideanDistance().table(small_blobs, result.centroids)
        np.testing.assert_array_equal(labels, np.argmin(dist, axis=1))

    def test_recovers_blob_structure(self, small_blobs):
        config = KMeansConfig(n_clusters=3, n_dims=2, n_workers=2)
        result = run_threads(
            small_blobs, config, selector=FixedSelector([[30, 30], [128, 200], [220, 60]])
        )
        for j, cluster in enumerate(result.clusters):
            assert sorted(cluster.members) == list(range(40 * j, 40 * (j + 1)))

    def test_float_results_match_across_worker_counts(self, float_blobs):
        init = FixedSelector(float_blobs[[0, 59]])
        results = [
            run_threads(
                float_blobs,
                KMeansConfig(n_clusters=2, n_dims=3, n_workers=p, dtype="float64"),
                selector=init,
            )
            for p in (1, 4)
        ]
        np.testing.assert_allclose(results[0].centroids, results[1].centroids, atol=1e-9)
        assert [sorted(c.members) for c in results[0].clusters] == [
            sorted(c.members) for c in results[1].clusters
        ]

    def test_pluggable_metric(self, small_blobs):
        config = KMeansConfig(n_clusters=3, n_dims=2, n_workers=2, metric="manhattan")
        model_metric = DistributedKMeans(config).metric
        assert isinstance(model_metric, ManhattanDistance)

        result = run_threads(
            small_blobs, config, selector=FixedSelector([[30, 30], [128, 200], [220, 60]])
        )
        assert result.converged
        assert_exact_cover(result, small_blobs.shape[0])

    def test_timings_collected(self, small_blobs):
        config = KMeansConfig(n_clusters=3, n_dims=2, n_workers=2, seed=3)
        result = run_threads(small_blobs, config)

        assert result.t_assign_total > 0
        assert result.t_aggregate_total > 0
        assert result.t_sync_total > 0
        record = result.to_dict()
        assert record["state"] == result.state.value
        assert sum(c["size"] for c in record["clusters"]) == small_blobs.shape[0]


class TestConfigurationErrors:
    """Ошибки конфигурации выявляются до коллективных операций."""

    def test_k_greater_than_n(self, two_groups):
        config = KMeansConfig(n_clusters=9, n_dims=1, n_workers=2)
        with pytest.raises(ConfigurationError):
            run_threads(two_groups, config)

    def test_more_workers_than_elements(self, two_groups):
        config = KMeansConfig(n_clusters=2, n_dims=1, n_workers=9)
        with pytest.raises(ConfigurationError):
            run_threads(two_groups, config)

    @pytest.mark.parametrize("values", [[[0.0], [10.0], [300.0], [310.0]], [[-3], [0], [10], [20]]])
    def test_values_outside_element_domain(self, values):
        """Значения вне 0..255 не заворачиваются молча в uint8."""
        config = KMeansConfig(n_clusters=2, n_dims=1, n_workers=2)
        with pytest.raises(ConfigurationError):
            run_threads(np.array(values), config, selector=FirstKSelector())

    def test_dimension_mismatch(self, two_groups):
        config = KMeansConfig(n_clusters=2, n_dims=3, n_workers=2)
        with pytest.raises(ConfigurationError):
            run_threads(two_groups, config)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"n_workers": 0},
            {"n_clusters": 0},
            {"max_generations": 0},
            {"metric": "cosine"},
            {"dtype": "not-a-dtype"},
            {"dtype": "bool"},
        ],
    )
    def test_invalid_config(self, kwargs):
        params = {"n_clusters": 2, "n_dims": 1, "n_workers": 2, **kwargs}
        with pytest.raises(ConfigurationError):
            KMeansConfig(**params).validate()

    def test_communicator_size_mismatch(self, two_groups):
        model = DistributedKMeans(KMeansConfig(n_clusters=2, n_dims=1, n_workers=3))
        with pytest.raises(ConfigurationError):
            run_in_threads(2, model.fit, args=(None,), root_args=(two_groups,))


class _FailingMetric(EuclideanDistance):
    """Падает на элементах со значением 200 (они есть только в последнем шарде)."""

    def table(self, points, centroids):
        if np.any(points == 200):
            raise ArithmeticError("bad element")
        return super().table(points, centroids)


class TestFailurePropagation:
    def test_worker_error_aborts_run(self):
        data = as_elements([0, 1, 2, 3, 200, 201])
        config = KMeansConfig(n_clusters=2, n_dims=1, n_workers=2)
        with pytest.raises(ArithmeticError):
            run_threads(data, config, metric=_FailingMetric(), selector=FirstKSelector())

    def test_worker_error_reaches_caller_from_process(self):
        """Причина падения дочернего процесса видна вызывающему, а не CollectiveAborted."""
        data = as_elements([0, 1, 2, 3, 200, 201])
        config = KMeansConfig(n_clusters=2, n_dims=1, n_workers=2)
        with pytest.raises(ArithmeticError, match="bad element"):
            run_processes(data, config, metric=_FailingMetric(), selector=FirstKSelector())


class TestProcessBackend:
    """Тот же алгоритм поверх multiprocessing."""

    def test_two_groups_processes(self, two_groups):
        config = KMeansConfig(n_clusters=2, n_dims=1, n_workers=2)
        result = run_processes(two_groups, config, selector=FixedSelector([[2], [101]]))

        assert result.state is RunState.CONVERGED
        low, high = sorted_clusters(result)
        assert sorted(low.members) == [0, 1, 2, 3]
        assert sorted(high.members) == [4, 5, 6, 7]

    def test_matches_thread_backend(self, small_blobs):
        config = KMeansConfig(n_clusters=3, n_dims=2, n_workers=3)
        init = FixedSelector([[30, 30], [128, 200], [220, 60]])

        threaded = run_threads(small_blobs, config, selector=init)
        forked = run_processes(small_blobs, config, selector=init)

        np.testing.assert_array_equal(threaded.centroids, forked.centroids)
        assert threaded.generations == forked.generations

    def test_coordinator_error_stops_workers(self, two_groups):
        config = KMeansConfig(n_clusters=2, n_dims=1, n_workers=2)
        with pytest.raises(ValueError):
            # неверная форма центроидов: падает только координатор
            run_processes(two_groups, config, selector=FixedSelector([[1, 2], [3, 4]]))
