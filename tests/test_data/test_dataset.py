"""
Тесты генерации и загрузки датасетов.
"""

import json

import numpy as np
import pytest

from dkmeans.data.dataset import Dataset
from dkmeans.errors import ConfigurationError
from dkmeans.data.synthetic import generate_blobs, save_dataset_txt


class TestGenerateBlobs:
    def test_values_in_byte_domain(self):
        generated = generate_blobs(N=200, D=3, K=4, seed=1)

        assert generated.data.shape == (200, 3)
        assert generated.data.dtype == np.uint8
        assert generated.centers.shape == (4, 3)
        assert generated.labels.shape == (200,)
        # MinMax-масштабирование растягивает каждый признак на 0..255
        assert generated.data.min() == 0
        assert generated.data.max() == 255
        assert generated.metadata["dtype"] == "uint8"

    def test_reproducible(self):
        a = generate_blobs(N=50, D=2, K=2, seed=3)
        b = generate_blobs(N=50, D=2, K=2, seed=3)
        np.testing.assert_array_equal(a.data, b.data)


class TestDataset:
    def test_load_saved_dataset(self, tmp_path):
        generated = generate_blobs(N=120, D=4, K=3, seed=5)
        path = save_dataset_txt(generated, tmp_path / "blobs" / "data.txt")

        dataset = Dataset(path)

        np.testing.assert_array_equal(dataset.X, generated.data)
        np.testing.assert_array_equal(dataset.labels_true, generated.labels)
        np.testing.assert_array_equal(dataset.initial_centroids, generated.centers)
        assert dataset.dataset_info["K"] == 3
        assert (dataset.n, dataset.d) == (120, 4)

    def test_loaded_elements_are_immutable(self, tmp_path):
        path = save_dataset_txt(generate_blobs(N=20, D=2, K=2), tmp_path / "d.txt")
        dataset = Dataset(path)
        with pytest.raises(ValueError):
            dataset.X[0, 0] = 1

    def test_file_without_centroids(self, tmp_path):
        path = tmp_path / "plain.txt"
        path.write_text(
            "# " + json.dumps({"D": 1}) + "\n0 5\n0 6\n1 200\n", encoding="utf-8"
        )
        dataset = Dataset(path)

        assert dataset.X.tolist() == [[5], [6], [200]]
        assert dataset.initial_centroids is None
        assert dataset.X.dtype == np.uint8

    def test_out_of_range_values_rejected(self, tmp_path):
        path = tmp_path / "wide.txt"
        path.write_text("# {}\n0 5\n0 300\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            Dataset(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_text("# {}\n", encoding="utf-8")
        with pytest.raises(ValueError):
            Dataset(path)
