"""
test_datasets.py
~~~~~~~~~~~~~~~~

Tests for the built-in datasets and NPZ dataset files.
"""

import numpy as np
import pytest

from ffnet.datasets import (
    load_dataset_npz,
    save_dataset_npz,
    split_dataset,
    xor_dataset
)
from ffnet.errors import ModelFormatError, ModelIOError, ShapeMismatchError
from ffnet.linalg import Vector


@pytest.mark.unit
class TestDatasets:

    def test_xor_dataset(self, xor_data):
        inputs, targets = xor_data
        assert len(inputs) == len(targets) == 4
        assert [t.get_element(0) for t in targets] == [0.0, 1.0, 1.0, 0.0]

    def test_npz_save_and_load(self, tmp_path):
        inputs, targets = xor_dataset()
        path = str(tmp_path / "xor.npz")
        save_dataset_npz(path, inputs, targets)

        loaded_inputs, loaded_targets = load_dataset_npz(path)
        assert loaded_inputs == inputs
        assert loaded_targets == targets

    def test_save_rejects_ragged_inputs(self, tmp_path):
        with pytest.raises(ShapeMismatchError):
            save_dataset_npz(
                str(tmp_path / "bad.npz"),
                [Vector([1.0]), Vector([1.0, 2.0])],
                [Vector([0.0]), Vector([1.0])]
            )

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ModelIOError):
            load_dataset_npz(str(tmp_path / "missing.npz"))

    def test_load_archive_without_targets(self, tmp_path):
        path = str(tmp_path / "partial.npz")
        np.savez_compressed(path, inputs=np.zeros((2, 2)))
        with pytest.raises(ModelFormatError):
            load_dataset_npz(path)

    def test_load_mismatched_counts(self, tmp_path):
        path = str(tmp_path / "counts.npz")
        np.savez_compressed(path, inputs=np.zeros((3, 2)), targets=np.zeros((2, 1)))
        with pytest.raises(ModelFormatError):
            load_dataset_npz(path)

    def test_load_text_file(self, tmp_path):
        path = tmp_path / "text.npz"
        path.write_text("not an archive")
        with pytest.raises(ModelFormatError):
            load_dataset_npz(str(path))

    def test_split_dataset(self, rng):
        inputs = [Vector([float(i)]) for i in range(10)]
        targets = [Vector([float(i) * 2]) for i in range(10)]

        (train_x, train_y), (val_x, val_y) = split_dataset(
            inputs, targets, 0.3, rng=rng
        )

        assert len(train_x) == 7 and len(val_x) == 3
        for x, y in zip(train_x + val_x, train_y + val_y):
            assert y.get_element(0) == 2 * x.get_element(0)
        assert sorted(v.get_element(0) for v in train_x + val_x) == list(range(10))

    def test_split_rejects_bad_fraction(self, xor_data):
        inputs, targets = xor_data
        with pytest.raises(ValueError):
            split_dataset(inputs, targets, 1.0)
