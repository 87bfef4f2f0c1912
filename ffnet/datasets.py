"""
datasets.py
~~~~~~~~~~~

Small built-in datasets and NPZ dataset files.

A dataset is a pair of equally long lists ``(inputs, targets)`` of
``Vector`` objects. On disk it is a compressed NPZ archive holding two 2-D
arrays named ``inputs`` and ``targets`` with one example per row.
"""

import logging
import os
import zipfile
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ffnet.errors import ModelFormatError, ModelIOError, ShapeMismatchError
from ffnet.linalg import Vector

logger = logging.getLogger(__name__)

Dataset = Tuple[List[Vector], List[Vector]]


def _from_rows(inputs: Sequence[Sequence[float]], targets: Sequence[Sequence[float]]) -> Dataset:
    return [Vector(row) for row in inputs], [Vector(row) for row in targets]


def xor_dataset() -> Dataset:
    """The four XOR examples; not linearly separable."""
    return _from_rows(
        [[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]],
        [[0.0], [1.0], [1.0], [0.0]]
    )


def and_dataset() -> Dataset:
    """The four AND examples; learnable by a single layer."""
    return _from_rows(
        [[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]],
        [[0.0], [0.0], [0.0], [1.0]]
    )


def _stack(vectors: Sequence[Vector], name: str) -> np.ndarray:
    widths = {len(vector) for vector in vectors}
    if len(widths) > 1:
        raise ShapeMismatchError(f"All {name} must have the same length")
    return np.array([vector.to_numpy() for vector in vectors])


def save_dataset_npz(
    path: str,
    inputs: Sequence[Vector],
    targets: Sequence[Vector]
) -> None:
    """
    Save a dataset as a compressed NPZ archive.

    Args:
        path: Output file; numpy appends ``.npz`` if it is missing
        inputs: Example inputs, all of one length
        targets: Example targets, all of one length

    Raises:
        ShapeMismatchError: If the example counts or widths disagree
        ModelIOError: If the file cannot be written
    """
    if len(inputs) != len(targets):
        raise ShapeMismatchError(
            f"Got {len(inputs)} inputs but {len(targets)} targets"
        )
    input_array = _stack(inputs, 'inputs')
    target_array = _stack(targets, 'targets')

    try:
        np.savez_compressed(path, inputs=input_array, targets=target_array)
    except OSError as e:
        raise ModelIOError(f"Could not save dataset to '{path}': {e}") from e

    logger.info(f"Saved {len(inputs)} example(s) to '{path}'")


def load_dataset_npz(path: str) -> Dataset:
    """
    Load a dataset written by ``save_dataset_npz``.

    Raises:
        ModelIOError: If the file cannot be read
        ModelFormatError: If the archive lacks the expected arrays
    """
    try:
        data = np.load(path, allow_pickle=False)
    except OSError as e:
        raise ModelIOError(f"Could not load dataset from '{path}': {e}") from e
    except (ValueError, EOFError, zipfile.BadZipFile) as e:
        raise ModelFormatError(f"'{path}' is not a valid dataset: {e}") from e

    # Plain .npy files load as a bare array
    if not hasattr(data, 'files'):
        raise ModelFormatError(f"'{path}' is not an NPZ archive")
    with data:
        arrays = {name: data[name] for name in data.files}

    if 'inputs' not in arrays or 'targets' not in arrays:
        raise ModelFormatError(
            f"'{path}' must contain 'inputs' and 'targets' arrays"
        )
    input_array = arrays['inputs']
    target_array = arrays['targets']

    if input_array.ndim != 2 or target_array.ndim != 2:
        raise ModelFormatError(f"Dataset arrays in '{path}' must be 2-D")
    if input_array.shape[0] != target_array.shape[0]:
        raise ModelFormatError(
            f"'{path}' has {input_array.shape[0]} inputs but "
            f"{target_array.shape[0]} targets"
        )

    logger.info(f"Loaded {input_array.shape[0]} example(s) from '{path}'")
    return _from_rows(input_array, target_array)


def split_dataset(
    inputs: Sequence[Vector],
    targets: Sequence[Vector],
    validation_fraction: float = 0.2,
    rng: Optional[np.random.Generator] = None
) -> Tuple[Dataset, Dataset]:
    """
    Shuffle a dataset and split off a validation part.

    Returns:
        tuple: ``((train_inputs, train_targets), (val_inputs, val_targets))``
    """
    if len(inputs) != len(targets):
        raise ShapeMismatchError(
            f"Got {len(inputs)} inputs but {len(targets)} targets"
        )
    if not 0.0 < validation_fraction < 1.0:
        raise ValueError(
            f"validation_fraction must be in (0, 1), got {validation_fraction}"
        )
    if rng is None:
        rng = np.random.default_rng()

    indices = rng.permutation(len(inputs))
    n_validation = max(1, int(round(len(inputs) * validation_fraction)))
    validation, training = indices[:n_validation], indices[n_validation:]
    return (
        ([inputs[i] for i in training], [targets[i] for i in training]),
        ([inputs[i] for i in validation], [targets[i] for i in validation])
    )
