"""
linalg.py
~~~~~~~~~

Dense numeric containers used throughout the network engine.

``Vector`` and ``Matrix`` wrap float64 numpy arrays and add the shape
bookkeeping the layers rely on: binary operations refuse operands of the
wrong size and element access is bounds-checked instead of wrapping
around like numpy's negative indexing does.

Both types have value semantics. Every operation returns a new object,
with the exception of ``set_element`` which mutates the receiver.
"""

from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np

from ffnet.errors import IndexOutOfRangeError, ShapeMismatchError


class Vector:
    """Fixed-length 1-D array of floats."""

    __slots__ = ('_data',)

    def __init__(self, elements: Iterable[float]):
        data = np.array(elements, dtype=np.float64)
        if data.ndim != 1:
            raise ShapeMismatchError(
                f"Vector requires 1-D data, got shape {data.shape}"
            )
        self._data = data

    @classmethod
    def zeros(cls, n: int) -> 'Vector':
        """Vector of ``n`` zeros."""
        return cls(np.zeros(n))

    @classmethod
    def ones(cls, n: int) -> 'Vector':
        """Vector of ``n`` ones."""
        return cls(np.ones(n))

    def __len__(self) -> int:
        return self._data.shape[0]

    def len(self) -> int:
        return len(self)

    def __iter__(self):
        return iter(self._data.tolist())

    def __eq__(self, other) -> bool:
        if not isinstance(other, Vector):
            return NotImplemented
        return np.array_equal(self._data, other._data)

    __hash__ = None

    def __repr__(self) -> str:
        return f"Vector({self._data.tolist()})"

    def _check_same_length(self, other: 'Vector', operation: str) -> None:
        if len(self) != len(other):
            raise ShapeMismatchError(
                f"Cannot {operation} vectors of length {len(self)} "
                f"and {len(other)}"
            )

    def add(self, other: 'Vector') -> 'Vector':
        self._check_same_length(other, 'add')
        return Vector(self._data + other._data)

    def subtract(self, other: 'Vector') -> 'Vector':
        self._check_same_length(other, 'subtract')
        return Vector(self._data - other._data)

    def elementwise_multiply(self, other: 'Vector') -> 'Vector':
        self._check_same_length(other, 'multiply')
        return Vector(self._data * other._data)

    def scalar_multiply(self, k: float) -> 'Vector':
        return Vector(self._data * k)

    def dot(self, other: 'Vector') -> float:
        self._check_same_length(other, 'dot')
        return float(np.dot(self._data, other._data))

    def outer(self, other: 'Vector') -> 'Matrix':
        """Outer product ``self ⊗ other`` with shape (len(self), len(other))."""
        return Matrix(np.outer(self._data, other._data))

    def magnitude(self) -> float:
        """
        Sum of the squared components.

        This is the squared Euclidean norm; the network's loss is defined
        in terms of it.
        """
        return float(np.dot(self._data, self._data))

    def map(self, fn: Callable[[np.ndarray], np.ndarray]) -> 'Vector':
        """Apply an array function to all elements at once."""
        return Vector(fn(self._data))

    def get_element(self, index: int) -> float:
        if not 0 <= index < len(self):
            raise IndexOutOfRangeError(
                f"Index {index} out of range for vector of length {len(self)}"
            )
        return float(self._data[index])

    def set_element(self, index: int, value: float) -> None:
        if not 0 <= index < len(self):
            raise IndexOutOfRangeError(
                f"Index {index} out of range for vector of length {len(self)}"
            )
        self._data[index] = value

    def allclose(self, other: 'Vector', tolerance: float = 1e-9) -> bool:
        return (
            len(self) == len(other)
            and np.allclose(self._data, other._data, rtol=0.0, atol=tolerance)
        )

    def to_list(self) -> List[float]:
        return self._data.tolist()

    def to_numpy(self) -> np.ndarray:
        return self._data.copy()


class Matrix:
    """
    Dense row-major 2-D array of floats.

    The row and column counts are fixed at construction.
    """

    __slots__ = ('_data',)

    def __init__(self, rows: Iterable[Iterable[float]]):
        data = np.array(rows, dtype=np.float64)
        if data.ndim != 2:
            raise ShapeMismatchError(
                f"Matrix requires 2-D data, got shape {data.shape}"
            )
        self._data = data

    @classmethod
    def zeros(cls, row_count: int, col_count: int) -> 'Matrix':
        return cls(np.zeros((row_count, col_count)))

    @classmethod
    def random(
        cls,
        row_count: int,
        col_count: int,
        rng: Optional[np.random.Generator] = None,
        scale: float = 1.0
    ) -> 'Matrix':
        """
        Matrix with entries drawn uniformly from ``[-scale, scale]``.

        Args:
            row_count: Number of rows
            col_count: Number of columns
            rng: Random generator; a fresh unseeded one is used if omitted
            scale: Half-width of the sampling interval

        Returns:
            Matrix: The random matrix
        """
        if rng is None:
            rng = np.random.default_rng()
        return cls(rng.uniform(-scale, scale, size=(row_count, col_count)))

    def row_count(self) -> int:
        return self._data.shape[0]

    def col_count(self) -> int:
        return self._data.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.row_count(), self.col_count()

    def __eq__(self, other) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return np.array_equal(self._data, other._data)

    __hash__ = None

    def __repr__(self) -> str:
        return f"Matrix({self._data.tolist()})"

    def _check_index(self, row: int, col: int) -> None:
        if not (0 <= row < self.row_count() and 0 <= col < self.col_count()):
            raise IndexOutOfRangeError(
                f"Index ({row}, {col}) out of range for "
                f"{self.row_count()}x{self.col_count()} matrix"
            )

    def _check_same_shape(self, other: 'Matrix', operation: str) -> None:
        if self.shape != other.shape:
            raise ShapeMismatchError(
                f"Cannot {operation} matrices of shape {self.shape} "
                f"and {other.shape}"
            )

    def get_element(self, row: int, col: int) -> float:
        self._check_index(row, col)
        return float(self._data[row, col])

    def set_element(self, row: int, col: int, value: float) -> None:
        self._check_index(row, col)
        self._data[row, col] = value

    def add(self, other: 'Matrix') -> 'Matrix':
        self._check_same_shape(other, 'add')
        return Matrix(self._data + other._data)

    def subtract(self, other: 'Matrix') -> 'Matrix':
        self._check_same_shape(other, 'subtract')
        return Matrix(self._data - other._data)

    def elementwise_multiply(self, other: 'Matrix') -> 'Matrix':
        self._check_same_shape(other, 'multiply')
        return Matrix(self._data * other._data)

    def scalar_multiply(self, k: float) -> 'Matrix':
        return Matrix(self._data * k)

    def multiply_vector(self, vector: Vector) -> Vector:
        """Matrix-vector product ``self · vector``."""
        if self.col_count() != len(vector):
            raise ShapeMismatchError(
                f"Cannot multiply {self.row_count()}x{self.col_count()} "
                f"matrix by vector of length {len(vector)}"
            )
        return Vector(self._data @ vector._data)

    def transpose(self) -> 'Matrix':
        return Matrix(self._data.T)

    def allclose(self, other: 'Matrix', tolerance: float = 1e-9) -> bool:
        return (
            self.shape == other.shape
            and np.allclose(self._data, other._data, rtol=0.0, atol=tolerance)
        )

    def to_list(self) -> List[List[float]]:
        return self._data.tolist()

    def to_numpy(self) -> np.ndarray:
        return self._data.copy()
