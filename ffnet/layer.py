"""
layer.py
~~~~~~~~

A single dense layer: an affine transform followed by an activation.

Shapes, for a layer mapping ``n_in`` inputs to ``n_out`` outputs::

    weights          (n_out, n_in)
    biases           (n_out,)
    forward          (n_in,)  -> (n_out,)
    weight gradient  (n_out, n_in)   = delta ⊗ input
    propagate        (n_out,) -> (n_in,)   = weightsᵀ · delta
"""

from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from ffnet.activations import Activation, Sigmoid, get_activation
from ffnet.errors import ShapeMismatchError
from ffnet.linalg import Matrix, Vector


class Layer:
    """
    Dense layer owning its weight matrix and bias vector.

    The parameters are mutated in place by the ``update_*`` methods during
    training; every other method is side-effect free.
    """

    def __init__(
        self,
        weights: Matrix,
        biases: Vector,
        activation: Optional[Activation] = None
    ):
        if weights.row_count() != len(biases):
            raise ShapeMismatchError(
                f"Weights have {weights.row_count()} rows but biases have "
                f"length {len(biases)}"
            )
        self.weights = weights
        self.biases = biases
        self.activation = activation if activation is not None else Sigmoid()

    @classmethod
    def create(
        cls,
        input_size: int,
        output_size: int,
        activation: Union[str, Activation] = 'sigmoid',
        rng: Optional[np.random.Generator] = None,
        scale: float = 1.0
    ) -> 'Layer':
        """
        Create a layer with random weights and zero biases.

        Args:
            input_size: Width of the vectors fed into the layer
            output_size: Width of the vectors the layer produces
            activation: Activation instance or registered name
            rng: Random generator used for the initial weights
            scale: Weights are drawn uniformly from ``[-scale, scale]``

        Returns:
            Layer: The new layer
        """
        if input_size < 1 or output_size < 1:
            raise ValueError(
                f"Layer sizes must be positive, got {input_size}x{output_size}"
            )
        if isinstance(activation, str):
            activation = get_activation(activation)
        return cls(
            Matrix.random(output_size, input_size, rng=rng, scale=scale),
            Vector.zeros(output_size),
            activation
        )

    @property
    def input_size(self) -> int:
        return self.weights.col_count()

    @property
    def output_size(self) -> int:
        return self.weights.row_count()

    def __eq__(self, other) -> bool:
        if not isinstance(other, Layer):
            return NotImplemented
        return (
            self.weights == other.weights
            and self.biases == other.biases
            and self.activation == other.activation
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"Layer({self.input_size} -> {self.output_size}, "
            f"activation={self.activation.name})"
        )

    # ------------------------------------------------------------------
    # Forward / backward
    # ------------------------------------------------------------------

    def forward(self, input: Vector) -> Vector:
        """Compute ``activation(weights · input + biases)``."""
        if len(input) != self.input_size:
            raise ShapeMismatchError(
                f"Layer expects input of length {self.input_size}, "
                f"got {len(input)}"
            )
        return self.activation.apply(
            self.weights.multiply_vector(input).add(self.biases)
        )

    def delta(self, error: Vector, output: Vector) -> Vector:
        """
        Local delta: the back-propagated error times the activation slope.

        Args:
            error: dLoss/dOutput for this layer (length ``output_size``)
            output: The layer's forward output the slope is evaluated at

        Returns:
            Vector: dLoss/dPreactivation
        """
        return error.elementwise_multiply(
            self.activation.derivative_from_output(output)
        )

    def weight_gradients(self, input: Vector, delta: Vector) -> Matrix:
        """Outer product of the local delta and the layer input."""
        if len(input) != self.input_size or len(delta) != self.output_size:
            raise ShapeMismatchError(
                f"Gradient of a {self.output_size}x{self.input_size} layer "
                f"needs input length {self.input_size} and delta length "
                f"{self.output_size}, got {len(input)} and {len(delta)}"
            )
        return delta.outer(input)

    def backward(
        self,
        input: Vector,
        output: Vector,
        error: Vector
    ) -> Tuple[Matrix, Vector]:
        """
        Run the backward step for one example.

        Args:
            input: The vector this layer was fed in the forward pass
            output: The vector this layer produced for ``input``
            error: dLoss/dOutput arriving from downstream

        Returns:
            tuple: (weight_gradient, delta). The bias gradient equals delta.
        """
        delta = self.delta(error, output)
        return self.weight_gradients(input, delta), delta

    def propagate(self, delta: Vector) -> Vector:
        """Error handed to the upstream layer: ``weightsᵀ · delta``."""
        return self.weights.transpose().multiply_vector(delta)

    # ------------------------------------------------------------------
    # Parameter updates (mutate in place)
    # ------------------------------------------------------------------

    def update_weights(self, gradient: Matrix, learning_rate: float) -> None:
        """Gradient-descent step on the weights."""
        if gradient.shape != self.weights.shape:
            raise ShapeMismatchError(
                f"Weight gradient of shape {gradient.shape} does not match "
                f"weights of shape {self.weights.shape}"
            )
        self.weights = self.weights.subtract(
            gradient.scalar_multiply(learning_rate)
        )

    def update_biases(self, delta: Vector, learning_rate: float) -> None:
        """Gradient-descent step on the biases."""
        if len(delta) != len(self.biases):
            raise ShapeMismatchError(
                f"Bias gradient of length {len(delta)} does not match "
                f"biases of length {len(self.biases)}"
            )
        self.biases = self.biases.subtract(delta.scalar_multiply(learning_rate))

    def apply_gradients(
        self,
        gradient: Matrix,
        delta: Vector,
        learning_rate: float
    ) -> None:
        self.update_weights(gradient, learning_rate)
        self.update_biases(delta, learning_rate)

    # ------------------------------------------------------------------
    # Structured representation
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            'input_size': self.input_size,
            'output_size': self.output_size,
            'activation': self.activation.name,
            'weights': self.weights.to_list(),
            'biases': self.biases.to_list()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Layer':
        """Rebuild a layer from ``to_dict`` output. Performs no validation."""
        return cls(
            Matrix(data['weights']),
            Vector(data['biases']),
            get_activation(data['activation'])
        )
