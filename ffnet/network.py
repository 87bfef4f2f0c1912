"""
network.py
~~~~~~~~~~

A feedforward network: an ordered stack of dense layers.

The network runs the forward pass, backpropagates the squared-error loss
through every layer, applies plain gradient-descent updates and wraps
those steps in several training loops (per-example epochs, shuffled
mini-batches, convergence and early stopping).

Loss for one example is half the squared error::

    loss = 0.5 * (prediction - target).magnitude()

so the gradients returned by ``backward`` are exactly the gradients of
``loss``.
"""

import logging
import math
import time
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from ffnet.activations import Activation
from ffnet.errors import ShapeMismatchError
from ffnet.layer import Layer
from ffnet.linalg import Matrix, Vector
from ffnet.training import ProgressCallback, TrainingReport, run_until_convergence

logger = logging.getLogger(__name__)

DEFAULT_LEARNING_RATE = 0.1

# A component counts as correct when its absolute error is below this
ACCURACY_THRESHOLD = 0.5

# Per-layer (weight_gradient, delta) pair; delta doubles as the bias gradient
LayerGradient = Tuple[Matrix, Vector]


def _mean(values: List[float]) -> float:
    # Shifted by the first value, so a batch of identical values averages
    # to exactly that value
    shift = values[0]
    return shift + math.fsum(value - shift for value in values) / len(values)


class Network:
    """Ordered stack of layers, each exclusively owned by the network."""

    def __init__(self, layers: Sequence[Layer], validate: bool = True):
        """
        Build a network from its layers.

        Args:
            layers: Layers in forward order
            validate: Check that each layer's output width matches the next
                layer's input width

        Raises:
            ValueError: If ``layers`` is empty
            ShapeMismatchError: If ``validate`` is set and two adjacent
                layers do not fit together
        """
        self.layers: List[Layer] = list(layers)
        if not self.layers:
            raise ValueError("A network needs at least one layer")
        if validate:
            self._check_layer_widths()

    @classmethod
    def create(
        cls,
        layer_sizes: Sequence[int],
        activation: Union[str, Activation] = 'sigmoid',
        rng: Optional[np.random.Generator] = None,
        scale: float = 1.0
    ) -> 'Network':
        """
        Create a randomly initialised network from its layer widths.

        Args:
            layer_sizes: Widths from input to output, e.g. ``[2, 3, 1]``
            activation: Activation used by every layer
            rng: Random generator for the initial weights
            scale: Weights are drawn uniformly from ``[-scale, scale]``

        Returns:
            Network: ``len(layer_sizes) - 1`` dense layers

        Example:
            >>> net = Network.create([2, 3, 1], rng=np.random.default_rng(0))
            >>> net.layer_sizes
            [2, 3, 1]
        """
        if len(layer_sizes) < 2:
            raise ValueError(
                f"Need at least an input and an output size, got {layer_sizes}"
            )
        if rng is None:
            rng = np.random.default_rng()
        layers = [
            Layer.create(n_in, n_out, activation=activation, rng=rng, scale=scale)
            for n_in, n_out in zip(layer_sizes[:-1], layer_sizes[1:])
        ]
        return cls(layers)

    def _check_layer_widths(self) -> None:
        for index, (layer, next_layer) in enumerate(
            zip(self.layers[:-1], self.layers[1:])
        ):
            if layer.output_size != next_layer.input_size:
                raise ShapeMismatchError(
                    f"Layer {index} outputs {layer.output_size} values but "
                    f"layer {index + 1} expects {next_layer.input_size}"
                )

    @property
    def layer_sizes(self) -> List[int]:
        return [self.layers[0].input_size] + [
            layer.output_size for layer in self.layers
        ]

    def weights(self) -> List[Matrix]:
        return [layer.weights for layer in self.layers]

    def biases(self) -> List[Vector]:
        return [layer.biases for layer in self.layers]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Network):
            return NotImplemented
        return self.layers == other.layers

    __hash__ = None

    def __repr__(self) -> str:
        return f"Network(layer_sizes={self.layer_sizes})"

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def forward(self, input: Vector) -> Vector:
        output = input
        for layer in self.layers:
            output = layer.forward(output)
        return output

    def predict(self, input: Vector) -> Vector:
        return self.forward(input)

    def predict_batch(self, inputs: Sequence[Vector]) -> List[Vector]:
        return [self.predict(input) for input in inputs]

    # ------------------------------------------------------------------
    # Backpropagation and updates
    # ------------------------------------------------------------------

    def delta(self, error: Vector, gradient: Vector) -> Vector:
        return error.elementwise_multiply(gradient)

    def backward(self, input: Vector, target: Vector) -> List[LayerGradient]:
        """
        Backpropagate one example through the whole stack.

        Args:
            input: Network input
            target: Desired network output

        Returns:
            list: One (weight_gradient, delta) pair per layer, in layer
            order. Each pair is the gradient of ``loss(input, target)``
            with respect to that layer's weights and biases.

        Raises:
            ShapeMismatchError: If ``input`` or ``target`` has the wrong
                length
        """
        outputs = [input]
        for layer in self.layers:
            outputs.append(layer.forward(outputs[-1]))

        prediction = outputs[-1]
        if len(target) != len(prediction):
            raise ShapeMismatchError(
                f"Target has length {len(target)} but the network produces "
                f"{len(prediction)} outputs"
            )
        error = prediction.subtract(target)

        gradients: List[LayerGradient] = []
        for index in reversed(range(len(self.layers))):
            layer = self.layers[index]
            weight_gradient, delta = layer.backward(
                outputs[index], outputs[index + 1], error
            )
            gradients.append((weight_gradient, delta))
            if index > 0:
                error = layer.propagate(delta)

        gradients.reverse()
        return gradients

    def _check_gradient_count(self, count: int) -> None:
        if count != len(self.layers):
            raise ShapeMismatchError(
                f"Got {count} gradient(s) for {len(self.layers)} layer(s)"
            )

    def update(
        self,
        gradients: Sequence[LayerGradient],
        learning_rate: float
    ) -> None:
        """Apply each layer its own gradient pair (in place)."""
        self._check_gradient_count(len(gradients))
        for layer, (weight_gradient, delta) in zip(self.layers, gradients):
            layer.apply_gradients(weight_gradient, delta, learning_rate)

    def update_weights(
        self,
        weight_gradients: Sequence[Matrix],
        learning_rate: float
    ) -> None:
        self._check_gradient_count(len(weight_gradients))
        for layer, gradient in zip(self.layers, weight_gradients):
            layer.update_weights(gradient, learning_rate)

    def update_biases(
        self,
        deltas: Sequence[Vector],
        learning_rate: float
    ) -> None:
        self._check_gradient_count(len(deltas))
        for layer, delta in zip(self.layers, deltas):
            layer.update_biases(delta, learning_rate)

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def _error(self, input: Vector, target: Vector) -> Vector:
        prediction = self.forward(input)
        if len(target) != len(prediction):
            raise ShapeMismatchError(
                f"Target has length {len(target)} but the network produces "
                f"{len(prediction)} outputs"
            )
        return prediction.subtract(target)

    def loss(self, input: Vector, target: Vector) -> float:
        """Half the squared error of the prediction for ``input``."""
        return 0.5 * self._error(input, target).magnitude()

    def accuracy(self, input: Vector, target: Vector) -> float:
        """Fraction of output components within 0.5 of the target."""
        error = self._error(input, target)
        correct = sum(1 for value in error if abs(value) < ACCURACY_THRESHOLD)
        return correct / len(target)

    @staticmethod
    def _check_batch(
        inputs: Sequence[Vector],
        targets: Sequence[Vector]
    ) -> None:
        if len(inputs) != len(targets):
            raise ShapeMismatchError(
                f"Got {len(inputs)} inputs but {len(targets)} targets"
            )
        if not inputs:
            raise ValueError("Cannot evaluate an empty batch")

    def loss_batch(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector]
    ) -> float:
        self._check_batch(inputs, targets)
        return _mean([
            self.loss(input, target) for input, target in zip(inputs, targets)
        ])

    def accuracy_batch(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector]
    ) -> float:
        self._check_batch(inputs, targets)
        return _mean([
            self.accuracy(input, target)
            for input, target in zip(inputs, targets)
        ])

    def evaluate_batch(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector]
    ) -> Tuple[float, float]:
        """Mean (loss, accuracy) over a set of examples."""
        return self.loss_batch(inputs, targets), self.accuracy_batch(inputs, targets)

    def evaluate(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector]
    ) -> Tuple[float, float]:
        return self.evaluate_batch(inputs, targets)

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def train_epoch(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector],
        learning_rate: float
    ) -> Tuple[float, float]:
        """
        One pass over the data with an update after every example.

        Returns:
            tuple: Mean loss and accuracy, each example measured right after
            its own update
        """
        self._check_batch(inputs, targets)
        total_loss = 0.0
        total_accuracy = 0.0
        for input, target in zip(inputs, targets):
            self.update(self.backward(input, target), learning_rate)
            total_loss += self.loss(input, target)
            total_accuracy += self.accuracy(input, target)
        return total_loss / len(inputs), total_accuracy / len(inputs)

    def train_epochs(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector],
        learning_rate: float,
        epochs: int,
        callback: Optional[ProgressCallback] = None
    ) -> List[float]:
        """
        Run ``epochs`` per-example epochs.

        Returns:
            list: Mean loss of each epoch
        """
        return self._run_epochs(
            lambda: self.train_epoch(inputs, targets, learning_rate),
            epochs,
            callback
        )

    def train(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector],
        epochs: int,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        callback: Optional[ProgressCallback] = None
    ) -> List[float]:
        logger.info(
            f"Training {self!r} on {len(inputs)} example(s) for "
            f"{epochs} epoch(s), learning_rate={learning_rate}"
        )
        history = self.train_epochs(
            inputs, targets, learning_rate, epochs, callback=callback
        )
        logger.info("Training complete")
        return history

    def train_minibatch(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector],
        learning_rate: float,
        batch_size: int,
        rng: Optional[np.random.Generator] = None
    ) -> None:
        """
        One epoch over shuffled mini-batches.

        Per-layer gradients are averaged over each batch before a single
        update. The last batch is smaller when ``batch_size`` does not
        divide the number of examples.

        Args:
            inputs: Training inputs
            targets: Training targets
            learning_rate: Gradient-descent step size
            batch_size: Examples per update
            rng: Source of the per-epoch permutation
        """
        self._check_batch(inputs, targets)
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if rng is None:
            rng = np.random.default_rng()

        indices = rng.permutation(len(inputs))
        for start in range(0, len(indices), batch_size):
            batch = indices[start:start + batch_size]
            totals = None
            for i in batch:
                gradients = self.backward(inputs[i], targets[i])
                if totals is None:
                    totals = gradients
                else:
                    totals = [
                        (total_w.add(w), total_d.add(d))
                        for (total_w, total_d), (w, d) in zip(totals, gradients)
                    ]
            scale = 1.0 / len(batch)
            self.update(
                [(w.scalar_multiply(scale), d.scalar_multiply(scale))
                 for w, d in totals],
                learning_rate
            )

    def train_minibatches(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector],
        learning_rate: float,
        batch_size: int,
        epochs: int,
        rng: Optional[np.random.Generator] = None,
        callback: Optional[ProgressCallback] = None
    ) -> List[float]:
        if rng is None:
            rng = np.random.default_rng()

        def run_epoch():
            self.train_minibatch(inputs, targets, learning_rate, batch_size, rng)
            return self.evaluate_batch(inputs, targets)

        return self._run_epochs(run_epoch, epochs, callback)

    def _run_epochs(self, run_epoch, epochs: int, callback) -> List[float]:
        if epochs < 0:
            raise ValueError(f"epochs must be non-negative, got {epochs}")
        history = []
        start_time = time.time()
        for epoch in range(epochs):
            loss, accuracy = run_epoch()
            history.append(loss)
            logger.debug(
                f"Epoch {epoch + 1}/{epochs}: loss={loss:.6f}, "
                f"accuracy={accuracy:.3f}"
            )
            if callback is not None:
                callback({
                    'epoch': epoch + 1,
                    'total_epochs': epochs,
                    'loss': loss,
                    'accuracy': accuracy,
                    'elapsed_time': time.time() - start_time
                })
        return history

    def train_until_convergence(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector],
        learning_rate: float,
        max_epochs: int,
        tolerance: float,
        callback: Optional[ProgressCallback] = None
    ) -> TrainingReport:
        """Per-example epochs until the loss changes by at most ``tolerance``."""
        return run_until_convergence(
            self,
            lambda: self.train_epoch(inputs, targets, learning_rate),
            inputs, targets, max_epochs, tolerance,
            callback=callback
        )

    def train_minibatches_until_convergence(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector],
        learning_rate: float,
        batch_size: int,
        max_epochs: int,
        tolerance: float,
        rng: Optional[np.random.Generator] = None,
        callback: Optional[ProgressCallback] = None
    ) -> TrainingReport:
        if rng is None:
            rng = np.random.default_rng()
        return run_until_convergence(
            self,
            lambda: self.train_minibatch(
                inputs, targets, learning_rate, batch_size, rng
            ),
            inputs, targets, max_epochs, tolerance,
            callback=callback
        )

    def train_minibatches_until_convergence_with_validation(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector],
        validation_inputs: Sequence[Vector],
        validation_targets: Sequence[Vector],
        learning_rate: float,
        batch_size: int,
        max_epochs: int,
        tolerance: float,
        rng: Optional[np.random.Generator] = None,
        callback: Optional[ProgressCallback] = None
    ) -> TrainingReport:
        """As above, also recording the validation loss after every epoch."""
        self._check_batch(validation_inputs, validation_targets)
        if rng is None:
            rng = np.random.default_rng()
        return run_until_convergence(
            self,
            lambda: self.train_minibatch(
                inputs, targets, learning_rate, batch_size, rng
            ),
            inputs, targets, max_epochs, tolerance,
            validation_inputs=validation_inputs,
            validation_targets=validation_targets,
            callback=callback
        )

    def train_minibatches_until_convergence_with_validation_and_early_stopping(
        self,
        inputs: Sequence[Vector],
        targets: Sequence[Vector],
        validation_inputs: Sequence[Vector],
        validation_targets: Sequence[Vector],
        learning_rate: float,
        batch_size: int,
        max_epochs: int,
        tolerance: float,
        patience: int,
        rng: Optional[np.random.Generator] = None,
        callback: Optional[ProgressCallback] = None
    ) -> TrainingReport:
        """
        Mini-batch training with convergence and early stopping.

        Stops early once the validation loss has not improved on its best
        value for ``patience`` consecutive epochs.
        """
        self._check_batch(validation_inputs, validation_targets)
        if rng is None:
            rng = np.random.default_rng()
        return run_until_convergence(
            self,
            lambda: self.train_minibatch(
                inputs, targets, learning_rate, batch_size, rng
            ),
            inputs, targets, max_epochs, tolerance,
            validation_inputs=validation_inputs,
            validation_targets=validation_targets,
            patience=patience,
            callback=callback
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_text(self) -> str:
        from ffnet.serialization import network_to_text
        return network_to_text(self)

    @classmethod
    def from_text(cls, text: str) -> 'Network':
        from ffnet.serialization import network_from_text
        return network_from_text(text)

    def save(self, path: str) -> None:
        from ffnet.serialization import save_network_file
        save_network_file(self, path)

    @classmethod
    def load(cls, path: str) -> 'Network':
        from ffnet.serialization import load_network_file
        return load_network_file(path)
