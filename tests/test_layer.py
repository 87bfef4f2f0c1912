"""
test_layer.py
~~~~~~~~~~~~~

Unit tests for activations and the dense layer.
"""

import math

import numpy as np
import pytest

from ffnet.activations import Identity, Sigmoid, Tanh, get_activation
from ffnet.errors import ShapeMismatchError
from ffnet.layer import Layer
from ffnet.linalg import Matrix, Vector


def sigmoid(x):
    return 1.0 / (1.0 + math.exp(-x))


@pytest.mark.unit
class TestActivations:
    """Activation values and derivatives taken from outputs."""

    def test_sigmoid_values(self):
        y = Sigmoid().apply(Vector([0.0, 2.0, -2.0]))
        assert y.to_list() == pytest.approx([0.5, sigmoid(2.0), sigmoid(-2.0)])

    def test_sigmoid_derivative_from_output(self):
        d = Sigmoid().derivative_from_output(Vector([0.5, 0.9]))
        assert d.to_list() == pytest.approx([0.25, 0.09])

    def test_tanh_derivative_from_output(self):
        y = Tanh().apply(Vector([0.3]))
        d = Tanh().derivative_from_output(y)
        assert d.get_element(0) == pytest.approx(1.0 - math.tanh(0.3) ** 2)

    def test_identity(self):
        x = Vector([-1.5, 2.0])
        assert Identity().apply(x) == x
        assert Identity().derivative_from_output(x).to_list() == [1.0, 1.0]

    def test_get_activation(self):
        assert isinstance(get_activation('sigmoid'), Sigmoid)
        assert isinstance(get_activation('tanh'), Tanh)
        with pytest.raises(ValueError):
            get_activation('relu')


@pytest.mark.unit
class TestLayerForward:
    """Forward pass and shape checks."""

    def test_zero_input_zero_bias_gives_activation_at_zero(self, rng):
        for activation, expected in ((Sigmoid(), 0.5), (Tanh(), 0.0)):
            layer = Layer(
                Matrix(rng.normal(size=(3, 4))), Vector.zeros(3), activation
            )
            output = layer.forward(Vector.zeros(4))
            assert output.to_list() == pytest.approx([expected] * 3)

    def test_forward_matches_manual_computation(self, fixed_layer):
        output = fixed_layer.forward(Vector([1.0, 2.0]))
        expected = [
            sigmoid(0.5 * 1.0 - 0.25 * 2.0 + 0.1),
            sigmoid(1.0 * 1.0 + 0.75 * 2.0 - 0.2)
        ]
        assert output.to_list() == pytest.approx(expected)

    def test_forward_rejects_wrong_input_length(self, fixed_layer):
        with pytest.raises(ShapeMismatchError):
            fixed_layer.forward(Vector([1.0, 2.0, 3.0]))

    def test_constructor_rejects_bias_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            Layer(Matrix.zeros(2, 3), Vector.zeros(3))

    def test_create(self, rng):
        layer = Layer.create(4, 2, activation='tanh', rng=rng, scale=0.1)
        assert layer.input_size == 4
        assert layer.output_size == 2
        assert layer.weights.shape == (2, 4)
        assert layer.biases == Vector.zeros(2)
        assert isinstance(layer.activation, Tanh)
        assert np.all(np.abs(layer.weights.to_numpy()) <= 0.1)

    def test_create_rejects_empty_layer(self):
        with pytest.raises(ValueError):
            Layer.create(0, 3)


@pytest.mark.unit
class TestLayerBackward:
    """Local delta, weight gradient and error propagation."""

    def test_delta_uses_derivative_of_output(self, fixed_layer):
        output = Vector([0.5, 0.8])
        delta = fixed_layer.delta(Vector([2.0, -1.0]), output)
        assert delta.to_list() == pytest.approx([2.0 * 0.25, -1.0 * 0.16])

    def test_weight_gradient_is_outer_product(self, fixed_layer):
        gradient = fixed_layer.weight_gradients(
            Vector([1.0, 3.0]), Vector([0.5, -2.0])
        )
        assert gradient.shape == fixed_layer.weights.shape
        assert gradient.to_list() == [[0.5, 1.5], [-2.0, -6.0]]

    def test_weight_gradient_shape_mismatch(self, fixed_layer):
        with pytest.raises(ShapeMismatchError):
            fixed_layer.weight_gradients(Vector([1.0]), Vector([0.5, -2.0]))

    def test_backward_combines_delta_and_gradient(self, fixed_layer):
        input = Vector([1.0, 2.0])
        output = fixed_layer.forward(input)
        error = Vector([0.3, -0.1])
        weight_gradient, delta = fixed_layer.backward(input, output, error)
        assert delta == fixed_layer.delta(error, output)
        assert weight_gradient == fixed_layer.weight_gradients(input, delta)

    def test_propagate_uses_transposed_weights(self, fixed_layer):
        upstream = fixed_layer.propagate(Vector([1.0, 2.0]))
        assert upstream.to_list() == pytest.approx([0.5 + 2.0, -0.25 + 1.5])


@pytest.mark.unit
class TestLayerUpdates:
    """In-place gradient-descent steps."""

    def test_update_moves_against_gradient(self, fixed_layer):
        gradient = Matrix([[1.0, 0.0], [0.0, -2.0]])
        delta = Vector([1.0, -1.0])
        fixed_layer.apply_gradients(gradient, delta, 0.1)
        assert fixed_layer.weights.allclose(Matrix([[0.4, -0.25], [1.0, 0.95]]))
        assert fixed_layer.biases.allclose(Vector([0.0, -0.1]))

    def test_update_shape_mismatch(self, fixed_layer):
        with pytest.raises(ShapeMismatchError):
            fixed_layer.update_weights(Matrix.zeros(3, 2), 0.1)
        with pytest.raises(ShapeMismatchError):
            fixed_layer.update_biases(Vector.zeros(3), 0.1)

    def test_dict_round_trip(self, fixed_layer):
        rebuilt = Layer.from_dict(fixed_layer.to_dict())
        assert rebuilt == fixed_layer
