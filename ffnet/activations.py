"""
activations.py
~~~~~~~~~~~~~~

Activation functions for dense layers.

Each activation exposes its derivative as a function of its own output
``y = f(x)`` rather than of the pre-activation ``x``. Backpropagation only
ever has the cached layer outputs at hand, so only activations whose
derivative can be written that way are supported.
"""

from typing import Dict, Type

import numpy as np

from ffnet.linalg import Vector


class Activation:
    """Base class for activation functions."""

    name = ''

    def apply(self, x: Vector) -> Vector:
        raise NotImplementedError

    def derivative_from_output(self, y: Vector) -> Vector:
        raise NotImplementedError

    def __eq__(self, other) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Sigmoid(Activation):
    """Logistic function ``1 / (1 + e^-x)``."""

    name = 'sigmoid'

    def apply(self, x: Vector) -> Vector:
        return x.map(lambda values: 1.0 / (1.0 + np.exp(-values)))

    def derivative_from_output(self, y: Vector) -> Vector:
        return y.map(lambda values: values * (1.0 - values))


class Tanh(Activation):
    """Hyperbolic tangent."""

    name = 'tanh'

    def apply(self, x: Vector) -> Vector:
        return x.map(np.tanh)

    def derivative_from_output(self, y: Vector) -> Vector:
        return y.map(lambda values: 1.0 - values ** 2)


class Identity(Activation):
    """Linear pass-through, for regression outputs."""

    name = 'identity'

    def apply(self, x: Vector) -> Vector:
        return x

    def derivative_from_output(self, y: Vector) -> Vector:
        return Vector.ones(len(y))


ACTIVATIONS: Dict[str, Type[Activation]] = {
    cls.name: cls for cls in (Sigmoid, Tanh, Identity)
}


def get_activation(name: str) -> Activation:
    """
    Look up an activation by its registered name.

    Args:
        name: One of ``'sigmoid'``, ``'tanh'`` or ``'identity'``

    Returns:
        Activation: A new instance of the named activation

    Raises:
        ValueError: If the name is not registered
    """
    try:
        return ACTIVATIONS[name]()
    except (KeyError, TypeError):
        raise ValueError(
            f"Unknown activation {name!r}; expected one of "
            f"{sorted(ACTIVATIONS)}"
        ) from None
