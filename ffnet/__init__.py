"""
ffnet package
~~~~~~~~~~~~~

Minimal feedforward neural network engine.
Contains the numeric containers, dense layers, the network with its
backpropagation and training loops, the text persistence format, the
SQLite model registry, and the API server.
"""

from ffnet.errors import (
    FFNetError,
    IndexOutOfRangeError,
    ModelFormatError,
    ModelIOError,
    ShapeMismatchError
)
from ffnet.linalg import Matrix, Vector
from ffnet.activations import Activation, Identity, Sigmoid, Tanh, get_activation
from ffnet.layer import Layer
from ffnet.network import Network
from ffnet.training import StopReason, TrainingReport

__version__ = "1.0.0"
