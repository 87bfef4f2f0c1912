"""
serialization.py
~~~~~~~~~~~~~~~~

Self-describing text format for networks.

A network is written as a JSON document::

    {
        "format": "ffnet.network",
        "version": 1,
        "layer_count": 2,
        "layers": [
            {"input_size": 2, "output_size": 3, "activation": "sigmoid",
             "weights": [[...], [...], [...]], "biases": [...]},
            ...
        ]
    }

Every field is validated on read and any problem raises
``ModelFormatError``; a malformed document never yields a half-built
network. Floats are written at full ``repr`` precision so a round trip
reproduces the parameters exactly.
"""

import json
import logging
import math
import os
from typing import Any, Dict, List

import numpy as np

from ffnet.activations import ACTIVATIONS
from ffnet.errors import ModelFormatError, ModelIOError
from ffnet.layer import Layer
from ffnet.network import Network

logger = logging.getLogger(__name__)

FORMAT_NAME = 'ffnet.network'
FORMAT_VERSION = 1

_LAYER_KEYS = ('input_size', 'output_size', 'activation', 'weights', 'biases')


class NetworkEncoder(json.JSONEncoder):
    """JSON encoder that also handles numpy arrays and scalars."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.generic):
            return obj.item()
        return super().default(obj)


def network_to_dict(network: Network) -> Dict[str, Any]:
    return {
        'format': FORMAT_NAME,
        'version': FORMAT_VERSION,
        'layer_count': len(network.layers),
        'layers': [layer.to_dict() for layer in network.layers]
    }


def network_to_text(network: Network) -> str:
    """
    Serialize ``network`` to its JSON text document.

    Raises:
        ModelFormatError: If a parameter is NaN or infinite; such a
            document could not be read back
    """
    try:
        return json.dumps(
            network_to_dict(network), cls=NetworkEncoder, indent=2,
            allow_nan=False
        )
    except ValueError as e:
        raise ModelFormatError(
            f"Network {network.layer_sizes} has non-finite parameters"
        ) from e


def _is_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # int too large for a float
        return False


def _is_size(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _validate_layer(index: int, data: Any) -> None:
    if not isinstance(data, dict):
        raise ModelFormatError(f"Layer {index} is not an object")

    missing = [key for key in _LAYER_KEYS if key not in data]
    if missing:
        raise ModelFormatError(f"Layer {index} is missing {missing}")

    n_in, n_out = data['input_size'], data['output_size']
    if not (_is_size(n_in) and _is_size(n_out)):
        raise ModelFormatError(
            f"Layer {index} has invalid sizes {n_in!r}x{n_out!r}"
        )

    activation = data['activation']
    if not isinstance(activation, str) or activation not in ACTIVATIONS:
        raise ModelFormatError(
            f"Layer {index} has unknown activation {activation!r}"
        )

    weights = data['weights']
    if not isinstance(weights, list) or len(weights) != n_out:
        raise ModelFormatError(
            f"Layer {index} weights must have {n_out} rows"
        )
    for row in weights:
        if not isinstance(row, list) or len(row) != n_in:
            raise ModelFormatError(
                f"Layer {index} weight rows must have {n_in} columns"
            )
        if not all(_is_number(value) for value in row):
            raise ModelFormatError(
                f"Layer {index} weights contain a non-numeric value"
            )

    biases = data['biases']
    if not isinstance(biases, list) or len(biases) != n_out:
        raise ModelFormatError(f"Layer {index} biases must have {n_out} values")
    if not all(_is_number(value) for value in biases):
        raise ModelFormatError(
            f"Layer {index} biases contain a non-numeric value"
        )


def network_from_dict(document: Any) -> Network:
    """
    Validate a decoded document and build the network it describes.

    Raises:
        ModelFormatError: If any part of the document is invalid
    """
    if not isinstance(document, dict):
        raise ModelFormatError("Network document must be a JSON object")
    if document.get('format') != FORMAT_NAME:
        raise ModelFormatError(
            f"Unexpected format tag {document.get('format')!r}"
        )
    if document.get('version') != FORMAT_VERSION:
        raise ModelFormatError(
            f"Unsupported format version {document.get('version')!r}"
        )

    layers_data = document.get('layers')
    if not isinstance(layers_data, list) or not layers_data:
        raise ModelFormatError("Network document must list at least one layer")
    if document.get('layer_count') != len(layers_data):
        raise ModelFormatError(
            f"layer_count is {document.get('layer_count')!r} but "
            f"{len(layers_data)} layer(s) are present"
        )

    layers: List[Layer] = []
    for index, data in enumerate(layers_data):
        _validate_layer(index, data)
        if layers and layers[-1].output_size != data['input_size']:
            raise ModelFormatError(
                f"Layer {index} expects {data['input_size']} inputs but the "
                f"previous layer produces {layers[-1].output_size}"
            )
        layers.append(Layer.from_dict(data))

    return Network(layers)


def network_from_text(text: str) -> Network:
    """Parse a JSON text document into a network."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ModelFormatError(f"Network document is not valid JSON: {e}") from e
    return network_from_dict(document)


def save_network_file(network: Network, path: str) -> None:
    """
    Write ``network`` to ``path``, creating parent directories as needed.

    Raises:
        ModelFormatError: If the network has non-finite parameters
        ModelIOError: If the file cannot be created or written
    """
    text = network_to_text(network)
    try:
        directory = os.path.dirname(path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
    except OSError as e:
        raise ModelIOError(f"Could not save network to '{path}': {e}") from e

    logger.info(f"Saved network {network.layer_sizes} to '{path}'")


def load_network_file(path: str) -> Network:
    """
    Read a network previously written by ``save_network_file``.

    Raises:
        ModelIOError: If the file cannot be opened or read
        ModelFormatError: If its contents are not a valid network document
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except OSError as e:
        raise ModelIOError(f"Could not load network from '{path}': {e}") from e
    except UnicodeDecodeError as e:
        raise ModelFormatError(f"'{path}' is not a text file: {e}") from e

    network = network_from_text(text)
    logger.info(f"Loaded network {network.layer_sizes} from '{path}'")
    return network
