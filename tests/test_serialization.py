"""
test_serialization.py
~~~~~~~~~~~~~~~~~~~~~

Tests for the JSON network format and file save/load.
"""

import json
import os

import numpy as np
import pytest

from ffnet.errors import ModelFormatError, ModelIOError
from ffnet.layer import Layer
from ffnet.linalg import Matrix, Vector
from ffnet.network import Network
from ffnet.serialization import (
    FORMAT_NAME,
    FORMAT_VERSION,
    NetworkEncoder,
    network_from_text,
    network_to_dict,
    network_to_text
)


@pytest.fixture
def mixed_network(rng):
    return Network([
        Layer.create(3, 4, activation='tanh', rng=rng),
        Layer.create(4, 2, activation='sigmoid', rng=rng),
        Layer.create(2, 1, activation='identity', rng=rng)
    ])


@pytest.mark.unit
class TestTextFormat:
    """Document structure and validation."""

    def test_document_describes_every_layer(self, mixed_network):
        document = json.loads(network_to_text(mixed_network))
        assert document['format'] == FORMAT_NAME
        assert document['version'] == FORMAT_VERSION
        assert document['layer_count'] == 3
        assert [l['activation'] for l in document['layers']] == [
            'tanh', 'sigmoid', 'identity'
        ]
        assert document['layers'][0]['input_size'] == 3
        assert len(document['layers'][0]['weights']) == 4

    def test_text_round_trip_is_exact(self, mixed_network):
        restored = network_from_text(network_to_text(mixed_network))
        assert restored == mixed_network
        x = Vector([0.1, 0.2, 0.3])
        assert restored.forward(x) == mixed_network.forward(x)

    def test_network_methods_delegate(self, mixed_network):
        assert Network.from_text(mixed_network.to_text()) == mixed_network

    def test_encoder_handles_numpy(self):
        text = json.dumps(
            {'a': np.array([1.0, 2.0]), 'b': np.float64(3.5)},
            cls=NetworkEncoder
        )
        assert json.loads(text) == {'a': [1.0, 2.0], 'b': 3.5}

    def test_not_json(self):
        with pytest.raises(ModelFormatError):
            network_from_text("Layer 1 2 3 Layer 4 5")

    @pytest.mark.parametrize('mutate', [
        lambda d: d.update(format='other'),
        lambda d: d.update(version=99),
        lambda d: d.update(layer_count=5),
        lambda d: d.update(layers=[]),
        lambda d: d['layers'][0].pop('weights'),
        lambda d: d['layers'][0].update(activation='relu'),
        lambda d: d['layers'][0].update(activation=['sigmoid']),
        lambda d: d['layers'][0].update(input_size=0),
        lambda d: d['layers'][0].update(output_size=True),
        lambda d: d['layers'][0]['weights'].pop(),
        lambda d: d['layers'][0]['weights'][0].append(1.0),
        lambda d: d['layers'][0]['weights'][1].__setitem__(0, 'x'),
        lambda d: d['layers'][0]['biases'].append(0.0),
        lambda d: d['layers'][1]['biases'].__setitem__(0, None),
        lambda d: d['layers'].__setitem__(0, 'layer'),
    ])
    def test_invalid_documents_rejected(self, mixed_network, mutate):
        document = network_to_dict(mixed_network)
        mutate(document)
        with pytest.raises(ModelFormatError):
            network_from_text(json.dumps(document))

    def test_incompatible_adjacent_layers_rejected(self, rng):
        document = network_to_dict(Network([
            Layer.create(2, 3, rng=rng), Layer.create(3, 1, rng=rng)
        ]))
        document['layers'][1] = Layer.create(4, 1, rng=rng).to_dict()
        with pytest.raises(ModelFormatError):
            network_from_text(json.dumps(document))

    @pytest.mark.parametrize('value', ['NaN', 'Infinity', '1' + '0' * 400])
    def test_non_finite_values_rejected(self, value):
        network = Network([Layer(Matrix([[1.0]]), Vector([0.0]))])
        text = network_to_text(network).replace('1.0', value, 1)
        with pytest.raises(ModelFormatError):
            network_from_text(text)

    def test_non_finite_parameters_not_written(self):
        network = Network([Layer(Matrix([[float('nan')]]), Vector([0.0]))])
        with pytest.raises(ModelFormatError):
            network_to_text(network)

    def test_top_level_must_be_object(self):
        with pytest.raises(ModelFormatError):
            network_from_text('[1, 2, 3]')


@pytest.mark.unit
class TestFiles:
    """save/load to paths."""

    def test_save_then_load(self, mixed_network, tmp_path):
        path = str(tmp_path / "net.json")
        mixed_network.save(path)
        loaded = Network.load(path)

        assert len(loaded.layers) == len(mixed_network.layers)
        for original, restored in zip(mixed_network.layers, loaded.layers):
            assert restored.weights.allclose(original.weights, 1e-12)
            assert restored.biases.allclose(original.biases, 1e-12)

    def test_save_creates_directories(self, mixed_network, tmp_path):
        path = str(tmp_path / "nested" / "dir" / "net.json")
        mixed_network.save(path)
        assert os.path.exists(path)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ModelIOError):
            Network.load(str(tmp_path / "missing.json"))

    def test_save_to_directory_path_fails(self, mixed_network, tmp_path):
        with pytest.raises(ModelIOError):
            mixed_network.save(str(tmp_path))

    def test_load_garbage_file(self, tmp_path):
        path = tmp_path / "garbage.json"
        path.write_text("Layer\nnot a network\nLayer")
        with pytest.raises(ModelFormatError):
            Network.load(str(path))

    def test_load_binary_file(self, tmp_path):
        path = tmp_path / "binary.json"
        path.write_bytes(b'\xff\xfe\x00\x81')
        with pytest.raises(ModelFormatError):
            Network.load(str(path))

    def test_save_diverged_network_fails_without_writing(self, tmp_path):
        network = Network([Layer(Matrix([[1.0]]), Vector([float('inf')]))])
        path = tmp_path / "diverged.json"
        with pytest.raises(ModelFormatError):
            network.save(str(path))
        assert not path.exists()
