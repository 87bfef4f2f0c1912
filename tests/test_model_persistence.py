"""
test_model_persistence.py
~~~~~~~~~~~~~~~~~~~~~~~~~~

Unit tests for the SQLite network registry.
"""

import os
import sqlite3

import numpy as np
import pytest

from ffnet.datasets import xor_dataset
from ffnet.linalg import Vector
from ffnet.network import Network
from ffnet.model_persistence import (
    save_network,
    load_network,
    list_saved_networks,
    delete_network,
    get_network_metadata,
    delete_old_networks,
    ModelDatabase
)


def age_network(db_dir: str, network_id: str, modifier: str) -> None:
    """Move a network's created_at into the past, e.g. '-3 days'."""
    conn = sqlite3.connect(os.path.join(db_dir, "networks.db"))
    conn.execute(
        "UPDATE networks SET created_at = datetime('now', ?) "
        "WHERE network_id = ?",
        (modifier, network_id)
    )
    conn.commit()
    conn.close()


@pytest.fixture
def trained_network():
    """A 2-3-1 network with a few epochs of XOR training applied."""
    net = Network.create([2, 3, 1], rng=np.random.default_rng(0))
    inputs, targets = xor_dataset()
    net.train_epochs(inputs, targets, 0.5, 5)
    return net


@pytest.mark.unit
class TestModelPersistence:
    """Test basic registry operations."""

    def test_save_network_creates_database(self, simple_network, temp_db_dir):
        success = save_network(
            simple_network, "test_network_1", model_dir=temp_db_dir, trained=False
        )

        assert success is True
        assert os.path.exists(f"{temp_db_dir}/networks.db")

    def test_save_network_with_metadata(self, trained_network, temp_db_dir):
        network_id = "trained_network_1"

        success = save_network(
            trained_network, network_id, model_dir=temp_db_dir,
            trained=True, loss=0.12, accuracy=0.75
        )
        assert success is True

        metadata = get_network_metadata(network_id, temp_db_dir)
        assert metadata is not None
        assert metadata['network_id'] == network_id
        assert metadata['trained'] is True
        assert metadata['loss'] == 0.12
        assert metadata['accuracy'] == 0.75
        assert metadata['layer_sizes'] == [2, 3, 1]
        assert metadata['weights_shape'] == [[3, 2], [1, 3]]

    def test_load_preserves_parameters(self, trained_network, temp_db_dir):
        save_network(trained_network, "params", model_dir=temp_db_dir)
        loaded = load_network("params", temp_db_dir)

        assert isinstance(loaded, Network)
        assert loaded == trained_network

    def test_load_nonexistent_network(self, temp_db_dir):
        assert load_network("nonexistent", temp_db_dir) is None

    def test_invalid_network_id(self, simple_network, temp_db_dir):
        assert save_network(simple_network, "", model_dir=temp_db_dir) is False
        assert load_network(None, temp_db_dir) is None
        assert delete_network("", temp_db_dir) is False
        assert get_network_metadata("", temp_db_dir) is None

    def test_invalid_accuracy_not_saved(self, simple_network, temp_db_dir):
        success = save_network(
            simple_network, "bad_accuracy", model_dir=temp_db_dir, accuracy=1.5
        )
        assert success is False
        assert load_network("bad_accuracy", temp_db_dir) is None

    def test_diverged_network_not_saved(self, temp_db_dir):
        diverged = Network.create([2, 1], rng=np.random.default_rng(0))
        diverged.layers[0].weights.set_element(0, 0, float('nan'))

        assert save_network(diverged, "diverged", model_dir=temp_db_dir) is False
        assert get_network_metadata("diverged", temp_db_dir) is None

    def test_database_rejects_invalid_accuracy(self, simple_network, temp_db_dir):
        db = ModelDatabase(db_path=os.path.join(temp_db_dir, "networks.db"))
        with pytest.raises(ValueError):
            db.save_network_to_db(simple_network, "x", accuracy=-0.1)

    def test_list_saved_networks_empty(self, temp_db_dir):
        assert list_saved_networks(temp_db_dir) == []

    def test_list_saved_networks(self, simple_network, temp_db_dir):
        save_network(simple_network, "net1", model_dir=temp_db_dir, accuracy=0.9)
        save_network(simple_network, "net2", model_dir=temp_db_dir, trained=False)

        networks = list_saved_networks(temp_db_dir)

        assert {net['network_id'] for net in networks} == {"net1", "net2"}
        for net in networks:
            assert net['layer_sizes'] == [3, 4, 2]
            assert 'created_at' in net and 'updated_at' in net

    def test_delete_network(self, simple_network, temp_db_dir):
        save_network(simple_network, "delete_test", model_dir=temp_db_dir)
        assert load_network("delete_test", temp_db_dir) is not None

        assert delete_network("delete_test", temp_db_dir) is True
        assert load_network("delete_test", temp_db_dir) is None

    def test_delete_nonexistent_network(self, temp_db_dir):
        assert delete_network("nonexistent", temp_db_dir) is False

    def test_update_network(self, simple_network, temp_db_dir):
        network_id = "update_test"
        save_network(simple_network, network_id, model_dir=temp_db_dir, trained=False)
        age_network(temp_db_dir, network_id, '-1 hour')
        created_at = get_network_metadata(network_id, temp_db_dir)['created_at']

        save_network(
            simple_network, network_id, model_dir=temp_db_dir,
            trained=True, accuracy=0.88
        )

        metadata = get_network_metadata(network_id, temp_db_dir)
        assert metadata['trained'] is True
        assert metadata['accuracy'] == 0.88
        assert metadata['created_at'] == created_at
        assert len(list_saved_networks(temp_db_dir)) == 1

    def test_corrupt_document_returns_none(self, simple_network, temp_db_dir):
        save_network(simple_network, "corrupt", model_dir=temp_db_dir)
        conn = sqlite3.connect(os.path.join(temp_db_dir, "networks.db"))
        conn.execute(
            "UPDATE networks SET network_data = 'Layer garbage' "
            "WHERE network_id = 'corrupt'"
        )
        conn.commit()
        conn.close()

        assert load_network("corrupt", temp_db_dir) is None


@pytest.mark.integration
class TestPersistenceIntegration:
    """Integration tests for the registry."""

    def test_save_load_train_cycle(self, simple_network, temp_db_dir):
        network_id = "cycle_test"
        save_network(simple_network, network_id, model_dir=temp_db_dir, trained=False)

        loaded = load_network(network_id, temp_db_dir)
        rng = np.random.default_rng(1)
        inputs = [Vector(rng.normal(size=3)) for _ in range(4)]
        targets = [Vector(rng.uniform(size=2)) for _ in range(4)]
        loss, accuracy = loaded.train_epoch(inputs, targets, 0.1)

        save_network(
            loaded, network_id, model_dir=temp_db_dir,
            trained=True, loss=loss, accuracy=accuracy
        )

        final = load_network(network_id, temp_db_dir)
        metadata = get_network_metadata(network_id, temp_db_dir)
        assert final == loaded
        assert final != simple_network
        assert metadata['trained'] is True
        assert metadata['loss'] == loss

    def test_multiple_networks_coexist(self, temp_db_dir):
        networks_to_create = [
            ([4, 8, 3], "wide_network"),
            ([3, 4, 2], "simple_network"),
            ([10, 20, 20, 10], "deep_network")
        ]

        for layer_sizes, network_id in networks_to_create:
            save_network(Network.create(layer_sizes), network_id, model_dir=temp_db_dir)

        assert len(list_saved_networks(temp_db_dir)) == len(networks_to_create)
        for layer_sizes, network_id in networks_to_create:
            loaded = load_network(network_id, temp_db_dir)
            assert loaded is not None
            assert loaded.layer_sizes == layer_sizes


class TestDeleteOldNetworks:
    """Tests for automatic cleanup of old networks."""

    def test_delete_old_networks_basic(self, simple_network, temp_db_dir):
        save_network(simple_network, "old", model_dir=temp_db_dir)
        age_network(temp_db_dir, "old", '-3 days')

        assert delete_old_networks(days=2, model_dir=temp_db_dir) == 1
        assert load_network("old", temp_db_dir) is None

    def test_delete_old_networks_preserves_recent(self, simple_network, temp_db_dir):
        save_network(simple_network, "recent", model_dir=temp_db_dir)

        assert delete_old_networks(days=2, model_dir=temp_db_dir) == 0
        assert load_network("recent", temp_db_dir) is not None

    def test_delete_old_networks_mixed_ages(self, simple_network, temp_db_dir):
        old_ids = ["old_1", "old_2"]
        recent_ids = ["recent_1", "recent_2"]
        for network_id in old_ids + recent_ids:
            save_network(simple_network, network_id, model_dir=temp_db_dir)
        for network_id in old_ids:
            age_network(temp_db_dir, network_id, '-3 days')

        assert delete_old_networks(days=2, model_dir=temp_db_dir) == len(old_ids)
        for network_id in old_ids:
            assert load_network(network_id, temp_db_dir) is None
        for network_id in recent_ids:
            assert load_network(network_id, temp_db_dir) is not None

    def test_delete_old_networks_custom_days(self, simple_network, temp_db_dir):
        save_network(simple_network, "aged", model_dir=temp_db_dir)
        age_network(temp_db_dir, "aged", '-5 days')

        assert delete_old_networks(days=7, model_dir=temp_db_dir) == 0
        assert delete_old_networks(days=3, model_dir=temp_db_dir) == 1

    def test_delete_old_networks_empty_db(self, temp_db_dir):
        assert delete_old_networks(days=2, model_dir=temp_db_dir) == 0

    def test_delete_old_networks_negative_days(self, temp_db_dir):
        with pytest.raises(ValueError) as exc_info:
            delete_old_networks(days=-1, model_dir=temp_db_dir)
        assert "non-negative" in str(exc_info.value)

    def test_model_database_delete_old_networks_method(self, temp_db_dir):
        db = ModelDatabase(db_path=os.path.join(temp_db_dir, "networks.db"))
        db.save_network_to_db(Network.create([3, 4, 2]), "test_network", trained=False)
        age_network(temp_db_dir, "test_network", '-3 days')

        assert db.delete_old_networks_from_db(days=2) == 1
        assert db.load_network_from_db("test_network") is None
