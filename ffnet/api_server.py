"""
api_server.py
~~~~~~~~~~~~~

Flask-based REST API server with WebSocket support for network training.

This module provides endpoints for:
- Creating networks from layer sizes and managing them
- Training networks in the background with real-time progress updates
- Running predictions and evaluations on submitted examples
- Exporting/importing networks as JSON documents
- Persisting networks to/from the SQLite registry

The server uses:
- Flask for REST API endpoints
- Flask-SocketIO for WebSocket communication
- Gevent for async background training tasks
- Matplotlib for rendering loss curves
"""

import os
import sys
import math
import uuid
import base64
import logging
from io import BytesIO
from typing import Dict, Any, List, Optional

import gevent
import numpy as np
from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO

# Use non-GUI backend for matplotlib (required for server environments)
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from ffnet.activations import ACTIVATIONS
from ffnet.errors import ModelFormatError, ShapeMismatchError
from ffnet.linalg import Vector
from ffnet.network import Network, DEFAULT_LEARNING_RATE
from ffnet.serialization import network_from_dict, network_to_text
from ffnet.model_persistence import (
    save_network,
    list_saved_networks,
    load_network,
    delete_network,
    delete_old_networks
)

# ============================================================================
# LOGGING SETUP
# ============================================================================

def configure_logging() -> None:
    """
    Set up logging based on environment.

    - In production: Show fewer logs (less noise) but keep important logs
    - In development: Show more detailed logs for debugging
    """
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    is_production = os.getenv('FLASK_ENV') == 'production'

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # In production, silence noisy third-party logs but keep our logs visible
    if is_production:
        for logger_name in ['socketio', 'engineio', 'engineio.server',
                            'socketio.server', 'werkzeug']:
            logging.getLogger(logger_name).setLevel(logging.WARNING)
        logging.getLogger('ffnet').setLevel(logging.INFO)
    else:
        logging.getLogger('socketio').setLevel(logging.INFO)
        logging.getLogger('engineio').setLevel(logging.INFO)


configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# FLASK APP SETUP
# ============================================================================

app = Flask(__name__)
CORS(app, resources={r"/*": {"origins": "*"}})

is_production = os.getenv('FLASK_ENV') == 'production'

# Directory holding the SQLite registry
MODEL_DIR = os.getenv('MODEL_DIR', 'models')

# SocketIO pushes per-epoch training updates to connected clients
socketio = SocketIO(
    app,
    cors_allowed_origins="*",
    async_mode='gevent',
    logger=not is_production,
    engineio_logger=not is_production,
    ping_timeout=60,
    ping_interval=25
)

# ============================================================================
# GLOBAL STATE
# ============================================================================

# Networks currently loaded in memory: {network_id: network_info}
active_networks: Dict[str, Dict[str, Any]] = {}

# Training jobs being tracked: {job_id: job_info}
training_jobs: Dict[str, Dict[str, Any]] = {}


def _network_info(
    net: Network,
    trained: bool = False,
    loss: Optional[float] = None,
    accuracy: Optional[float] = None
) -> Dict[str, Any]:
    return {
        'network': net,
        'layer_sizes': net.layer_sizes,
        'trained': trained,
        'loss': loss,
        'accuracy': accuracy,
        'loss_history': [],
        'validation_history': []
    }


def reload_saved_networks() -> None:
    """
    Reload all saved networks from the registry into memory.

    Called at startup so networks saved before a restart stay available.
    """
    saved_networks = list_saved_networks(MODEL_DIR)

    if not saved_networks:
        logger.info("No saved networks to reload")
        return

    loaded_count = 0
    for net_info in saved_networks:
        network_id = net_info['network_id']
        net = load_network(network_id, MODEL_DIR)
        if net is None:
            logger.warning(f"Failed to load network {network_id}")
            continue
        active_networks[network_id] = _network_info(
            net,
            trained=net_info['trained'],
            loss=net_info['loss'],
            accuracy=net_info['accuracy']
        )
        loaded_count += 1

    logger.info(f"Reloaded {loaded_count} network(s) from registry")


reload_saved_networks()

# ============================================================================
# BACKGROUND TASKS
# ============================================================================

# Flag to ensure cleanup task only starts once
_cleanup_task_started = False


def cleanup_old_networks_task() -> None:
    """
    Delete registry entries older than 2 days, on startup and then daily.

    Networks removed from the registry are dropped from memory too, and
    finished training jobs are forgotten.
    """
    while True:
        try:
            logger.info("Starting automatic cleanup of old networks...")
            deleted_count = delete_old_networks(days=2, model_dir=MODEL_DIR)

            if deleted_count > 0:
                saved_ids = {
                    net['network_id'] for net in list_saved_networks(MODEL_DIR)
                }
                for nid in [n for n in active_networks if n not in saved_ids]:
                    del active_networks[nid]
                    logger.info(f"Removed network {nid} from memory")
            elif deleted_count < 0:
                logger.error("Cleanup returned error code")

            cleanup_finished_training_jobs()

            logger.info("Next cleanup scheduled in 24 hours")
            gevent.sleep(86400)

        except Exception as e:
            logger.exception(f"Error during network cleanup: {e}")
            gevent.sleep(3600)


def cleanup_finished_training_jobs() -> None:
    """Remove completed or failed training jobs from memory."""
    finished_statuses = {'completed', 'failed'}
    jobs_to_remove = [
        job_id for job_id, job_info in training_jobs.items()
        if job_info.get('status') in finished_statuses
    ]

    for job_id in jobs_to_remove:
        del training_jobs[job_id]

    if jobs_to_remove:
        logger.info(f"Cleaned up {len(jobs_to_remove)} finished training job(s)")


def start_cleanup_task() -> None:
    """
    Start the background cleanup task.

    Uses gevent.spawn() directly so it works both when running directly and
    under gunicorn. Calling it more than once has no effect.
    """
    global _cleanup_task_started

    if _cleanup_task_started:
        logger.debug("Cleanup task already started, skipping")
        return

    _cleanup_task_started = True
    logger.info("Starting cleanup task (runs immediately, then every 24 hours)")
    gevent.spawn(cleanup_old_networks_task)


start_cleanup_task()

# ============================================================================
# REQUEST PARSING
# ============================================================================

def _is_finite_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def parse_vectors(data: Dict[str, Any], key: str) -> List[Vector]:
    """
    Read a list of numeric rows from a request body.

    Raises:
        ValueError: If the field is missing or not a list of lists of
            finite numbers
    """
    rows = data.get(key)
    if not isinstance(rows, list) or not rows:
        raise ValueError(f"'{key}' must be a non-empty list of number lists")
    vectors = []
    for row in rows:
        if not isinstance(row, list) or not all(
            _is_finite_number(v) for v in row
        ):
            raise ValueError(
                f"'{key}' must be a non-empty list of finite number lists"
            )
        vectors.append(Vector(row))
    return vectors


def _positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _get_network(network_id: str) -> Optional[Network]:
    info = active_networks.get(network_id)
    return info['network'] if info is not None else None

# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.route('/api/status', methods=['GET'])
def get_status():
    """Return server status and counts of networks and active jobs."""
    active_statuses = ('pending', 'training')
    active_training = sum(
        1 for job in training_jobs.values()
        if job.get('status') in active_statuses
    )

    return jsonify({
        'status': 'online',
        'active_networks': len(active_networks),
        'training_jobs': active_training
    }), 200


@app.route('/api/networks', methods=['POST'])
def create_network():
    """
    Create a new randomly initialised network.

    Request body (optional):
        {'layer_sizes': [2, 3, 1], 'activation': 'sigmoid', 'seed': 42}

    Returns:
        JSON with network_id, layer_sizes, and status
    """
    data = request.get_json(silent=True) or {}
    layer_sizes = data.get('layer_sizes', [2, 3, 1])
    activation = data.get('activation', 'sigmoid')
    seed = data.get('seed')

    if (not isinstance(layer_sizes, list) or len(layer_sizes) < 2
            or not all(_positive_int(size) for size in layer_sizes)):
        logger.warning(f"Invalid layer sizes requested: {layer_sizes}")
        return jsonify({
            'error': 'layer_sizes must list at least 2 positive integers'
        }), 400
    if activation not in ACTIVATIONS:
        return jsonify({
            'error': f'activation must be one of {sorted(ACTIVATIONS)}'
        }), 400
    if seed is not None and not (isinstance(seed, int) and seed >= 0):
        return jsonify({'error': 'seed must be a non-negative integer'}), 400

    network_id = str(uuid.uuid4())
    net = Network.create(
        layer_sizes, activation=activation, rng=np.random.default_rng(seed)
    )
    active_networks[network_id] = _network_info(net)

    logger.info(f"Created network {network_id} with layer sizes {layer_sizes}")

    return jsonify({
        'network_id': network_id,
        'layer_sizes': layer_sizes,
        'activation': activation,
        'status': 'created'
    }), 201


@app.route('/api/networks', methods=['GET'])
def list_networks():
    """List all networks, in memory and saved in the registry."""
    in_memory = [
        {
            'network_id': nid,
            'layer_sizes': info['layer_sizes'],
            'trained': info['trained'],
            'loss': info['loss'],
            'accuracy': info['accuracy'],
            'status': 'in_memory'
        }
        for nid, info in active_networks.items()
    ]

    saved_only = []
    for net in list_saved_networks(MODEL_DIR):
        if net['network_id'] not in active_networks:
            net['status'] = 'saved'
            saved_only.append(net)

    return jsonify({'networks': in_memory + saved_only}), 200


@app.route('/api/networks/<network_id>', methods=['GET'])
def get_network(network_id: str):
    """Describe a network: sizes, activations and training state."""
    info = active_networks.get(network_id)
    if info is None:
        return jsonify({'error': 'Network not found'}), 404

    net = info['network']
    return jsonify({
        'network_id': network_id,
        'layer_sizes': info['layer_sizes'],
        'activations': [layer.activation.name for layer in net.layers],
        'trained': info['trained'],
        'loss': info['loss'],
        'accuracy': info['accuracy'],
        'epochs_trained': len(info['loss_history'])
    }), 200


@app.route('/api/networks/<network_id>', methods=['DELETE'])
def delete_network_endpoint(network_id: str):
    """Delete a network from both memory and the registry."""
    deleted_from_memory = active_networks.pop(network_id, None) is not None
    deleted_from_disk = delete_network(network_id, MODEL_DIR)

    if not deleted_from_memory and not deleted_from_disk:
        logger.warning(f"Delete attempted for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    logger.info(
        f"Deleted network {network_id}: memory={deleted_from_memory}, "
        f"disk={deleted_from_disk}"
    )
    return jsonify({
        'network_id': network_id,
        'deleted_from_memory': deleted_from_memory,
        'deleted_from_disk': deleted_from_disk
    }), 200


@app.route('/api/networks', methods=['DELETE'])
def delete_all_networks():
    """Delete all networks from both memory and the registry."""
    saved_ids = [net['network_id'] for net in list_saved_networks(MODEL_DIR)]
    all_network_ids = set(active_networks) | set(saved_ids)

    deleted_from_memory_count = len(active_networks)
    active_networks.clear()
    deleted_from_disk_count = sum(
        1 for network_id in saved_ids if delete_network(network_id, MODEL_DIR)
    )

    logger.info(
        f"Deleted all networks: {len(all_network_ids)} total, "
        f"{deleted_from_memory_count} from memory, "
        f"{deleted_from_disk_count} from disk"
    )
    return jsonify({
        'deleted_count': len(all_network_ids),
        'deleted_from_memory': deleted_from_memory_count,
        'deleted_from_disk': deleted_from_disk_count
    }), 200


@app.route('/api/networks/<network_id>/train', methods=['POST'])
def train_network(network_id: str):
    """
    Start training a network in the background.

    Request body:
        {
            'inputs': [[0, 0], [0, 1], ...],
            'targets': [[0], [1], ...],
            'epochs': 100,                  # max epochs
            'learning_rate': 0.1,
            'batch_size': null,             # per-example updates when null
            'tolerance': 0.0,
            'validation_inputs': [...],     # optional
            'validation_targets': [...],    # optional
            'patience': null,               # early stopping, needs validation
            'seed': null
        }

    Returns:
        JSON with job_id, network_id, and status
    """
    net = _get_network(network_id)
    if net is None:
        logger.warning(f"Training requested for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    data = request.get_json(silent=True) or {}
    try:
        inputs = parse_vectors(data, 'inputs')
        targets = parse_vectors(data, 'targets')
        validation_inputs = validation_targets = None
        if 'validation_inputs' in data or 'validation_targets' in data:
            validation_inputs = parse_vectors(data, 'validation_inputs')
            validation_targets = parse_vectors(data, 'validation_targets')
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    epochs = data.get('epochs', 100)
    learning_rate = data.get('learning_rate', DEFAULT_LEARNING_RATE)
    batch_size = data.get('batch_size')
    tolerance = data.get('tolerance', 0.0)
    patience = data.get('patience')
    seed = data.get('seed')

    if not _positive_int(epochs):
        return jsonify({'error': 'epochs must be a positive integer'}), 400
    if not _is_finite_number(learning_rate) or learning_rate <= 0:
        return jsonify({'error': 'learning_rate must be a positive number'}), 400
    if batch_size is not None and not _positive_int(batch_size):
        return jsonify({'error': 'batch_size must be a positive integer'}), 400
    if not _is_finite_number(tolerance) or tolerance < 0:
        return jsonify({'error': 'tolerance must be a non-negative number'}), 400
    if patience is not None:
        if not _positive_int(patience):
            return jsonify({'error': 'patience must be a positive integer'}), 400
        if validation_inputs is None:
            return jsonify({'error': 'patience requires validation data'}), 400
    if seed is not None and not (isinstance(seed, int) and seed >= 0):
        return jsonify({'error': 'seed must be a non-negative integer'}), 400

    try:
        net.evaluate_batch(inputs, targets)
        if validation_inputs is not None:
            net.evaluate_batch(validation_inputs, validation_targets)
    except ShapeMismatchError as e:
        return jsonify({'error': str(e)}), 400

    job_id = str(uuid.uuid4())
    training_jobs[job_id] = {
        'network_id': network_id,
        'status': 'pending',
        'progress': 0,
        'epochs': epochs
    }

    logger.info(
        f"Created training job {job_id} for network {network_id}: "
        f"epochs={epochs}, batch_size={batch_size}, lr={learning_rate}"
    )

    params = {
        'inputs': inputs,
        'targets': targets,
        'validation_inputs': validation_inputs,
        'validation_targets': validation_targets,
        'epochs': epochs,
        'learning_rate': learning_rate,
        'batch_size': batch_size,
        'tolerance': tolerance,
        'patience': patience,
        'seed': seed
    }
    socketio.start_background_task(train_network_task, network_id, job_id, params)

    return jsonify({
        'job_id': job_id,
        'network_id': network_id,
        'status': 'training_started'
    }), 202


def run_training(net: Network, params: Dict[str, Any], callback) -> Any:
    """Pick the training loop matching the requested options and run it."""
    rng = np.random.default_rng(params['seed'])
    inputs, targets = params['inputs'], params['targets']
    validation_inputs = params['validation_inputs']
    validation_targets = params['validation_targets']
    # Validation loops are mini-batch only; one batch of everything when
    # no batch size is given
    batch_size = params['batch_size'] or len(inputs)
    common = {
        'learning_rate': params['learning_rate'],
        'max_epochs': params['epochs'],
        'tolerance': params['tolerance'],
        'callback': callback
    }

    if validation_inputs is not None and params['patience'] is not None:
        return net.train_minibatches_until_convergence_with_validation_and_early_stopping(
            inputs, targets, validation_inputs, validation_targets,
            batch_size=batch_size, patience=params['patience'], rng=rng,
            **common
        )
    if validation_inputs is not None:
        return net.train_minibatches_until_convergence_with_validation(
            inputs, targets, validation_inputs, validation_targets,
            batch_size=batch_size, rng=rng, **common
        )
    if params['batch_size'] is not None:
        return net.train_minibatches_until_convergence(
            inputs, targets, batch_size=batch_size, rng=rng, **common
        )
    return net.train_until_convergence(inputs, targets, **common)


def train_network_task(
    network_id: str,
    job_id: str,
    params: Dict[str, Any]
) -> None:
    """
    Background task that trains a network.

    Sends progress updates via WebSocket as training progresses and saves
    the trained network to the registry.
    """

    def on_epoch_complete(data: Dict[str, Any]) -> None:
        """Called after each training epoch to send progress updates."""
        progress = (data['epoch'] / data['total_epochs']) * 100

        training_jobs[job_id]['status'] = 'training'
        training_jobs[job_id]['progress'] = progress

        socketio.emit('training_update', {
            'job_id': job_id,
            'network_id': network_id,
            'epoch': data['epoch'],
            'total_epochs': data['total_epochs'],
            'loss': data['loss'],
            'accuracy': data['accuracy'],
            'validation_loss': data.get('validation_loss'),
            'elapsed_time': data['elapsed_time'],
            'progress': progress
        })

        # Yield so HTTP requests are served while training runs
        gevent.sleep(0)

    try:
        logger.info(f"Starting training for job {job_id}")
        info = active_networks[network_id]
        net = info['network']

        report = run_training(net, params, on_epoch_complete)
        loss, accuracy = net.evaluate_batch(params['inputs'], params['targets'])

        info['trained'] = True
        info['loss'] = loss
        info['accuracy'] = accuracy
        info['loss_history'].extend(report.loss_history)
        info['validation_history'].extend(report.validation_history)

        training_jobs[job_id].update({
            'status': 'completed',
            'progress': 100,
            'loss': loss,
            'accuracy': accuracy,
            'stop_reason': report.stop_reason.value,
            'epochs_run': report.epochs_run
        })

        save_network(
            net, network_id, model_dir=MODEL_DIR, trained=True,
            loss=loss, accuracy=accuracy
        )

        logger.info(
            f"Training completed for job {job_id}: "
            f"{report.stop_reason.value} after {report.epochs_run} epoch(s), "
            f"loss {loss:.6f}, accuracy {accuracy:.2%}"
        )

        socketio.emit('training_complete', {
            'job_id': job_id,
            'network_id': network_id,
            'status': 'completed',
            'stop_reason': report.stop_reason.value,
            'epochs_run': report.epochs_run,
            'loss': loss,
            'accuracy': accuracy,
            'progress': 100
        })
        gevent.sleep(0)

    except Exception as e:
        logger.exception(f"Training failed for job {job_id}: {e}")

        if job_id in training_jobs:
            training_jobs[job_id]['status'] = 'failed'
            training_jobs[job_id]['error'] = str(e)

        socketio.emit('training_error', {
            'job_id': job_id,
            'network_id': network_id,
            'status': 'failed',
            'error': str(e)
        })
        gevent.sleep(0)


@app.route('/api/training/<job_id>', methods=['GET'])
def get_training_status(job_id: str):
    """Get the current status of a training job."""
    if job_id in training_jobs:
        return jsonify(training_jobs[job_id]), 200

    logger.warning(f"Status requested for non-existent job: {job_id}")
    return jsonify({'error': 'Training job not found'}), 404


@app.route('/api/networks/<network_id>/predict', methods=['POST'])
def predict(network_id: str):
    """
    Run the network on a list of inputs.

    Request body:
        {'inputs': [[0, 1], [1, 1]]}
    """
    net = _get_network(network_id)
    if net is None:
        return jsonify({'error': 'Network not found'}), 404

    data = request.get_json(silent=True) or {}
    try:
        inputs = parse_vectors(data, 'inputs')
        outputs = net.predict_batch(inputs)
    except (ValueError, ShapeMismatchError) as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({
        'network_id': network_id,
        'outputs': [output.to_list() for output in outputs]
    }), 200


@app.route('/api/networks/<network_id>/evaluate', methods=['POST'])
def evaluate(network_id: str):
    """
    Mean loss and accuracy over submitted examples.

    Request body:
        {'inputs': [[0, 1]], 'targets': [[1]]}
    """
    net = _get_network(network_id)
    if net is None:
        return jsonify({'error': 'Network not found'}), 404

    data = request.get_json(silent=True) or {}
    try:
        inputs = parse_vectors(data, 'inputs')
        targets = parse_vectors(data, 'targets')
        loss, accuracy = net.evaluate_batch(inputs, targets)
    except (ValueError, ShapeMismatchError) as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({
        'network_id': network_id,
        'loss': loss,
        'accuracy': accuracy,
        'count': len(inputs)
    }), 200


@app.route('/api/networks/<network_id>/export', methods=['GET'])
def export_network(network_id: str):
    """Return the network's JSON document."""
    net = _get_network(network_id)
    if net is None:
        return jsonify({'error': 'Network not found'}), 404
    try:
        document = network_to_text(net)
    except ModelFormatError as e:
        logger.warning(f"Cannot export network {network_id}: {e}")
        return jsonify({'error': str(e)}), 409
    return app.response_class(document, mimetype='application/json'), 200


@app.route('/api/networks/import', methods=['POST'])
def import_network():
    """Create a network from a JSON document produced by export."""
    document = request.get_json(silent=True)
    try:
        net = network_from_dict(document)
    except ModelFormatError as e:
        logger.warning(f"Rejected network import: {e}")
        return jsonify({'error': str(e)}), 400

    network_id = str(uuid.uuid4())
    active_networks[network_id] = _network_info(net)
    logger.info(f"Imported network {network_id} with layer sizes {net.layer_sizes}")

    return jsonify({
        'network_id': network_id,
        'layer_sizes': net.layer_sizes,
        'status': 'imported'
    }), 201


@app.route('/api/networks/cleanup', methods=['POST'])
def cleanup_old_networks_endpoint():
    """
    Manually trigger cleanup of networks older than specified days.

    Request body (optional):
        {'days': 2}
    """
    data = request.get_json(silent=True) or {}
    days = data.get('days', 2)

    if not isinstance(days, (int, float)) or days < 0:
        return jsonify({'error': 'days must be a non-negative number'}), 400

    deleted_count = delete_old_networks(days=int(days), model_dir=MODEL_DIR)
    if deleted_count == -1:
        return jsonify({'error': 'Error occurred during cleanup'}), 500

    logger.info(
        f"Manual cleanup: deleted {deleted_count} network(s) "
        f"older than {days} day(s)"
    )
    return jsonify({
        'deleted_count': deleted_count,
        'days': days,
        'message': (
            f'Successfully deleted {deleted_count} network(s) '
            f'older than {days} day(s)'
        )
    }), 200

# ============================================================================
# LOSS CURVES
# ============================================================================

def create_loss_curve_image(
    loss_history: List[float],
    validation_history: List[float]
) -> str:
    """
    Render training (and validation) loss per epoch as a PNG.

    Returns:
        Base64-encoded PNG image string
    """
    plt.figure(figsize=(5, 3))
    epochs = range(1, len(loss_history) + 1)
    plt.plot(epochs, loss_history, label='training')
    if validation_history:
        plt.plot(
            range(1, len(validation_history) + 1),
            validation_history,
            label='validation'
        )
        plt.legend()
    plt.xlabel('epoch')
    plt.ylabel('loss')
    plt.title('Loss per epoch')

    buffer = BytesIO()
    plt.savefig(buffer, format='png', bbox_inches='tight')
    buffer.seek(0)
    img_base64 = base64.b64encode(buffer.getvalue()).decode('utf-8')
    plt.close()

    return img_base64


@app.route('/api/networks/<network_id>/loss_curve', methods=['GET'])
def get_loss_curve(network_id: str):
    """Return the network's training loss curve as a base64 PNG."""
    info = active_networks.get(network_id)
    if info is None:
        return jsonify({'error': 'Network not found'}), 404
    if not info['loss_history']:
        return jsonify({'error': 'Network has no training history'}), 404

    return jsonify({
        'network_id': network_id,
        'epochs': len(info['loss_history']),
        'image_data': create_loss_curve_image(
            info['loss_history'], info['validation_history']
        )
    }), 200

# ============================================================================
# SERVER STARTUP
# ============================================================================

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8000))
    logger.info(f"Starting server at http://localhost:{port}/")

    try:
        socketio.run(
            app,
            host='0.0.0.0',
            port=port,
            debug=not is_production,
            use_reloader=False
        )
    except OSError as e:
        if "Address already in use" in str(e):
            logger.error(f"Port {port} is already in use.")
            sys.exit(1)
        raise
