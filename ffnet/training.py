"""
training.py
~~~~~~~~~~~

Bookkeeping for the convergence-driven training loops.

A run starts in ``RUNNING`` with the loss of the untrained network as its
baseline: the first epoch is compared against it for convergence, and the
untrained validation loss is the best value to beat for early stopping.
The run ends in exactly one of ``CONVERGED``, ``MAX_EPOCHS_REACHED`` or
``EARLY_STOPPED``. The epoch budget is checked before every epoch, so a run
never exceeds ``max_epochs`` regardless of the tolerance.
"""

import enum
import logging
import math
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from ffnet.linalg import Vector

logger = logging.getLogger(__name__)

# Signature of the progress sink given to the training loops
ProgressCallback = Callable[[Dict[str, Any]], None]


class StopReason(enum.Enum):
    RUNNING = 'running'
    CONVERGED = 'converged'
    MAX_EPOCHS_REACHED = 'max_epochs_reached'
    EARLY_STOPPED = 'early_stopped'


class TrainingReport:
    """Outcome of a convergence-driven training run."""

    def __init__(self):
        self.stop_reason = StopReason.RUNNING
        self.epochs_run = 0
        self.loss_history: List[float] = []
        self.accuracy_history: List[float] = []
        self.validation_history: List[float] = []
        # None while no epoch has beaten the untrained validation loss
        self.best_epoch: Optional[int] = None
        self.best_validation_loss = math.inf

    @property
    def final_loss(self) -> Optional[float]:
        return self.loss_history[-1] if self.loss_history else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stop_reason': self.stop_reason.value,
            'epochs_run': self.epochs_run,
            'loss_history': list(self.loss_history),
            'accuracy_history': list(self.accuracy_history),
            'validation_history': list(self.validation_history),
            'best_epoch': self.best_epoch,
            'best_validation_loss': (
                None if math.isinf(self.best_validation_loss)
                else self.best_validation_loss
            )
        }

    def __repr__(self) -> str:
        return (
            f"TrainingReport(stop_reason={self.stop_reason.value}, "
            f"epochs_run={self.epochs_run}, final_loss={self.final_loss})"
        )


def run_until_convergence(
    network,
    run_epoch: Callable[[], None],
    inputs: Sequence[Vector],
    targets: Sequence[Vector],
    max_epochs: int,
    tolerance: float,
    validation_inputs: Optional[Sequence[Vector]] = None,
    validation_targets: Optional[Sequence[Vector]] = None,
    patience: Optional[int] = None,
    callback: Optional[ProgressCallback] = None
) -> TrainingReport:
    """
    Repeat ``run_epoch`` until the training loss stops moving.

    Args:
        network: Network being trained; used to evaluate losses
        run_epoch: Performs one epoch of updates on ``network``
        inputs: Training inputs, evaluated after every epoch
        targets: Training targets
        max_epochs: Hard limit on the number of epochs
        tolerance: Stop once ``|prev_loss - loss| <= tolerance``
        validation_inputs: Optional held-out inputs tracked per epoch
        validation_targets: Targets for ``validation_inputs``
        patience: With a validation set, stop after this many consecutive
            epochs without a new best validation loss
        callback: Progress sink called once per epoch

    Returns:
        TrainingReport: Histories and the reason the loop stopped
    """
    if max_epochs < 0:
        raise ValueError(f"max_epochs must be non-negative, got {max_epochs}")
    if tolerance < 0:
        raise ValueError(f"tolerance must be non-negative, got {tolerance}")
    if patience is not None and patience < 1:
        raise ValueError(f"patience must be at least 1, got {patience}")
    has_validation = validation_inputs is not None
    if patience is not None and not has_validation:
        raise ValueError("Early stopping requires a validation set")

    report = TrainingReport()
    # Baseline before any update
    prev_loss = network.loss_batch(inputs, targets)
    if has_validation:
        report.best_validation_loss = network.loss_batch(
            validation_inputs, validation_targets
        )
    patience_counter = 0
    start_time = time.time()

    while report.stop_reason is StopReason.RUNNING:
        if report.epochs_run >= max_epochs:
            report.stop_reason = StopReason.MAX_EPOCHS_REACHED
            break

        run_epoch()
        epoch = report.epochs_run
        report.epochs_run += 1

        loss, accuracy = network.evaluate_batch(inputs, targets)
        report.loss_history.append(loss)
        report.accuracy_history.append(accuracy)

        progress = {
            'epoch': report.epochs_run,
            'total_epochs': max_epochs,
            'loss': loss,
            'accuracy': accuracy,
            'elapsed_time': time.time() - start_time
        }

        if has_validation:
            validation_loss = network.loss_batch(
                validation_inputs, validation_targets
            )
            report.validation_history.append(validation_loss)
            progress['validation_loss'] = validation_loss

            if validation_loss < report.best_validation_loss:
                report.best_validation_loss = validation_loss
                report.best_epoch = epoch
                patience_counter = 0
            else:
                patience_counter += 1

        logger.debug(
            f"Epoch {report.epochs_run}/{max_epochs}: loss={loss:.6f}, "
            f"accuracy={accuracy:.3f}"
        )
        if callback is not None:
            callback(progress)

        if patience is not None and patience_counter >= patience:
            report.stop_reason = StopReason.EARLY_STOPPED
        elif abs(prev_loss - loss) <= tolerance:
            report.stop_reason = StopReason.CONVERGED
        prev_loss = loss

    logger.info(
        f"Training stopped ({report.stop_reason.value}) after "
        f"{report.epochs_run} epoch(s), final loss {report.final_loss}"
    )
    return report
