#!/usr/bin/env python3
"""
Train a small network on XOR and save it to disk.

Usage:
    python scripts/train_xor.py [output_path]

The script will:
1. Build a [2, 4, 1] sigmoid network
2. Train it until the loss stops improving (or 20000 epochs pass)
3. Save it as a JSON document (default: models/xor.json)
4. Reload the saved file and print its predictions
"""

import os
import sys
from typing import Any, Dict

import numpy as np

from ffnet.datasets import xor_dataset
from ffnet.errors import FFNetError
from ffnet.network import Network

LEARNING_RATE = 0.5
MAX_EPOCHS = 20000
TOLERANCE = 1e-7
REPORT_EVERY = 1000


def print_progress(data: Dict[str, Any]) -> None:
    """Progress sink: one line every REPORT_EVERY epochs."""
    if data['epoch'] % REPORT_EVERY == 0:
        print(
            f"   epoch {data['epoch']:>6}: loss={data['loss']:.6f} "
            f"accuracy={data['accuracy']:.2f}"
        )


def main():
    """Train, save, reload and report."""
    print("=" * 60)
    print("XOR training")
    print("=" * 60)

    script_dir = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.dirname(script_dir)
    default_path = os.path.join(project_root, 'models', 'xor.json')
    output_path = sys.argv[1] if len(sys.argv) > 1 else default_path

    inputs, targets = xor_dataset()
    net = Network.create([2, 4, 1], rng=np.random.default_rng(7))

    try:
        print(f"\n🏋️  Training {net!r} (lr={LEARNING_RATE})")
        report = net.train_until_convergence(
            inputs, targets, LEARNING_RATE, MAX_EPOCHS, TOLERANCE,
            callback=print_progress
        )
        print(
            f"✅ Stopped: {report.stop_reason.value} after "
            f"{report.epochs_run} epochs, loss={report.final_loss:.6f}"
        )

        print(f"\n💾 Saving to: {output_path}")
        net.save(output_path)

        print("\n🔍 Reloading and predicting...")
        loaded = Network.load(output_path)
        for input, target in zip(inputs, targets):
            output = loaded.predict(input).get_element(0)
            print(
                f"   {input.to_list()} -> {output:.3f} "
                f"(target {target.get_element(0):.0f})"
            )

    except FFNetError as e:
        print(f"\n❌ Error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
