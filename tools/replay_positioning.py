"""Replay a recorded RSSI sample stream through the positioning pipeline.

Loads a dataset written by scripts/generate_rssi_replay_dataset.py, registers
and places its anchors, feeds every sample to PositionPipeline in order and
compares the estimate after each scan cycle with the ground truth.

Usage:
    python tools/replay_positioning.py data/sim/rssi_replay
    python tools/replay_positioning.py data/sim/rssi_replay --preset indoor_cluttered
    python tools/replay_positioning.py data/sim/rssi_replay --config engine.json --plot

The last line of output is a machine-readable summary:
    [REPLAY_SUMMARY] {"n_steps": ..., "fix_rate": ..., ...}

Author: Navigation Engineer
"""

import argparse
import csv
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from blepos.anchors import AnchorRegistry
from blepos.config import EngineConfig, load_config
from blepos.pipeline import PositionPipeline


def load_replay_dataset(dataset_path: Path) -> Dict:
    """Load a replay dataset from directory.

    Args:
        dataset_path: Path to dataset directory.

    Returns:
        Dictionary with 'anchors', 'samples', 'truth' and 'config' keys.
    """
    dataset_path = Path(dataset_path)
    data = {}

    anchors_file = dataset_path / "anchors.json"
    if not anchors_file.exists():
        raise FileNotFoundError(f"anchors.json not found in {dataset_path}")
    with open(anchors_file) as f:
        data["anchors"] = json.load(f)["anchors"]

    samples_file = dataset_path / "samples.csv"
    if not samples_file.exists():
        raise FileNotFoundError(f"samples.csv not found in {dataset_path}")
    samples = []
    with open(samples_file, newline="") as f:
        for row in csv.DictReader(f):
            samples.append({
                "step": int(row["step"]),
                "t": float(row["t"]),
                "anchor_id": row["anchor_id"],
                "rssi": None if row["rssi"] == "" else float(row["rssi"]),
            })
    data["samples"] = samples

    truth_file = dataset_path / "ground_truth.txt"
    if not truth_file.exists():
        raise FileNotFoundError(f"ground_truth.txt not found in {dataset_path}")
    truth = np.atleast_2d(np.loadtxt(truth_file))
    data["truth"] = truth[:, 1:3]

    config_file = dataset_path / "config.json"
    data["config"] = {}
    if config_file.exists():
        with open(config_file) as f:
            data["config"] = json.load(f)

    return data


def build_pipeline(anchors: List[Dict], config: Optional[EngineConfig] = None) -> PositionPipeline:
    """Register, place and calibrate the dataset anchors.

    Anchors without calibration fields keep the engine defaults.
    """
    registry = AnchorRegistry(config)
    for anchor in anchors:
        registry.register_anchor(anchor["id"], anchor.get("name"))
        registry.set_coordinate(anchor["id"], anchor["x"], anchor["y"])
        if "reference_strength" in anchor and "path_loss_exponent" in anchor:
            registry.set_calibration(
                anchor["id"], anchor["reference_strength"], anchor["path_loss_exponent"]
            )
    return PositionPipeline(registry)


def replay(pipeline: PositionPipeline, samples: List[Dict], n_steps: int) -> np.ndarray:
    """Feed samples and record the estimate at the end of each step.

    Returns:
        Estimates [n_steps, 2]; rows are NaN where the position was
        undetermined.
    """
    estimates = np.full((n_steps, 2), np.nan)

    for sample in sorted(samples, key=lambda s: (s["step"], s["t"])):
        position = pipeline.on_sample(sample["anchor_id"], sample["rssi"])
        step = sample["step"]
        if 0 <= step < n_steps:
            estimates[step] = np.nan if position is None else position

    return estimates


def summarize_errors(estimates: np.ndarray, truth: np.ndarray) -> Dict:
    """Compute fix rate and horizontal error statistics."""
    valid = ~np.isnan(estimates).any(axis=1)
    errors = np.linalg.norm(estimates[valid] - truth[valid], axis=1)

    summary = {
        "n_steps": int(len(truth)),
        "n_fixes": int(valid.sum()),
        "fix_rate": float(valid.mean()) if len(truth) else 0.0,
    }
    if len(errors):
        summary.update({
            "mean_error": float(errors.mean()),
            "median_error": float(np.median(errors)),
            "p95_error": float(np.percentile(errors, 95)),
            "max_error": float(errors.max()),
        })
    return summary


def plot_replay(data: Dict, estimates: np.ndarray, output: Optional[Path] = None) -> None:
    """Plot anchors, ground truth and estimates."""
    fig, ax = plt.subplots(figsize=(8, 8))

    truth = data["truth"]
    ax.plot(truth[:, 0], truth[:, 1], "b.-", label="Ground Truth", alpha=0.6)
    ax.plot(estimates[:, 0], estimates[:, 1], "rx", markersize=8, label="Estimate")

    for i, anchor in enumerate(data["anchors"]):
        ax.plot(anchor["x"], anchor["y"], "^", markersize=15, color="green",
                label="Anchor" if i == 0 else None, zorder=5)
        ax.text(anchor["x"], anchor["y"] + 0.3, anchor.get("name", anchor["id"]),
                ha="center", fontsize=10, fontweight="bold")

    ax.set_xlabel("X (m)", fontsize=12)
    ax.set_ylabel("Y (m)", fontsize=12)
    ax.set_title("RSSI Trilateration Replay", fontsize=14, fontweight="bold")
    ax.axis("equal")
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.tight_layout()

    if output is not None:
        fig.savefig(output, dpi=150)
        print(f"  Saved plot to: {output}")
    else:
        plt.show()
    plt.close(fig)


def main(argv: Optional[List[str]] = None) -> Dict:
    parser = argparse.ArgumentParser(
        description="Replay an RSSI dataset through the positioning pipeline"
    )
    parser.add_argument("dataset", type=str, help="Dataset directory")
    parser.add_argument("--preset", type=str, default=None,
                        help="Engine preset (ble_default, indoor_cluttered, open_space)")
    parser.add_argument("--config", type=str, default=None,
                        help="Engine config JSON file (takes precedence over --preset)")
    parser.add_argument("--plot", action="store_true", help="Plot the replay")
    parser.add_argument("--plot-output", type=str, default=None,
                        help="Save the plot to this file instead of showing it")
    parser.add_argument("--log-level", type=str, default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    args = parser.parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=getattr(logging, args.log_level),
    )

    if args.config is not None:
        config = load_config(args.config)
    elif args.preset is not None:
        config = EngineConfig.from_preset(args.preset)
    else:
        config = EngineConfig()

    print("\n" + "=" * 70)
    print(f"Replaying RSSI Dataset: {Path(args.dataset).name}")
    print("=" * 70)

    data = load_replay_dataset(Path(args.dataset))
    print(f"  Anchors: {len(data['anchors'])}")
    print(f"  Samples: {len(data['samples'])}")
    print(f"  Steps: {len(data['truth'])}")

    pipeline = build_pipeline(data["anchors"], config)
    estimates = replay(pipeline, data["samples"], len(data["truth"]))
    summary = summarize_errors(estimates, data["truth"])

    print(f"\nFixes: {summary['n_fixes']}/{summary['n_steps']} ({summary['fix_rate']:.0%})")
    if "mean_error" in summary:
        print(f"  Error: mean={summary['mean_error']:.3f}m, "
              f"median={summary['median_error']:.3f}m, "
              f"p95={summary['p95_error']:.3f}m, max={summary['max_error']:.3f}m")

    if args.plot or args.plot_output:
        plot_replay(data, estimates, Path(args.plot_output) if args.plot_output else None)

    print(f"[REPLAY_SUMMARY] {json.dumps(summary)}")
    return summary


if __name__ == "__main__":
    main()
