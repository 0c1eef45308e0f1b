"""
Generate a BLE RSSI replay dataset.

Simulates a receiver walking past a small set of BLE anchors and records the
signal-strength samples a scanner would deliver, so the positioning pipeline
can be replayed offline with tools/replay_positioning.py.

Dataset layout:
    anchors.json          anchor ids, names, coordinates and calibration
    samples.csv           step, t, anchor_id, rssi (empty rssi = no reading)
    ground_truth.txt      step, x, y of the receiver
    config.json           generation parameters

Signal model:
    rssi = p_ref - 10*n*log10(d) + w,  w ~ N(0, sigma_db^2)
rounded to whole dBm as BLE stacks report it.

Author: Navigation Engineer
"""

import argparse
import csv
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from blepos.rf import expected_signal_strength


# ============================================================================
# PRESET CONFIGURATIONS
# ============================================================================

PRESETS = {
    "baseline": {
        "description": "Three well-spread anchors, noise-free readings",
        "geometry": "triangle",
        "trajectory": "grid",
        "sigma_db": 0.0,
        "dropout": 0.0,
    },
    "noisy": {
        "description": "Three anchors with 4 dB shadowing and missed readings",
        "geometry": "triangle",
        "trajectory": "circle",
        "sigma_db": 4.0,
        "dropout": 0.1,
    },
    "extra_anchor": {
        "description": "Four anchors; only the first three contribute to a fix",
        "geometry": "square",
        "trajectory": "grid",
        "sigma_db": 0.0,
        "dropout": 0.0,
    },
    "colinear": {
        "description": "Anchors on one line, every fix is undetermined",
        "geometry": "colinear",
        "trajectory": "corridor",
        "sigma_db": 0.0,
        "dropout": 0.0,
    },
}


def create_anchor_layout(
    geometry: str = "triangle",
    area_size: float = 10.0,
    reference_strength: float = -65.0,
    path_loss_exponent: float = 2.0,
) -> List[Dict]:
    """
    Create anchor definitions.

    Args:
        geometry: Layout type ('triangle', 'square', 'colinear').
        area_size: Side of the covered area in metres.
        reference_strength: RSSI at 1 m for every anchor (dBm).
        path_loss_exponent: Path-loss exponent for every anchor.

    Returns:
        List of anchor dicts with id, name, x, y and calibration.
    """
    if geometry == "triangle":
        xy = [[0.0, 0.0], [area_size, 0.0], [0.0, area_size]]
    elif geometry == "square":
        xy = [[0.0, 0.0], [area_size, 0.0], [0.0, area_size], [area_size, area_size]]
    elif geometry == "colinear":
        xy = [[0.0, 0.0], [area_size / 2, 0.0], [area_size, 0.0]]
    else:
        raise ValueError(f"Unknown geometry: {geometry}")

    return [
        {
            "id": f"ble-{i:02d}",
            "name": f"Anchor {chr(ord('A') + i)}",
            "x": x,
            "y": y,
            "reference_strength": reference_strength,
            "path_loss_exponent": path_loss_exponent,
        }
        for i, (x, y) in enumerate(xy)
    ]


def generate_trajectory(
    trajectory_type: str = "grid",
    area_size: float = 10.0,
    num_points: int = 25,
    seed: int = 42,
) -> np.ndarray:
    """
    Generate receiver positions.

    Args:
        trajectory_type: 'grid', 'random', 'circle' or 'corridor'.
        area_size: Side of the covered area in metres.
        num_points: Number of receiver positions.
        seed: Random seed.

    Returns:
        Receiver positions [N, 2] in metres.
    """
    rng = np.random.default_rng(seed)
    margin = 0.1 * area_size

    if trajectory_type == "grid":
        grid_size = int(np.ceil(np.sqrt(num_points)))
        x = np.linspace(margin, area_size - margin, grid_size)
        xx, yy = np.meshgrid(x, x)
        positions = np.column_stack([xx.ravel(), yy.ravel()])[:num_points]

    elif trajectory_type == "random":
        positions = rng.uniform(margin, area_size - margin, (num_points, 2))

    elif trajectory_type == "circle":
        center = np.array([area_size / 2, area_size / 2])
        radius = area_size / 3
        theta = np.linspace(0, 2 * np.pi, num_points, endpoint=False)
        positions = center + radius * np.column_stack([np.cos(theta), np.sin(theta)])

    elif trajectory_type == "corridor":
        x = np.linspace(margin, area_size - margin, num_points)
        positions = np.column_stack([x, np.full(num_points, area_size / 2)])

    else:
        raise ValueError(f"Unknown trajectory_type: {trajectory_type}")

    return positions


def generate_samples(
    anchors: List[Dict],
    positions: np.ndarray,
    sigma_db: float = 0.0,
    dropout: float = 0.0,
    sample_interval: float = 1.0,
    seed: int = 42,
) -> List[Dict]:
    """
    Simulate one scan cycle per receiver position.

    Args:
        anchors: Anchor definitions from create_anchor_layout.
        positions: Receiver positions [N, 2].
        sigma_db: Shadowing standard deviation in dB.
        dropout: Probability that an anchor is missing from a cycle.
        sample_interval: Seconds between cycles.
        seed: Random seed.

    Returns:
        List of sample dicts (step, t, anchor_id, rssi); rssi is None for
        a missed reading.
    """
    rng = np.random.default_rng(seed)
    samples = []

    for step, pos in enumerate(positions):
        for anchor in anchors:
            distance = float(np.hypot(pos[0] - anchor["x"], pos[1] - anchor["y"]))
            # Receiver on top of an anchor reads the 1 m reference strength
            distance = max(distance, 1e-3)

            if rng.uniform() < dropout:
                rssi = None
            else:
                rssi = expected_signal_strength(
                    distance,
                    reference_strength=anchor["reference_strength"],
                    path_loss_exponent=anchor["path_loss_exponent"],
                )
                if sigma_db > 0:
                    rssi += rng.normal(0, sigma_db)
                rssi = int(round(rssi))
                if rssi == 0:
                    # 0 is the scanner's "not measurable" value
                    rssi = -1

            samples.append({
                "step": step,
                "t": step * sample_interval,
                "anchor_id": anchor["id"],
                "rssi": rssi,
            })

    return samples


def save_dataset(
    output_dir: Path,
    anchors: List[Dict],
    positions: np.ndarray,
    samples: List[Dict],
    config: Dict,
) -> None:
    """Save dataset to disk."""
    output_dir.mkdir(parents=True, exist_ok=True)

    with open(output_dir / "anchors.json", "w") as f:
        json.dump({"anchors": anchors}, f, indent=2)

    with open(output_dir / "samples.csv", "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["step", "t", "anchor_id", "rssi"])
        writer.writeheader()
        for sample in samples:
            row = dict(sample)
            row["rssi"] = "" if sample["rssi"] is None else sample["rssi"]
            writer.writerow(row)

    np.savetxt(
        output_dir / "ground_truth.txt",
        np.column_stack([np.arange(len(positions)), positions]),
        fmt=["%d", "%.6f", "%.6f"],
        header="step, x (m), y (m)",
    )

    with open(output_dir / "config.json", "w") as f:
        json.dump(config, f, indent=2)

    print(f"\n  Saved dataset to: {output_dir}")
    print(f"    Anchors: {len(anchors)}")
    print(f"    Positions: {len(positions)}")
    print(f"    Samples: {len(samples)}")


def generate_dataset(
    output_dir: str,
    preset: Optional[str] = None,
    geometry: str = "triangle",
    trajectory: str = "grid",
    area_size: float = 10.0,
    num_points: int = 25,
    sigma_db: float = 0.0,
    dropout: float = 0.0,
    reference_strength: float = -65.0,
    path_loss_exponent: float = 2.0,
    seed: int = 42,
) -> Path:
    """
    Generate and save an RSSI replay dataset.

    Args:
        output_dir: Output directory path.
        preset: Preset name; overrides geometry, trajectory, sigma_db, dropout.
        geometry: Anchor layout type.
        trajectory: Receiver trajectory type.
        area_size: Area side in metres.
        num_points: Number of receiver positions.
        sigma_db: Shadowing noise in dB.
        dropout: Probability of a missed reading.
        reference_strength: Anchor RSSI at 1 m (dBm).
        path_loss_exponent: Anchor path-loss exponent.
        seed: Random seed.

    Returns:
        Path of the written dataset.
    """
    if preset is not None:
        if preset not in PRESETS:
            raise ValueError(f"Unknown preset '{preset}', choose from {sorted(PRESETS)}")
        params = PRESETS[preset]
        geometry = params["geometry"]
        trajectory = params["trajectory"]
        sigma_db = params["sigma_db"]
        dropout = params["dropout"]

    print("\n" + "=" * 70)
    print(f"Generating RSSI Replay Dataset: {Path(output_dir).name}")
    print("=" * 70)

    print("\nStep 1: Creating anchor layout...")
    anchors = create_anchor_layout(geometry, area_size, reference_strength, path_loss_exponent)
    print(f"  Geometry: {geometry}")
    print(f"  Anchors: {len(anchors)}")

    print("\nStep 2: Generating trajectory...")
    positions = generate_trajectory(trajectory, area_size, num_points, seed)
    print(f"  Trajectory: {trajectory}")
    print(f"  Points: {len(positions)}")

    print("\nStep 3: Simulating scan cycles...")
    print(f"  Shadowing: {sigma_db:.1f} dB")
    print(f"  Dropout: {dropout:.0%}")
    samples = generate_samples(anchors, positions, sigma_db, dropout, seed=seed)

    config = {
        "preset": preset,
        "geometry": geometry,
        "trajectory": trajectory,
        "area_size": area_size,
        "num_points": int(len(positions)),
        "sigma_db": sigma_db,
        "dropout": dropout,
        "reference_strength": reference_strength,
        "path_loss_exponent": path_loss_exponent,
        "seed": seed,
    }

    output_path = Path(output_dir)
    save_dataset(output_path, anchors, positions, samples, config)
    return output_path


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Generate a BLE RSSI replay dataset",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Presets:\n" + "\n".join(
            f"  {name:<14} {params['description']}" for name, params in PRESETS.items()
        ),
    )
    parser.add_argument("--output", type=str, default="data/sim/rssi_replay",
                        help="Output directory")
    parser.add_argument("--preset", type=str, choices=sorted(PRESETS), default=None,
                        help="Named configuration")
    parser.add_argument("--geometry", type=str, default="triangle",
                        choices=["triangle", "square", "colinear"])
    parser.add_argument("--trajectory", type=str, default="grid",
                        choices=["grid", "random", "circle", "corridor"])
    parser.add_argument("--area-size", type=float, default=10.0, help="Area side (m)")
    parser.add_argument("--num-points", type=int, default=25, help="Receiver positions")
    parser.add_argument("--sigma-db", type=float, default=0.0, help="Shadowing std (dB)")
    parser.add_argument("--dropout", type=float, default=0.0,
                        help="Probability of a missed reading")
    parser.add_argument("--reference-strength", type=float, default=-65.0,
                        help="RSSI at 1 m (dBm)")
    parser.add_argument("--path-loss-exponent", type=float, default=2.0)
    parser.add_argument("--seed", type=int, default=42, help="Random seed")

    args = parser.parse_args()

    generate_dataset(
        output_dir=args.output,
        preset=args.preset,
        geometry=args.geometry,
        trajectory=args.trajectory,
        area_size=args.area_size,
        num_points=args.num_points,
        sigma_db=args.sigma_db,
        dropout=args.dropout,
        reference_strength=args.reference_strength,
        path_loss_exponent=args.path_loss_exponent,
        seed=args.seed,
    )


if __name__ == "__main__":
    main()
