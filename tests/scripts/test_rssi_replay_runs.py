"""Smoke tests for the RSSI replay dataset generator and replay tool.

Runs both scripts as subprocesses and validates the machine-readable
[REPLAY_SUMMARY] JSON line printed by the replay tool.
"""

import csv
import json
import os
import re
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from typing import Any, Dict, Optional


def parse_replay_summary(stdout: str) -> Optional[Dict[str, Any]]:
    """Parse the [REPLAY_SUMMARY] JSON line from script output."""
    match = re.search(r'\[REPLAY_SUMMARY\]\s*(\{.*\})', stdout)
    if not match:
        return None
    return json.loads(match.group(1))


class TestRSSIReplayRuns(unittest.TestCase):
    """Generate datasets for each preset and replay them."""

    def setUp(self):
        self.python_exe = sys.executable
        self.workspace_root = Path(__file__).parent.parent.parent
        self.generator = self.workspace_root / "scripts" / "generate_rssi_replay_dataset.py"
        self.replayer = self.workspace_root / "tools" / "replay_positioning.py"
        self.tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self.tmp.name)
        self.env = dict(os.environ, MPLBACKEND="Agg")

    def tearDown(self):
        self.tmp.cleanup()

    def run_script(self, *args) -> subprocess.CompletedProcess:
        result = subprocess.run(
            [self.python_exe, *map(str, args)],
            capture_output=True,
            text=True,
            timeout=120,
            cwd=self.workspace_root,
            env=self.env,
        )
        self.assertEqual(
            result.returncode, 0,
            f"Script failed:\nSTDOUT:\n{result.stdout}\nSTDERR:\n{result.stderr}",
        )
        return result

    def generate(self, preset: str) -> Path:
        output = self.tmp_path / preset
        self.run_script(self.generator, "--preset", preset, "--output", output)
        return output

    def test_generator_writes_dataset(self):
        output = self.generate("noisy")

        for name in ["anchors.json", "samples.csv", "ground_truth.txt", "config.json"]:
            self.assertTrue((output / name).exists(), f"{name} missing")

        with open(output / "samples.csv", newline="") as f:
            rows = list(csv.DictReader(f))
        with open(output / "anchors.json") as f:
            anchors = json.load(f)["anchors"]

        self.assertEqual(len(anchors), 3)
        self.assertEqual(len(rows), 25 * len(anchors))
        # noisy preset drops some readings
        self.assertTrue(any(row["rssi"] == "" for row in rows))
        self.assertTrue(all(row["rssi"] != "0" for row in rows))

    def test_baseline_replay_is_accurate(self):
        output = self.generate("baseline")

        result = self.run_script(self.replayer, output)
        summary = parse_replay_summary(result.stdout)

        self.assertIsNotNone(summary, "No [REPLAY_SUMMARY] in output")
        self.assertEqual(summary["n_steps"], 25)
        self.assertEqual(summary["fix_rate"], 1.0)
        # only whole-dBm rounding error remains
        self.assertLess(summary["mean_error"], 1.5)

    def test_colinear_replay_never_fixes(self):
        output = self.generate("colinear")

        summary = parse_replay_summary(self.run_script(self.replayer, output).stdout)

        self.assertEqual(summary["n_fixes"], 0)
        self.assertNotIn("mean_error", summary)

    def test_extra_anchor_replay(self):
        output = self.generate("extra_anchor")

        summary = parse_replay_summary(self.run_script(self.replayer, output).stdout)

        self.assertEqual(summary["fix_rate"], 1.0)

    def test_replay_with_config_and_plot(self):
        output = self.generate("noisy")
        config_path = self.tmp_path / "engine.json"
        config_path.write_text(json.dumps({"preset": "open_space"}))
        plot_path = self.tmp_path / "replay.png"

        result = self.run_script(
            self.replayer, output,
            "--config", config_path,
            "--plot-output", plot_path,
        )

        self.assertIsNotNone(parse_replay_summary(result.stdout))
        self.assertTrue(plot_path.exists())


if __name__ == "__main__":
    unittest.main()
