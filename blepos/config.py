"""
Engine configuration.

Configuration is a frozen dataclass with named presets, loadable from a
plain dict or a JSON file:

    config = EngineConfig.from_preset("indoor_cluttered")
    config = load_config("engine.json")

JSON files hold the same keys as EngineConfig, plus an optional 'preset'
key naming the preset the remaining keys override.
"""

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np

from blepos.rf.measurement_models import (
    DEFAULT_PATH_LOSS_EXPONENT,
    DEFAULT_REFERENCE_STRENGTH,
    check_calibration,
)
from blepos.rf.positioning import DETERMINANT_TOLERANCE


# ============================================================================
# PRESET CONFIGURATIONS
# ============================================================================

PRESETS = {
    "ble_default": {
        "description": "Defaults of typical BLE beacons at 1 m, free-space loss",
        "default_reference_strength": DEFAULT_REFERENCE_STRENGTH,
        "default_path_loss_exponent": DEFAULT_PATH_LOSS_EXPONENT,
        "determinant_tolerance": DETERMINANT_TOLERANCE,
    },
    "indoor_cluttered": {
        "description": "Offices and homes with walls and furniture",
        "default_reference_strength": -65.0,
        "default_path_loss_exponent": 3.0,
        "determinant_tolerance": DETERMINANT_TOLERANCE,
    },
    "open_space": {
        "description": "Halls and outdoor areas with line of sight",
        "default_reference_strength": -59.0,
        "default_path_loss_exponent": 2.0,
        "determinant_tolerance": DETERMINANT_TOLERANCE,
    },
}


@dataclass(frozen=True)
class EngineConfig:
    """Tunable constants of the positioning engine.

    Attributes:
        default_reference_strength: Reference strength (dBm at one unit)
                                    given to newly registered anchors.
        default_path_loss_exponent: Path-loss exponent given to newly
                                    registered anchors.
        determinant_tolerance: |det| below which the trilateration
                               geometry is treated as degenerate.
    """

    default_reference_strength: float = DEFAULT_REFERENCE_STRENGTH
    default_path_loss_exponent: float = DEFAULT_PATH_LOSS_EXPONENT
    determinant_tolerance: float = DETERMINANT_TOLERANCE

    def __post_init__(self) -> None:
        check_calibration(self.default_reference_strength, self.default_path_loss_exponent)
        if not np.isfinite(self.determinant_tolerance) or self.determinant_tolerance < 0:
            raise ValueError(
                f"determinant_tolerance must be finite and non-negative, "
                f"got {self.determinant_tolerance}"
            )

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "EngineConfig":
        """Build a config from a dict, optionally on top of a named preset.

        Raises:
            ValueError: On unknown keys or an unknown preset name.
        """
        values = dict(values)
        preset = values.pop("preset", None)
        values.pop("description", None)

        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")

        base = cls.from_preset(preset) if preset is not None else cls()
        return replace(base, **{k: float(v) for k, v in values.items()})

    @classmethod
    def from_preset(cls, name: str) -> "EngineConfig":
        """Build the config of a named preset."""
        if name not in PRESETS:
            raise ValueError(f"Unknown preset '{name}', choose from {sorted(PRESETS)}")
        values = {k: v for k, v in PRESETS[name].items() if k != "description"}
        return cls(**values)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def load_config(path: Union[str, Path]) -> EngineConfig:
    """Load an EngineConfig from a JSON file."""
    with open(path) as f:
        values = json.load(f)
    if not isinstance(values, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")
    return EngineConfig.from_dict(values)
