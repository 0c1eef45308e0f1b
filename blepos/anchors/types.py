"""Data types for anchors and their calibration.

Both types are frozen: the registry replaces an anchor instead of mutating it,
so any snapshot handed out stays valid after later edits.
"""

import math
import warnings
from dataclasses import dataclass, field
from typing import Optional, Tuple

from blepos.errors import InvalidAnchorIdError
from blepos.rf.measurement_models import (
    DEFAULT_PATH_LOSS_EXPONENT,
    DEFAULT_REFERENCE_STRENGTH,
    check_calibration,
)

# Valid but unusual exponents outside this range trigger a warning
TYPICAL_PATH_LOSS_RANGE = (1.0, 6.0)


def check_anchor_id(anchor_id) -> None:
    """Raise InvalidAnchorIdError unless anchor_id is a non-empty string."""
    if not isinstance(anchor_id, str) or not anchor_id:
        raise InvalidAnchorIdError(anchor_id)


@dataclass(frozen=True)
class Calibration:
    """Per-anchor constants converting signal strength to distance.

    Attributes:
        reference_strength: RSSI in dBm measured one unit from the anchor.
        path_loss_exponent: Path-loss exponent n (2.0 in free space,
                            typically 2.5-4.0 indoors).

    Example:
        >>> cal = Calibration(reference_strength=-59.0, path_loss_exponent=2.5)
        >>> Calibration()  # defaults
        Calibration(reference_strength=-65.0, path_loss_exponent=2.0)
    """

    reference_strength: float = DEFAULT_REFERENCE_STRENGTH
    path_loss_exponent: float = DEFAULT_PATH_LOSS_EXPONENT

    def __post_init__(self) -> None:
        """Reject unusable calibration, warn about unusual exponents."""
        check_calibration(self.reference_strength, self.path_loss_exponent)

        low, high = TYPICAL_PATH_LOSS_RANGE
        if not low <= self.path_loss_exponent <= high:
            warnings.warn(
                f"Path-loss exponent {self.path_loss_exponent} is outside the "
                f"typical range [{low}, {high}]",
                UserWarning,
            )


@dataclass(frozen=True)
class Anchor:
    """A fixed reference beacon.

    Attributes:
        anchor_id: Stable device identifier (e.g. BLE MAC or UUID).
        name: Display name.
        coordinate: Planar (x, y) position, None while pending placement.
        distance: Last estimated distance from the receiver, None until
                  the first reading.
        calibration: Calibration used to convert readings to distance.
        last_signal_strength: Last raw reading in dBm, None until the
                              first reading.
    """

    anchor_id: str
    name: str
    coordinate: Optional[Tuple[float, float]] = None
    distance: Optional[float] = None
    calibration: Calibration = field(default_factory=Calibration)
    last_signal_strength: Optional[float] = None

    def __post_init__(self) -> None:
        check_anchor_id(self.anchor_id)
        if self.coordinate is not None:
            if len(self.coordinate) != 2:
                raise ValueError(f"coordinate must be (x, y), got {self.coordinate}")
            if not all(math.isfinite(v) for v in self.coordinate):
                raise ValueError(f"coordinate must be finite, got {self.coordinate}")

    @property
    def is_placed(self) -> bool:
        """True once the operator has set a coordinate."""
        return self.coordinate is not None

    @property
    def is_ranged(self) -> bool:
        """True once a distance has been estimated."""
        return self.distance is not None

    @property
    def qualifies(self) -> bool:
        """True if the anchor can take part in trilateration."""
        return self.is_placed and self.is_ranged
