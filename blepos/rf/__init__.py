"""
RF ranging and positioning module.

Submodules:
    measurement_models: RSSI path-loss model (distance estimator)
    positioning: Three-anchor trilateration solver
"""

from blepos.rf.measurement_models import (
    DEFAULT_PATH_LOSS_EXPONENT,
    DEFAULT_REFERENCE_STRENGTH,
    UNMEASURABLE_DISTANCE,
    check_calibration,
    estimate_distance,
    expected_signal_strength,
)
from blepos.rf.positioning import (
    ANCHORS_PER_FIX,
    DETERMINANT_TOLERANCE,
    SolveStatus,
    TrilaterationSolver,
    select_anchors,
    trilaterate_three,
)

__all__ = [
    # Constants
    "DEFAULT_REFERENCE_STRENGTH",
    "DEFAULT_PATH_LOSS_EXPONENT",
    "UNMEASURABLE_DISTANCE",
    "DETERMINANT_TOLERANCE",
    "ANCHORS_PER_FIX",
    # Measurement models
    "check_calibration",
    "estimate_distance",
    "expected_signal_strength",
    # Positioning
    "SolveStatus",
    "TrilaterationSolver",
    "select_anchors",
    "trilaterate_three",
]
