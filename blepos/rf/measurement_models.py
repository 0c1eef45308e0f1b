"""
Signal-strength ranging models.

This module implements the log-distance path-loss model used to turn a BLE
received signal strength (RSSI, dBm) into an estimated anchor distance:
- Forward model: expected RSSI at a given distance
- Inverse model: estimated distance from a measured RSSI

Distances are expressed in the same planar unit as the reference distance of
the calibration (one unit is where the reference strength is measured).
"""

import numpy as np

from blepos.errors import InvalidCalibrationError

# Defaults used when an anchor has no calibration of its own
DEFAULT_REFERENCE_STRENGTH = -65.0  # dBm at one unit
DEFAULT_PATH_LOSS_EXPONENT = 2.0  # free space

# Returned for a reading of exactly 0, which scanners report when the
# strength could not be measured
UNMEASURABLE_DISTANCE = -1.0


def check_calibration(reference_strength: float, path_loss_exponent: float) -> None:
    """
    Validate a calibration pair.

    Args:
        reference_strength: RSSI measured at one unit from the anchor (dBm).
        path_loss_exponent: Path-loss exponent n.

    Raises:
        InvalidCalibrationError: If either value is non-finite or the
            exponent is zero.
    """
    try:
        reference_strength = float(reference_strength)
        path_loss_exponent = float(path_loss_exponent)
    except (TypeError, ValueError) as exc:
        raise InvalidCalibrationError(f"Calibration values must be numeric: {exc}") from exc

    if not np.isfinite(reference_strength):
        raise InvalidCalibrationError(
            f"Reference strength must be finite, got {reference_strength}"
        )
    if not np.isfinite(path_loss_exponent):
        raise InvalidCalibrationError(
            f"Path-loss exponent must be finite, got {path_loss_exponent}"
        )
    if path_loss_exponent == 0:
        raise InvalidCalibrationError("Path-loss exponent must be non-zero")


def estimate_distance(
    signal_strength: float,
    reference_strength: float = DEFAULT_REFERENCE_STRENGTH,
    path_loss_exponent: float = DEFAULT_PATH_LOSS_EXPONENT,
) -> float:
    """
    Estimate anchor distance from a signal-strength reading.

    Inverse log-distance path-loss model:
        d = 10^((p_ref - p) / (10*n))

    where p is the measured RSSI, p_ref the RSSI at one unit and n the
    path-loss exponent.

    Args:
        signal_strength: Measured RSSI in dBm (p).
        reference_strength: RSSI at one unit in dBm (p_ref). Defaults to -65.
        path_loss_exponent: Path-loss exponent n. Defaults to 2.0.

    Returns:
        Estimated distance in calibration units, or UNMEASURABLE_DISTANCE
        (-1.0) when signal_strength is exactly 0.

    Raises:
        InvalidCalibrationError: If the calibration pair is unusable.

    Example:
        >>> estimate_distance(-75.0, reference_strength=-65.0, path_loss_exponent=2.0)
        3.1622776601683795
    """
    if signal_strength == 0:
        return UNMEASURABLE_DISTANCE

    check_calibration(reference_strength, path_loss_exponent)

    ratio = (reference_strength - signal_strength) / (10 * path_loss_exponent)
    with np.errstate(over="ignore"):
        distance = float(np.power(10.0, ratio))

    if not np.isfinite(distance):
        raise InvalidCalibrationError(
            f"Calibration ({reference_strength}, {path_loss_exponent}) gives an "
            f"unbounded distance for {signal_strength} dBm"
        )
    return distance


def expected_signal_strength(
    distance: float,
    reference_strength: float = DEFAULT_REFERENCE_STRENGTH,
    path_loss_exponent: float = DEFAULT_PATH_LOSS_EXPONENT,
) -> float:
    """
    Compute the expected RSSI at a distance (forward path-loss model).

        p = p_ref - 10*n*log10(d)

    Args:
        distance: Distance to the anchor in calibration units.
        reference_strength: RSSI at one unit in dBm. Defaults to -65.
        path_loss_exponent: Path-loss exponent n. Defaults to 2.0.

    Returns:
        Expected RSSI in dBm.

    Example:
        >>> expected_signal_strength(10.0, reference_strength=-65.0)
        -85.0
    """
    if distance <= 0:
        raise ValueError("Distance must be positive")

    check_calibration(reference_strength, path_loss_exponent)

    return float(reference_strength - 10 * path_loss_exponent * np.log10(distance))
