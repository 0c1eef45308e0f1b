"""
Parsing of operator-entered text.

Coordinate and calibration fields arrive from input forms as free text.
Empty, non-numeric and non-finite text is rejected instead of being coerced
to zero, so a typo never moves an anchor to the origin.
"""

import math
from typing import Optional, Tuple, Union

from blepos.anchors.types import Calibration
from blepos.errors import InvalidCalibrationError, MalformedCoordinateInputError

NumericText = Union[str, int, float]


def _parse_finite(text: Optional[NumericText]) -> Optional[float]:
    """Return the finite float in ``text``, or None if there is none."""
    if text is None or isinstance(text, bool):
        return None
    if isinstance(text, str):
        text = text.strip()
        if not text:
            return None
    try:
        value = float(text)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_coordinate_value(text: Optional[NumericText], axis: str = "") -> float:
    """
    Parse a single coordinate component.

    Args:
        text: Operator input, e.g. " 3.5 ". Numbers are accepted as-is.
        axis: Axis name used in the error message ('x' or 'y').

    Returns:
        The parsed value.

    Raises:
        MalformedCoordinateInputError: If the text is empty, non-numeric,
            NaN or infinite.
    """
    value = _parse_finite(text)
    if value is None:
        raise MalformedCoordinateInputError(text, axis=axis)
    return value


def parse_coordinate_text(
    x_text: Optional[NumericText],
    y_text: Optional[NumericText],
) -> Tuple[float, float]:
    """
    Parse an (x, y) coordinate edit.

    Both components are validated before anything is returned, so a caller
    never applies half of an edit.

    Example:
        >>> parse_coordinate_text("1", "2.5")
        (1.0, 2.5)
        >>> parse_coordinate_text("", "2")  # raises MalformedCoordinateInputError
    """
    x = parse_coordinate_value(x_text, axis="x")
    y = parse_coordinate_value(y_text, axis="y")
    return x, y


def parse_calibration_text(
    reference_text: Optional[NumericText],
    exponent_text: Optional[NumericText],
) -> Calibration:
    """
    Parse a calibration edit into a Calibration.

    Args:
        reference_text: Reference strength at one unit (dBm).
        exponent_text: Path-loss exponent.

    Returns:
        Validated Calibration.

    Raises:
        InvalidCalibrationError: If either field is unparsable, or the
            parsed pair is rejected by Calibration.
    """
    reference_strength = _parse_finite(reference_text)
    if reference_strength is None:
        raise InvalidCalibrationError(
            f"Reference strength is not a finite number: {reference_text!r}"
        )
    path_loss_exponent = _parse_finite(exponent_text)
    if path_loss_exponent is None:
        raise InvalidCalibrationError(
            f"Path-loss exponent is not a finite number: {exponent_text!r}"
        )
    return Calibration(reference_strength, path_loss_exponent)
