"""
Exception types raised by the positioning engine.

Every exception derives from PositioningError and from the builtin a plain
caller would expect (KeyError for lookups, ValueError for bad values), so
existing ``except ValueError`` handlers keep working.

Geometry problems are not exceptions: degenerate layouts and missing anchors
are reported as ``SolveStatus`` values by the solver.
"""

from typing import Optional


class PositioningError(Exception):
    """Base class for all positioning engine errors."""


class UnknownAnchorError(PositioningError, KeyError):
    """An operation referenced an anchor id that is not registered."""

    def __init__(self, anchor_id: str):
        self.anchor_id = anchor_id
        super().__init__(anchor_id)

    def __str__(self) -> str:
        return f"Anchor '{self.anchor_id}' is not registered"


class InvalidCalibrationError(PositioningError, ValueError):
    """Calibration pair cannot be used to convert signal strength to distance."""


class MalformedCoordinateInputError(PositioningError, ValueError):
    """Coordinate text supplied by the operator is not a finite number."""

    def __init__(self, text: Optional[str], axis: str = ""):
        self.text = text
        self.axis = axis
        where = f" for {axis}" if axis else ""
        super().__init__(f"Malformed coordinate input{where}: {text!r}")


class NoSampleAvailableError(PositioningError, ValueError):
    """Auto-calibration was requested before any reading was recorded."""


class InvalidAnchorIdError(PositioningError, ValueError):
    """Anchor id is not a non-empty string."""

    def __init__(self, anchor_id):
        self.anchor_id = anchor_id
        super().__init__(f"anchor_id must be a non-empty string, got {anchor_id!r}")
