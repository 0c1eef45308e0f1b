"""
Anchor state module.

Submodules:
    types: Anchor and Calibration dataclasses
    parsing: Validation of operator-entered text
    registry: Thread-safe owner of the anchor collection
"""

from blepos.anchors.parsing import (
    parse_calibration_text,
    parse_coordinate_text,
    parse_coordinate_value,
)
from blepos.anchors.registry import UNNAMED_DEVICE, AnchorRegistry
from blepos.anchors.types import TYPICAL_PATH_LOSS_RANGE, Anchor, Calibration

__all__ = [
    # Types
    "Anchor",
    "Calibration",
    "TYPICAL_PATH_LOSS_RANGE",
    # Parsing
    "parse_coordinate_value",
    "parse_coordinate_text",
    "parse_calibration_text",
    # Registry
    "AnchorRegistry",
    "UNNAMED_DEVICE",
]
