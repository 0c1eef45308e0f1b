"""
Anchor registry.

The registry is the single owner of anchor state. Operator edits (placement,
calibration) and scan-derived distance updates both go through its methods,
which are serialized by one lock per registry. Readers get immutable
snapshots and never see a half-applied update.

Author: Navigation Engineer
"""

import json
import logging
import threading
from dataclasses import replace
from typing import Dict, Iterator, Optional, Tuple

from blepos.anchors.parsing import (
    NumericText,
    parse_calibration_text,
    parse_coordinate_text,
    parse_coordinate_value,
)
from blepos.anchors.types import Anchor, Calibration, check_anchor_id
from blepos.config import EngineConfig
from blepos.errors import (
    NoSampleAvailableError,
    UnknownAnchorError,
)

logger = logging.getLogger(__name__)

UNNAMED_DEVICE = "Unknown Device"


class AnchorRegistry:
    """
    Thread-safe collection of designated anchors.

    Anchors are kept in insertion order. Every mutator either applies fully
    or raises and leaves the registry unchanged.

    Attributes:
        config: Engine configuration supplying default calibration.

    Example:
        >>> registry = AnchorRegistry()
        >>> registry.register_anchor("c3:1a:00:11", "Kitchen")
        >>> registry.set_coordinate("c3:1a:00:11", 0.0, 4.5)
        >>> [a.name for a in registry.snapshot()]
        ['Kitchen']
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config if config is not None else EngineConfig()
        self._anchors: Dict[str, Anchor] = {}
        self._lock = threading.RLock()

    def _default_calibration(self) -> Calibration:
        return Calibration(
            reference_strength=self.config.default_reference_strength,
            path_loss_exponent=self.config.default_path_loss_exponent,
        )

    def _require(self, anchor_id: str) -> Anchor:
        try:
            return self._anchors[anchor_id]
        except KeyError:
            raise UnknownAnchorError(anchor_id) from None

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------
    def register_anchor(self, anchor_id: str, name: Optional[str]) -> None:
        """
        Designate a device as an anchor.

        The new anchor has no coordinate, no distance and the default
        calibration. Registering an existing id changes nothing. Devices
        that advertise no name are listed as UNNAMED_DEVICE.

        Raises:
            InvalidAnchorIdError: If anchor_id is not a non-empty string.
        """
        check_anchor_id(anchor_id)
        name = name or UNNAMED_DEVICE
        with self._lock:
            if anchor_id in self._anchors:
                return
            self._anchors[anchor_id] = Anchor(
                anchor_id=anchor_id,
                name=name,
                calibration=self._default_calibration(),
            )

        logger.debug(json.dumps({
            "event": "anchor_registered",
            "anchor_id": anchor_id,
            "name": name,
        }))

    def unregister_anchor(self, anchor_id: str) -> None:
        """Remove an anchor; unknown ids are ignored."""
        with self._lock:
            removed = self._anchors.pop(anchor_id, None)

        if removed is not None:
            logger.debug(json.dumps({
                "event": "anchor_unregistered",
                "anchor_id": anchor_id,
            }))

    def __contains__(self, anchor_id: object) -> bool:
        with self._lock:
            return anchor_id in self._anchors

    def __len__(self) -> int:
        with self._lock:
            return len(self._anchors)

    def __iter__(self) -> Iterator[Anchor]:
        return iter(self.snapshot())

    # ------------------------------------------------------------------
    # Operator edits
    # ------------------------------------------------------------------
    def set_coordinate(self, anchor_id: str, x: float, y: float) -> None:
        """
        Place an anchor at (x, y).

        Raises:
            UnknownAnchorError: If the anchor is not registered.
            MalformedCoordinateInputError: If x or y is not a finite number.
        """
        x = parse_coordinate_value(x, axis="x")
        y = parse_coordinate_value(y, axis="y")

        with self._lock:
            anchor = self._require(anchor_id)
            self._anchors[anchor_id] = replace(anchor, coordinate=(x, y))

        logger.debug(json.dumps({
            "event": "anchor_placed",
            "anchor_id": anchor_id,
            "x": x,
            "y": y,
        }))

    def set_coordinate_from_text(
        self,
        anchor_id: str,
        x_text: Optional[NumericText],
        y_text: Optional[NumericText],
    ) -> None:
        """
        Place an anchor from form text.

        Raises:
            MalformedCoordinateInputError: If either field is not a finite
                number; the anchor keeps its previous coordinate.
            UnknownAnchorError: If the anchor is not registered.
        """
        x, y = parse_coordinate_text(x_text, y_text)
        self.set_coordinate(anchor_id, x, y)

    def set_calibration(
        self,
        anchor_id: str,
        reference_strength: float,
        path_loss_exponent: float,
    ) -> None:
        """
        Replace an anchor's calibration pair.

        Raises:
            UnknownAnchorError: If the anchor is not registered.
            InvalidCalibrationError: If the pair is non-finite or the
                exponent is zero.
        """
        calibration = parse_calibration_text(reference_strength, path_loss_exponent)
        self._apply_calibration(anchor_id, calibration)

    def set_calibration_from_text(
        self,
        anchor_id: str,
        reference_text: Optional[NumericText],
        exponent_text: Optional[NumericText],
    ) -> None:
        """
        Replace an anchor's calibration pair from form text.

        Unparsable text raises InvalidCalibrationError and keeps the
        previous calibration.
        """
        self.set_calibration(anchor_id, reference_text, exponent_text)

    def calibrate_reference_from_last_sample(self, anchor_id: str) -> Calibration:
        """
        Use the anchor's last reading as its reference strength.

        Intended for the operator holding the receiver one unit away from
        the anchor. The path-loss exponent is kept.

        Returns:
            The new calibration.

        Raises:
            UnknownAnchorError: If the anchor is not registered.
            NoSampleAvailableError: If no reading has been recorded yet.
        """
        with self._lock:
            anchor = self._require(anchor_id)
            if anchor.last_signal_strength is None:
                raise NoSampleAvailableError(
                    f"No signal strength recorded for anchor '{anchor_id}'"
                )
            calibration = replace(
                anchor.calibration,
                reference_strength=float(anchor.last_signal_strength),
            )
            self._anchors[anchor_id] = replace(anchor, calibration=calibration)

        logger.debug(json.dumps({
            "event": "anchor_auto_calibrated",
            "anchor_id": anchor_id,
            "reference_strength": calibration.reference_strength,
        }))
        return calibration

    def _apply_calibration(self, anchor_id: str, calibration: Calibration) -> None:
        with self._lock:
            anchor = self._require(anchor_id)
            self._anchors[anchor_id] = replace(anchor, calibration=calibration)

        logger.debug(json.dumps({
            "event": "anchor_calibrated",
            "anchor_id": anchor_id,
            "reference_strength": calibration.reference_strength,
            "path_loss_exponent": calibration.path_loss_exponent,
        }))

    # ------------------------------------------------------------------
    # Scan updates
    # ------------------------------------------------------------------
    def update_distance(
        self,
        anchor_id: str,
        distance: float,
        signal_strength: Optional[float] = None,
    ) -> None:
        """
        Overwrite the anchor's estimated distance.

        Called by the position pipeline only. When ``signal_strength`` is
        given it is recorded as the anchor's last reading.

        Raises:
            UnknownAnchorError: If the anchor is not registered.
        """
        with self._lock:
            anchor = self._require(anchor_id)
            changes = {"distance": float(distance)}
            if signal_strength is not None:
                changes["last_signal_strength"] = float(signal_strength)
            self._anchors[anchor_id] = replace(anchor, **changes)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, anchor_id: str) -> Anchor:
        """
        Return the current state of one anchor.

        Raises:
            UnknownAnchorError: If the anchor is not registered.
        """
        with self._lock:
            return self._require(anchor_id)

    def snapshot(self) -> Tuple[Anchor, ...]:
        """Return all anchors, in registration order, as of this call."""
        with self._lock:
            return tuple(self._anchors.values())
