"""
Position pipeline.

Turns each raw signal-strength sample into an updated position estimate:

    sample -> distance -> registry update -> trilateration -> estimate

The pipeline is the only component that couples ranging to positioning; the
registry never triggers a solve on its own.
"""

import json
import logging
import threading
from typing import Optional, Tuple

import numpy as np

from blepos.anchors.registry import AnchorRegistry
from blepos.anchors.types import Anchor
from blepos.config import EngineConfig
from blepos.errors import UnknownAnchorError
from blepos.rf.measurement_models import estimate_distance
from blepos.rf.positioning import TrilaterationSolver

logger = logging.getLogger(__name__)


class PositionPipeline:
    """
    Coordinator feeding scan samples through ranging and trilateration.

    Samples for unregistered anchors, and samples with no reading, leave the
    state untouched and return the previous estimate. An anchor removed while
    its sample is in flight is handled the same way.

    Attributes:
        registry: Anchor registry updated by the pipeline.
        solver: Trilateration solver run after every accepted sample.

    Example:
        >>> registry = AnchorRegistry()
        >>> pipeline = PositionPipeline(registry)
        >>> for anchor_id, xy in [("a", (0, 0)), ("b", (10, 0)), ("c", (0, 10))]:
        ...     registry.register_anchor(anchor_id, anchor_id.upper())
        ...     registry.set_coordinate(anchor_id, *xy)
        >>> pipeline.on_sample("a", -79)
        >>> pipeline.on_sample("b", -82)
        >>> position = pipeline.on_sample("c", -82)
    """

    def __init__(
        self,
        registry: AnchorRegistry,
        solver: Optional[TrilaterationSolver] = None,
        config: Optional[EngineConfig] = None,
    ):
        if config is None:
            config = registry.config
        if solver is None:
            solver = TrilaterationSolver(tolerance=config.determinant_tolerance)

        self.registry = registry
        self.solver = solver
        self.config = config

        self._position: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    @property
    def current_position(self) -> Optional[np.ndarray]:
        """Last published estimate [x, y], or None if undetermined."""
        with self._lock:
            return None if self._position is None else self._position.copy()

    def anchors(self) -> Tuple[Anchor, ...]:
        """Current anchor snapshot, for rendering markers."""
        return self.registry.snapshot()

    def on_sample(
        self,
        anchor_id: str,
        signal_strength: Optional[float],
    ) -> Optional[np.ndarray]:
        """
        Process one signal-strength sample.

        Args:
            anchor_id: Device identifier the sample was received from.
            signal_strength: RSSI in dBm, or None when the scan cycle had
                             no reading for this device.

        Returns:
            The new position estimate [x, y], None if undetermined, or the
            previous estimate when the sample was ignored.
        """
        if signal_strength is None:
            return self.current_position

        with self._lock:
            if not np.isfinite(signal_strength):
                return self._ignore(anchor_id, "non_finite_reading", logging.DEBUG)

            try:
                calibration = self.registry.get(anchor_id).calibration
            except UnknownAnchorError:
                return self._ignore(anchor_id, "not_registered", logging.DEBUG)

            distance = estimate_distance(
                signal_strength,
                reference_strength=calibration.reference_strength,
                path_loss_exponent=calibration.path_loss_exponent,
            )

            try:
                self.registry.update_distance(
                    anchor_id, distance, signal_strength=signal_strength
                )
            except UnknownAnchorError:
                # unregistered between lookup and write
                return self._ignore(anchor_id, "unregistered_in_flight", logging.WARNING)

            position, info = self.solver.solve_with_info(self.registry.snapshot())
            self._position = position

            logger.debug(json.dumps({
                "event": "position_updated",
                "anchor_id": anchor_id,
                "signal_strength": float(signal_strength),
                "distance": distance,
                "status": info["status"].value,
                "anchor_ids": info["anchor_ids"],
                "position": None if position is None else position.tolist(),
            }))

            return None if position is None else position.copy()

    def _ignore(self, anchor_id: str, reason: str, level: int) -> Optional[np.ndarray]:
        logger.log(level, json.dumps({
            "event": "sample_ignored",
            "anchor_id": anchor_id,
            "reason": reason,
        }))
        return None if self._position is None else self._position.copy()
