"""
Three-anchor trilateration.

This module estimates a 2D receiver position from three anchors with known
coordinates and estimated distances:
- Linearized closed-form solution against the first anchor
- Anchor selection (first three qualifying anchors, in supplied order)

The circle equations
    (x - x_i)^2 + (y - y_i)^2 = r_i^2,  i = 1, 2, 3
are differenced against anchor 1, which removes the quadratic terms and leaves
a 2x2 linear system (the two radical lines). The system is solved directly,
so with noisy distances the result is the radical-line intersection rather
than a least-squares fit; residuals against the circles are not reported.
"""

from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional, Sequence, Tuple

import numpy as np

if TYPE_CHECKING:
    from blepos.anchors.types import Anchor

# |det| below this means colinear or coincident anchors
DETERMINANT_TOLERANCE = 1e-6

# Anchors consumed by one fix; extra qualifying anchors are ignored
ANCHORS_PER_FIX = 3


class SolveStatus(Enum):
    """Outcome of a trilateration attempt."""

    OK = "ok"
    INSUFFICIENT_ANCHORS = "insufficient_anchors"
    DEGENERATE_GEOMETRY = "degenerate_geometry"


def trilaterate_three(
    anchors_xy: np.ndarray,
    ranges: np.ndarray,
    tolerance: float = DETERMINANT_TOLERANCE,
) -> Tuple[Optional[np.ndarray], Dict]:
    """
    Closed-form 2D trilateration from exactly three anchors.

    With anchors A=(x1,y1,r1), B=(x2,y2,r2), C=(x3,y3,r3):
        A1 = 2(x2-x1),  B1 = 2(y2-y1),  C1 = x2²-x1² + y2²-y1² + r1²-r2²
        A2 = 2(x3-x1),  B2 = 2(y3-y1),  C2 = x3²-x1² + y3²-y1² + r1²-r3²
        det = A1*B2 - A2*B1
        x = (C1*B2 - C2*B1) / det
        y = (A1*C2 - A2*C1) / det

    Args:
        anchors_xy: Anchor positions, shape (3, 2).
        ranges: Estimated distances to each anchor, shape (3,).
        tolerance: Smallest |det| accepted as a unique solution.

    Returns:
        position: Estimated [x, y], or None for degenerate geometry.
        info: Dictionary with solver information:
            - 'method': 'linearized_3_anchor'
            - 'status': SolveStatus
            - 'determinant': det of the linear system

    Raises:
        ValueError: If shapes are not (3, 2) and (3,).

    Example:
        >>> anchors = np.array([[0, 0], [10, 0], [0, 10]])
        >>> ranges = np.array([5.0, 5 * np.sqrt(2), 5 * np.sqrt(2)])
        >>> pos, info = trilaterate_three(anchors, ranges)
        >>> # pos ≈ [5, 5]
    """
    anchors_xy = np.asarray(anchors_xy, dtype=float)
    ranges = np.asarray(ranges, dtype=float)

    if anchors_xy.shape != (ANCHORS_PER_FIX, 2):
        raise ValueError(f"anchors_xy must have shape (3, 2), got {anchors_xy.shape}")
    if ranges.shape != (ANCHORS_PER_FIX,):
        raise ValueError(f"ranges must have shape (3,), got {ranges.shape}")

    (x1, y1), (x2, y2), (x3, y3) = anchors_xy
    r1, r2, r3 = ranges

    a1 = 2 * (x2 - x1)
    b1 = 2 * (y2 - y1)
    c1 = x2**2 - x1**2 + y2**2 - y1**2 + r1**2 - r2**2

    a2 = 2 * (x3 - x1)
    b2 = 2 * (y3 - y1)
    c2 = x3**2 - x1**2 + y3**2 - y1**2 + r1**2 - r3**2

    det = a1 * b2 - a2 * b1

    info = {
        "method": "linearized_3_anchor",
        "determinant": float(det),
    }

    if abs(det) < tolerance:
        info["status"] = SolveStatus.DEGENERATE_GEOMETRY
        return None, info

    x = (c1 * b2 - c2 * b1) / det
    y = (a1 * c2 - a2 * c1) / det

    info["status"] = SolveStatus.OK
    return np.array([x, y]), info


def select_anchors(anchors: Sequence["Anchor"]) -> Tuple["Anchor", ...]:
    """
    Pick the anchors that contribute to a fix.

    Only anchors with both a coordinate and a distance qualify. The first
    three qualifying anchors in the supplied order are used, so reordering
    the input can change the reported fix.

    Args:
        anchors: Candidate anchors, typically a registry snapshot.

    Returns:
        Up to three qualifying anchors.
    """
    qualifying = [anchor for anchor in anchors if anchor.qualifies]
    return tuple(qualifying[:ANCHORS_PER_FIX])


class TrilaterationSolver:
    """
    Position solver over a sequence of anchors.

    Attributes:
        tolerance: Determinant threshold below which geometry is degenerate.

    Example:
        >>> solver = TrilaterationSolver()
        >>> position = solver.solve(registry.snapshot())
        >>> if position is None:
        ...     print("position undetermined")
    """

    def __init__(self, tolerance: float = DETERMINANT_TOLERANCE):
        if not np.isfinite(tolerance) or tolerance < 0:
            raise ValueError(f"tolerance must be finite and non-negative, got {tolerance}")
        self.tolerance = tolerance

    def solve(self, anchors: Sequence["Anchor"]) -> Optional[np.ndarray]:
        """
        Estimate the receiver position.

        Args:
            anchors: Anchors in selection order.

        Returns:
            Estimated [x, y], or None when fewer than three anchors qualify
            or the selected anchors are degenerate.
        """
        position, _ = self.solve_with_info(anchors)
        return position

    def solve_with_info(
        self, anchors: Sequence["Anchor"]
    ) -> Tuple[Optional[np.ndarray], Dict]:
        """
        Estimate the receiver position and report how it was obtained.

        Args:
            anchors: Anchors in selection order.

        Returns:
            position: Estimated [x, y] or None.
            info: Dictionary with:
                - 'status': SolveStatus
                - 'anchor_ids': ids of the anchors used (selection order)
                - 'n_qualifying': number of anchors with coordinate and distance
                - 'determinant': only present when three anchors were used
        """
        n_qualifying = sum(1 for anchor in anchors if anchor.qualifies)
        selected = select_anchors(anchors)

        if len(selected) < ANCHORS_PER_FIX:
            return None, {
                "status": SolveStatus.INSUFFICIENT_ANCHORS,
                "anchor_ids": [anchor.anchor_id for anchor in selected],
                "n_qualifying": n_qualifying,
            }

        anchors_xy = np.array([anchor.coordinate for anchor in selected], dtype=float)
        ranges = np.array([anchor.distance for anchor in selected], dtype=float)

        position, info = trilaterate_three(anchors_xy, ranges, tolerance=self.tolerance)
        info["anchor_ids"] = [anchor.anchor_id for anchor in selected]
        info["n_qualifying"] = n_qualifying

        return position, info
