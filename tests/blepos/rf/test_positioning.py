"""
Unit tests for three-anchor trilateration.

Tests the closed-form solver, anchor selection and TrilaterationSolver.
"""

import numpy as np
import pytest

from blepos.anchors.types import Anchor
from blepos.rf.positioning import (
    DETERMINANT_TOLERANCE,
    SolveStatus,
    TrilaterationSolver,
    select_anchors,
    trilaterate_three,
)


def make_anchor(anchor_id, coordinate=None, distance=None):
    return Anchor(anchor_id=anchor_id, name=anchor_id.upper(),
                  coordinate=coordinate, distance=distance)


def ranged_anchors(positions, true_pos, ids=None):
    """Anchors at `positions` with exact distances to `true_pos`."""
    ids = ids or [f"a{i}" for i in range(len(positions))]
    true_pos = np.asarray(true_pos, dtype=float)
    return [
        make_anchor(anchor_id, tuple(p), float(np.linalg.norm(np.asarray(p) - true_pos)))
        for anchor_id, p in zip(ids, positions)
    ]


class TestTrilaterateThree:
    """Test the linearized closed-form solve."""

    def test_reference_layout(self):
        """(0,0),(10,0),(0,10) with (5, 5√2, 5√2) gives (5,5)."""
        anchors = np.array([[0, 0], [10, 0], [0, 10]], dtype=float)
        ranges = np.array([5.0, 5 * np.sqrt(2), 5 * np.sqrt(2)])

        position, info = trilaterate_three(anchors, ranges)

        assert info["status"] is SolveStatus.OK
        assert info["method"] == "linearized_3_anchor"
        assert np.allclose(position, [5.0, 5.0], atol=1e-9)

    def test_coefficients(self):
        """Determinant matches A1*B2 - A2*B1 for the reference layout."""
        anchors = np.array([[0, 0], [10, 0], [0, 10]], dtype=float)
        # A1=20, B1=0, A2=0, B2=20
        _, info = trilaterate_three(anchors, np.ones(3))

        assert np.isclose(info["determinant"], 400.0)

    @pytest.mark.parametrize("true_pos", [
        [3.0, 7.0],
        [-2.0, 4.0],
        [12.5, -3.0],
        [0.0, 0.0],
    ])
    def test_exact_ranges_recover_position(self, true_pos):
        """Exact distances recover points inside and outside the triangle."""
        anchors = np.array([[1, 1], [9, 2], [4, 8]], dtype=float)
        ranges = np.linalg.norm(anchors - np.array(true_pos), axis=1)

        position, info = trilaterate_three(anchors, ranges)

        assert info["status"] is SolveStatus.OK
        assert np.allclose(position, true_pos, atol=1e-9)

    def test_colinear_is_degenerate(self):
        """Colinear anchors give det = 0 and no position."""
        anchors = np.array([[0, 0], [5, 0], [10, 0]], dtype=float)

        position, info = trilaterate_three(anchors, np.array([1.0, 4.0, 9.0]))

        assert position is None
        assert info["status"] is SolveStatus.DEGENERATE_GEOMETRY
        assert abs(info["determinant"]) < DETERMINANT_TOLERANCE

    def test_duplicate_positions_are_degenerate(self):
        anchors = np.array([[2, 2], [2, 2], [7, 1]], dtype=float)

        position, info = trilaterate_three(anchors, np.array([1.0, 1.0, 3.0]))

        assert position is None
        assert info["status"] is SolveStatus.DEGENERATE_GEOMETRY

    def test_noisy_ranges_still_solve(self):
        """Inconsistent distances give a point, not an error."""
        anchors = np.array([[0, 0], [10, 0], [0, 10]], dtype=float)
        ranges = np.array([5.0, 5 * np.sqrt(2), 5 * np.sqrt(2)]) * 1.1

        position, info = trilaterate_three(anchors, ranges)

        assert info["status"] is SolveStatus.OK
        assert np.all(np.isfinite(position))

    def test_custom_tolerance(self):
        """A large tolerance rejects otherwise valid geometry."""
        anchors = np.array([[0, 0], [1, 0], [0, 1]], dtype=float)

        position, info = trilaterate_three(anchors, np.ones(3), tolerance=10.0)

        assert position is None
        assert info["status"] is SolveStatus.DEGENERATE_GEOMETRY

    def test_wrong_shapes(self):
        with pytest.raises(ValueError, match="anchors_xy"):
            trilaterate_three(np.zeros((4, 2)), np.zeros(3))
        with pytest.raises(ValueError, match="ranges"):
            trilaterate_three(np.zeros((3, 2)), np.zeros(4))


class TestSelectAnchors:
    """Test first-three selection of qualifying anchors."""

    def test_skips_unplaced_and_unranged(self):
        anchors = [
            make_anchor("pending", None, 3.0),
            make_anchor("a", (0, 0), 1.0),
            make_anchor("silent", (5, 5), None),
            make_anchor("b", (1, 0), 1.0),
        ]

        selected = select_anchors(anchors)

        assert [a.anchor_id for a in selected] == ["a", "b"]

    def test_keeps_supplied_order(self):
        anchors = [make_anchor(x, (i, i * i), 1.0) for i, x in enumerate("dcbae")]

        selected = select_anchors(anchors)

        assert [a.anchor_id for a in selected] == ["d", "c", "b"]


class TestTrilaterationSolver:
    """Test the solver over anchor sequences."""

    def test_reference_layout(self):
        anchors = ranged_anchors([(0, 0), (10, 0), (0, 10)], [5, 5])

        position = TrilaterationSolver().solve(anchors)

        assert position is not None
        assert np.allclose(position, [5.0, 5.0], atol=1e-6)

    @pytest.mark.parametrize("n_anchors", [0, 1, 2])
    def test_fewer_than_three_is_undetermined(self, n_anchors):
        anchors = ranged_anchors([(0, 0), (10, 0), (0, 10)][:n_anchors], [5, 5])

        position, info = TrilaterationSolver().solve_with_info(anchors)

        assert position is None
        assert info["status"] is SolveStatus.INSUFFICIENT_ANCHORS
        assert info["n_qualifying"] == n_anchors

    def test_unqualified_anchors_do_not_count(self):
        """Three anchors, one without distance, is still insufficient."""
        anchors = ranged_anchors([(0, 0), (10, 0)], [5, 5])
        anchors.append(make_anchor("c", (0, 10), None))

        assert TrilaterationSolver().solve(anchors) is None

    def test_colinear_is_undetermined(self):
        anchors = [
            make_anchor("a", (0, 0), 2.0),
            make_anchor("b", (5, 0), 3.0),
            make_anchor("c", (10, 0), 8.0),
        ]

        position, info = TrilaterationSolver().solve_with_info(anchors)

        assert position is None
        assert info["status"] is SolveStatus.DEGENERATE_GEOMETRY

    def test_extra_anchors_are_ignored(self):
        """A wildly wrong fourth anchor does not change the fix."""
        anchors = ranged_anchors([(0, 0), (10, 0), (0, 10)], [5, 5])
        anchors.append(make_anchor("bad", (10, 10), 100.0))

        position, info = TrilaterationSolver().solve_with_info(anchors)

        assert np.allclose(position, [5.0, 5.0], atol=1e-6)
        assert info["anchor_ids"] == ["a0", "a1", "a2"]
        assert info["n_qualifying"] == 4

    def test_selection_depends_on_order(self):
        """Reordering inconsistent anchors changes which three are used."""
        good = ranged_anchors([(0, 0), (10, 0), (0, 10)], [5, 5])
        bad = make_anchor("bad", (10, 10), 1.0)

        first = TrilaterationSolver().solve(good + [bad])
        second = TrilaterationSolver().solve([bad] + good)

        assert not np.allclose(first, second)

    def test_deterministic(self):
        anchors = ranged_anchors([(1, 1), (9, 2), (4, 8)], [3, 3])
        solver = TrilaterationSolver()

        assert np.array_equal(solver.solve(anchors), solver.solve(anchors))

    def test_invalid_tolerance(self):
        with pytest.raises(ValueError, match="tolerance"):
            TrilaterationSolver(tolerance=-1.0)
