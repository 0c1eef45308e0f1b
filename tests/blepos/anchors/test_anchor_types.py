"""Unit tests for blepos.anchors.types module.

Tests the Calibration and Anchor dataclasses.
"""

import unittest
import warnings
from dataclasses import FrozenInstanceError, replace

from blepos.anchors.types import Anchor, Calibration
from blepos.errors import InvalidAnchorIdError, InvalidCalibrationError


class TestCalibration(unittest.TestCase):
    """Test suite for Calibration dataclass."""

    def test_defaults(self) -> None:
        """Unset calibration is (-65 dBm, 2.0)."""
        cal = Calibration()

        self.assertEqual(cal.reference_strength, -65.0)
        self.assertEqual(cal.path_loss_exponent, 2.0)

    def test_zero_exponent_rejected(self) -> None:
        with self.assertRaises(InvalidCalibrationError):
            Calibration(-65.0, 0.0)

    def test_non_finite_rejected(self) -> None:
        for ref, n in [(float("nan"), 2.0), (-65.0, float("inf")), (float("-inf"), 2.0)]:
            with self.subTest(ref=ref, n=n):
                with self.assertRaises(InvalidCalibrationError):
                    Calibration(ref, n)

    def test_unusual_exponent_warns(self) -> None:
        """Exponents outside [1, 6] are accepted with a warning."""
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            cal = Calibration(-65.0, 8.0)

        self.assertEqual(cal.path_loss_exponent, 8.0)
        self.assertEqual(len(w), 1)
        self.assertTrue(issubclass(w[0].category, UserWarning))
        self.assertIn("typical range", str(w[0].message))

    def test_typical_exponent_does_not_warn(self) -> None:
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            Calibration(-59.0, 2.7)

        self.assertEqual(len(w), 0)

    def test_frozen(self) -> None:
        cal = Calibration()
        with self.assertRaises(FrozenInstanceError):
            cal.path_loss_exponent = 3.0


class TestAnchor(unittest.TestCase):
    """Test suite for Anchor dataclass."""

    def test_new_anchor_is_pending(self) -> None:
        anchor = Anchor(anchor_id="c3:1a", name="Kitchen")

        self.assertIsNone(anchor.coordinate)
        self.assertIsNone(anchor.distance)
        self.assertIsNone(anchor.last_signal_strength)
        self.assertEqual(anchor.calibration, Calibration())
        self.assertFalse(anchor.is_placed)
        self.assertFalse(anchor.is_ranged)
        self.assertFalse(anchor.qualifies)

    def test_qualifies_needs_coordinate_and_distance(self) -> None:
        placed = Anchor("a", "A", coordinate=(1.0, 2.0))
        ranged = Anchor("b", "B", distance=3.0)
        both = Anchor("c", "C", coordinate=(1.0, 2.0), distance=3.0)

        self.assertTrue(placed.is_placed)
        self.assertFalse(placed.qualifies)
        self.assertTrue(ranged.is_ranged)
        self.assertFalse(ranged.qualifies)
        self.assertTrue(both.qualifies)

    def test_sentinel_distance_counts_as_ranged(self) -> None:
        """The -1.0 'not measurable' distance is still a distance."""
        anchor = Anchor("a", "A", coordinate=(0.0, 0.0), distance=-1.0)

        self.assertTrue(anchor.qualifies)

    def test_empty_id_rejected(self) -> None:
        with self.assertRaises(InvalidAnchorIdError):
            Anchor(anchor_id="", name="A")

    def test_non_string_id_rejected(self) -> None:
        with self.assertRaises(InvalidAnchorIdError) as ctx:
            Anchor(anchor_id=42, name="A")

        self.assertEqual(ctx.exception.anchor_id, 42)
        self.assertIsInstance(ctx.exception, ValueError)

    def test_non_finite_coordinate_rejected(self) -> None:
        with self.assertRaises(ValueError):
            Anchor("a", "A", coordinate=(float("nan"), 0.0))

    def test_replace_leaves_original(self) -> None:
        original = Anchor("a", "A")
        moved = replace(original, coordinate=(4.0, 5.0))

        self.assertIsNone(original.coordinate)
        self.assertEqual(moved.coordinate, (4.0, 5.0))


if __name__ == "__main__":
    unittest.main()
