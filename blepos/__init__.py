"""BLE anchor positioning engine.

This package contains the reusable positioning components:
- rf: Signal-strength ranging and three-anchor trilateration
- anchors: Anchor types, operator input parsing and the anchor registry
- pipeline: Coordinator turning raw samples into position estimates
"""

__version__ = "0.1.0"
