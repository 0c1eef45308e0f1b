"""Sample-to-position coordination."""

from blepos.pipeline.coordinator import PositionPipeline

__all__ = ["PositionPipeline"]
