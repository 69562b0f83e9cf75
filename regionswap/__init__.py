"""
regionswap - track a region through video and replace it with generated variants.

One run writes one output per variant, all frame-aligned with the input.
"""

from .models import Rectangle, ReplacementInterval, Variant, PayloadRecord, RunReport, TrackingMode, RunMode
from .pipeline import ReplacementPipeline

__version__ = "0.1.0"

__all__ = [
    "Rectangle",
    "ReplacementInterval",
    "Variant",
    "PayloadRecord",
    "RunReport",
    "TrackingMode",
    "RunMode",
    "ReplacementPipeline",
]
