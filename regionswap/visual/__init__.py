"""
Visual Replacement Module

Finds the region in each frame and composites generated variants into it.
"""

from .bridge import LookaheadBridge, TrackingState, TrackerPhase
from .compositor import MultiVariantCompositor, composite_region
from .detector import RegionDetector, TemplateMatchDetector, QRCodeRegionDetector
from .generator import VariantGenerator, TextCardGenerator, ImageAssetGenerator
from .tracker import RegionTracker, IntervalLocator, LocatedInterval

__all__ = [
    "LookaheadBridge",
    "TrackingState",
    "TrackerPhase",
    "MultiVariantCompositor",
    "composite_region",
    "RegionDetector",
    "TemplateMatchDetector",
    "QRCodeRegionDetector",
    "VariantGenerator",
    "TextCardGenerator",
    "ImageAssetGenerator",
    "RegionTracker",
    "IntervalLocator",
    "LocatedInterval",
]
