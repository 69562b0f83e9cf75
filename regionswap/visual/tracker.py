"""
Region Tracking for Replacement

Finds the region to replace in each frame of a sequence.

Two strategies:
- RegionTracker: per-frame detection, bridging short misses with a
  bounded forward scan (lookahead = half a second of frames).
- IntervalLocator: find the first and last frames where the region is
  visible, then use one fixed rectangle for that whole range.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from ..core.frames import FrameSource
from ..models import Rectangle, ReplacementInterval, TrackingMode
from .bridge import LookaheadBridge, TrackingState, TrackerPhase
from .detector import RegionDetector


def max_miss_count(fps: float) -> int:
    """Frames the tracker may look ahead after a miss (half a second)."""
    return int(fps // 2)


def latency_margin(fps: float) -> int:
    """Frames added to each side of an interval for detector lag (a fifth of a second)."""
    return int(fps // 5)


class RegionTracker:
    """
    Track one region through a frame source.

    Cached predictions are trusted without re-detection. A miss triggers
    a scan of up to max_miss_count frames; a hit there is reused for every
    frame in between. Otherwise the frame passes through (None).
    """

    def __init__(
        self,
        source: FrameSource,
        detector: RegionDetector,
        padding: int = 0,
        mode: TrackingMode = TrackingMode.FOLLOW,
        max_miss: Optional[int] = None,
    ):
        self.source = source
        self.detector = detector
        self.padding = padding
        if max_miss is None:
            max_miss = max_miss_count(source.fps)
        self.state: TrackingState[Rectangle] = TrackingState(mode=TrackingMode(mode))
        self._bridge = LookaheadBridge(
            self._detect_at,
            length=len(source),
            max_miss=max_miss,
            state=self.state,
        )

    @property
    def max_miss(self) -> int:
        return self._bridge.max_miss

    @property
    def phase(self) -> TrackerPhase:
        return self.state.phase

    def next(self, frame_index: int) -> Optional[Rectangle]:
        """Rectangle for `frame_index`, or None to pass the frame through."""
        return self._bridge.next(frame_index)

    def _detect_at(self, frame_index: int) -> Optional[Rectangle]:
        return self.detector.detect(self.source[frame_index], self.padding)


@dataclass
class LocatedInterval:
    """Result of an interval sweep. Both fields are None when nothing was found."""
    interval: Optional[ReplacementInterval]
    rectangle: Optional[Rectangle]

    @property
    def empty(self) -> bool:
        return self.interval is None


class IntervalLocator:
    """
    Find the window in which the region is visible.

    Sweeps forward for the first detection and backward for the last,
    then widens both ends by a latency margin.
    """

    def __init__(
        self,
        detector: RegionDetector,
        padding: int = 0,
        margin: Optional[int] = None,
    ):
        self.detector = detector
        self.padding = padding
        self.margin = margin

    def locate(self, source: FrameSource) -> LocatedInterval:
        frame_count = len(source)
        margin = self.margin if self.margin is not None else latency_margin(source.fps)

        raw_start = None
        rectangle = None
        for index in range(frame_count):
            rectangle = self.detector.detect(source[index], self.padding)
            if rectangle is not None:
                raw_start = index
                break

        if raw_start is None:
            logger.info("Region not found in any frame, output will be passthrough")
            return LocatedInterval(interval=None, rectangle=None)

        raw_end = raw_start
        for index in range(frame_count - 1, raw_start, -1):
            if self.detector.detect(source[index], self.padding) is not None:
                raw_end = index
                break

        interval = ReplacementInterval(
            start=max(0, raw_start - margin),
            end=min(frame_count - 1, raw_end + margin),
        )
        logger.info(
            f"Region visible in frames {raw_start}-{raw_end}, "
            f"replacing {interval.start}-{interval.end} (margin {margin})"
        )
        return LocatedInterval(interval=interval, rectangle=rectangle)
