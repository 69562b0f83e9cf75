"""
Gap Bridging for Per-Item Detectors

Detectors fail transiently (motion blur, occlusion, resampling at edges).
When one misses, probe a bounded number of upcoming items; if any of them
hits, reuse that result for the gap so the output does not flicker.

Nothing here knows about images: a probe is any callable mapping an
index to an optional result.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar

from loguru import logger

from ..errors import FrameOrderError
from ..models import TrackingMode

T = TypeVar("T")


class TrackerPhase(str, Enum):
    """Where the bridge is in its search/serve cycle."""
    SEARCHING = "searching"   # No cached predictions, probe the current item
    CACHED = "cached"         # Serving predictions from an earlier scan
    LOST = "lost"             # Scan window exhausted, item passed through


@dataclass
class TrackingState(Generic[T]):
    """Mutable state for one run. Create one per run, never share it."""
    cache: deque = field(default_factory=deque)
    last_known: Optional[T] = None
    mode: TrackingMode = TrackingMode.FOLLOW
    phase: TrackerPhase = TrackerPhase.SEARCHING
    next_index: Optional[int] = None


class LookaheadBridge(Generic[T]):
    """
    Queue plus bounded lookahead over a probe function.

    Usage:
        bridge = LookaheadBridge(probe, length=len(items), max_miss=15)
        for i in range(len(items)):
            result = bridge.next(i)

    `next` must be called once per index, in order, with no gaps.
    """

    def __init__(
        self,
        probe: Callable[[int], Optional[T]],
        length: int,
        max_miss: int,
        state: Optional[TrackingState] = None,
    ):
        if max_miss < 0:
            raise ValueError(f"max_miss must be >= 0, got {max_miss}")
        self.probe = probe
        self.length = length
        self.max_miss = max_miss
        self.state = state if state is not None else TrackingState()

    def next(self, index: int) -> Optional[T]:
        """Return the result for `index`, or None to pass the item through."""
        self._check_order(index)
        state = self.state

        if state.cache:
            state.phase = TrackerPhase.CACHED
            return state.cache.popleft()

        state.phase = TrackerPhase.SEARCHING
        result = self.probe(index)
        if result is not None:
            return self._lock(result)

        # Offset 0 is the item that just missed
        for offset in range(1, self.max_miss):
            ahead = index + offset
            if ahead >= self.length:
                break
            result = self.probe(ahead)
            if result is not None:
                result = self._lock(result)
                logger.debug(f"Bridged miss at {index} with hit at {ahead}")
                state.cache.extend([result] * (offset + 1))
                state.phase = TrackerPhase.CACHED
                return state.cache.popleft()

        state.phase = TrackerPhase.LOST
        logger.debug(f"No hit within {self.max_miss} items of {index}")
        return None

    def _lock(self, result: T) -> T:
        state = self.state
        if state.mode != TrackingMode.STICKY:
            return result
        if state.last_known is None:
            state.last_known = result
        return state.last_known

    def _check_order(self, index: int):
        expected = self.state.next_index
        if expected is not None and index != expected:
            raise FrameOrderError(f"Expected index {expected}, got {index}")
        if not 0 <= index < self.length:
            raise FrameOrderError(f"Index {index} outside sequence of length {self.length}")
        self.state.next_index = index + 1
