"""
Core data models for the replacement engine.
These define rectangles, variants, payload records and run results.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

import numpy as np
from pydantic import BaseModel, Field


class TrackingMode(str, Enum):
    """How the tracker treats successive detections."""
    FOLLOW = "follow"        # Use whatever the detector returns each time
    STICKY = "sticky"        # Lock onto the first detection, never drift


class RunMode(str, Enum):
    """How a video run finds the rectangle for each frame."""
    STREAM = "stream"        # Per-frame tracking with bounded lookahead
    INTERVAL = "interval"    # One fixed rectangle over a pre-computed range


class DetectorKind(str, Enum):
    TEMPLATE = "template"
    QR = "qr"


class GeneratorKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"


@dataclass(frozen=True)
class Rectangle:
    """An integer pixel rectangle (top-left corner plus size)."""
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def normalized(cls, x: float, y: float, width: float, height: float) -> Optional["Rectangle"]:
        """
        Build a rectangle, or None when either dimension is negative.

        Invalid boxes are never clamped into something valid.
        """
        if width < 0 or height < 0:
            return None
        return cls(int(x), int(y), int(width), int(height))

    @property
    def size(self) -> tuple[int, int]:
        """(width, height)"""
        return (self.width, self.height)

    def padded(self, padding: int) -> Optional["Rectangle"]:
        """Grow by `padding` pixels on every side (shrink if negative)."""
        return Rectangle.normalized(
            self.x - padding,
            self.y - padding,
            self.width + 2 * padding,
            self.height + 2 * padding,
        )

    def clipped_to(self, frame_width: int, frame_height: int) -> tuple[int, int, int, int]:
        """Return (x1, y1, x2, y2) of the part inside a frame of the given size."""
        x1 = max(0, self.x)
        y1 = max(0, self.y)
        x2 = min(frame_width, self.x + self.width)
        y2 = min(frame_height, self.y + self.height)
        return x1, y1, x2, y2


@dataclass(frozen=True)
class ReplacementInterval:
    """Closed range [start, end] of frame indices eligible for replacement."""
    start: int
    end: int

    def contains(self, frame_index: int) -> bool:
        return self.start <= frame_index <= self.end

    def __len__(self) -> int:
        return self.end - self.start + 1


@dataclass
class Variant:
    """One named replacement image, already sized to its target rectangle."""
    name: str
    content: np.ndarray     # BGR or BGRA, shape (height, width, channels)

    @property
    def size(self) -> tuple[int, int]:
        return (self.content.shape[1], self.content.shape[0])


class PayloadRecord(BaseModel):
    """A single `name,payload` entry from a payload list."""
    name: str = Field(min_length=1)
    payload: str


@dataclass
class RunReport:
    """Summary of a finished (or aborted) run."""
    frames_processed: int = 0
    frames_replaced: int = 0
    outputs: dict[str, Path] = field(default_factory=dict)
    interval: Optional[ReplacementInterval] = None
    aborted: bool = False
