"""
Error types raised by the replacement engine.

Sequence runs never raise for a missed detection; the frame passes
through instead. These are the failures that end a run.
"""

from typing import Optional


class RegionSwapError(Exception):
    """Base class for all engine failures."""
    pass


class DetectionNotFound(RegionSwapError):
    """No region could be located where one was required."""
    pass


class MediaIOError(RegionSwapError, RuntimeError):
    """A video, image or payload list could not be opened, read or written."""
    pass


class UpstreamCapabilityFailure(RegionSwapError):
    """A generator, downloader or encoder failed."""
    pass


class FrameOrderError(RegionSwapError, ValueError):
    """Frames were requested out of order (repeat or gap)."""
    pass


class MalformedPayloadRecord(RegionSwapError, ValueError):
    """A payload list line is missing its name or payload field."""

    def __init__(self, line: str, line_number: Optional[int] = None):
        self.line = line
        self.line_number = line_number
        where = f"line {line_number}" if line_number is not None else "record"
        super().__init__(f"Malformed payload {where}: {line!r} (expected 'name,payload')")
