"""Frame I/O and video probing used across all modules."""

from .frames import (
    FrameSource,
    FrameSink,
    ArrayFrameSource,
    VideoFrameSource,
    FfmpegVideoSink,
    ImageFileSink,
    MemorySink,
    read_image,
)
from .video_info import VideoInfo, get_video_info

__all__ = [
    "FrameSource",
    "FrameSink",
    "ArrayFrameSource",
    "VideoFrameSource",
    "FfmpegVideoSink",
    "ImageFileSink",
    "MemorySink",
    "read_image",
    "VideoInfo",
    "get_video_info",
]
