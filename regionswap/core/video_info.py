"""
Video information extraction using ffprobe.

The tracker's lookahead and the interval margin are both derived from
the frame rate, so it has to be the real stream rate, not a guess.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import ffmpeg as ffmpeg_lib
from loguru import logger

from ..errors import MediaIOError


@dataclass
class VideoInfo:
    """What the engine needs to know about a video file."""
    width: int
    height: int
    fps: float
    frame_count: Optional[int]   # None when the container does not say
    duration: float
    video_codec: str
    path: Path


def parse_frame_rate(rate: str) -> float:
    """Parse ffprobe rates such as "30000/1001" or "25"."""
    if "/" in rate:
        num, den = rate.split("/")
        return float(num) / float(den) if float(den) else 0.0
    return float(rate)


def get_video_info(video_path: str | Path) -> VideoInfo:
    """Probe a video with ffprobe."""
    video_path = Path(video_path)

    if not video_path.exists():
        raise MediaIOError(f"Video not found: {video_path}")

    try:
        data = ffmpeg_lib.probe(str(video_path))
    except ffmpeg_lib.Error as e:
        stderr = e.stderr.decode(errors="replace") if e.stderr else ""
        raise MediaIOError(f"ffprobe failed for {video_path}: {stderr}") from e

    video_stream = next(
        (s for s in data.get("streams", []) if s.get("codec_type") == "video"),
        None,
    )
    if video_stream is None:
        raise MediaIOError(f"No video stream found in {video_path}")

    fps = parse_frame_rate(video_stream.get("r_frame_rate", "0/1"))
    nb_frames = video_stream.get("nb_frames")
    frame_count = int(nb_frames) if nb_frames and str(nb_frames).isdigit() else None
    duration = float(data.get("format", {}).get("duration", 0) or 0)

    if frame_count is None:
        logger.debug(f"{video_path.name}: container has no frame count")

    return VideoInfo(
        width=int(video_stream["width"]),
        height=int(video_stream["height"]),
        fps=fps,
        frame_count=frame_count,
        duration=duration,
        video_codec=video_stream.get("codec_name", "unknown"),
        path=video_path,
    )
