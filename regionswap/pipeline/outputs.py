"""
Output naming and opening: one file per variant from a single pattern.
"""

from pathlib import Path
from typing import Mapping, Optional, Sequence

from loguru import logger

from ..config import settings
from ..core.frames import FfmpegVideoSink, ImageFileSink
from ..errors import UpstreamCapabilityFailure


def resolve_output_paths(
    pattern: str,
    names: Sequence[str],
    placeholder: Optional[str] = None,
) -> dict[str, Path]:
    """
    Substitute each variant name into `pattern`.

    "out/{name}.mp4" with names ["a", "b"] gives out/a.mp4 and out/b.mp4.
    A pattern without the placeholder is only accepted for one variant,
    otherwise every variant would overwrite the same file.
    """
    placeholder = placeholder or settings.output_placeholder
    if placeholder not in pattern:
        if len(names) > 1:
            raise ValueError(
                f"Output pattern {pattern!r} has no {placeholder!r} placeholder "
                f"but {len(names)} variants were requested"
            )
        return {name: Path(pattern) for name in names}
    return {name: Path(pattern.replace(placeholder, name)) for name in names}


def open_video_sinks(
    output_paths: Mapping[str, Path],
    width: int,
    height: int,
    fps: float,
) -> dict[str, FfmpegVideoSink]:
    """Start one encoder per variant. If any fails, the ones already started are closed."""
    sinks: dict[str, FfmpegVideoSink] = {}
    try:
        for name, path in output_paths.items():
            sinks[name] = FfmpegVideoSink(path, width, height, fps)
    except Exception:
        for sink in sinks.values():
            try:
                sink.close()
            except UpstreamCapabilityFailure as e:
                logger.warning(f"Cleanup of {sink.path} failed: {e}")
        raise
    return sinks


def open_image_sinks(output_paths: Mapping[str, Path]) -> dict[str, ImageFileSink]:
    return {name: ImageFileSink(path) for name, path in output_paths.items()}
