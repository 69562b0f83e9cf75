"""
Frame sources and sinks.

Sources are indexable: the tracker looks ahead after a miss, so a frame
may be requested before the loop reaches it. VideoFrameSource keeps a
window of decoded frames so that lookahead costs one decode per frame,
and reading backward costs one seek per window rather than per frame.

Sinks receive frames strictly in index order, one sink per variant.
"""

from collections import OrderedDict
from pathlib import Path
from typing import Optional, Protocol, Sequence

import cv2
import ffmpeg as ffmpeg_lib
import numpy as np
from loguru import logger

from ..config import settings
from ..errors import MediaIOError, UpstreamCapabilityFailure
from .video_info import VideoInfo, get_video_info


class FrameSource(Protocol):
    fps: float

    def __len__(self) -> int:
        ...

    def __getitem__(self, index: int) -> np.ndarray:
        ...


class FrameSink(Protocol):
    def write(self, frame: np.ndarray) -> None:
        ...

    def close(self) -> None:
        ...


def _freeze(frame: np.ndarray) -> np.ndarray:
    frame.setflags(write=False)
    return frame


class ArrayFrameSource:
    """A frame source over frames already in memory."""

    def __init__(self, frames: Sequence[np.ndarray], fps: float = 30.0):
        self._frames = [_freeze(np.array(f, copy=True)) for f in frames]
        self.fps = fps
        self.reads = 0

    def __len__(self) -> int:
        return len(self._frames)

    def __getitem__(self, index: int) -> np.ndarray:
        if not 0 <= index < len(self._frames):
            raise IndexError(f"Frame {index} out of range")
        self.reads += 1
        return self._frames[index]


class VideoFrameSource:
    """
    Random-access reader over a video file.

    Usage:
        with VideoFrameSource("input.mp4") as source:
            for i in range(len(source)):
                frame = source[i]
    """

    def __init__(self, video_path: str | Path, window: Optional[int] = None):
        self.path = Path(video_path)
        if not self.path.exists():
            raise MediaIOError(f"Video not found: {self.path}")

        self._cap = cv2.VideoCapture(str(self.path))
        if not self._cap.isOpened():
            raise MediaIOError(f"Cannot open video: {self.path}")

        info = self._probe()
        self.width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))

        fps = info.fps if info else self._cap.get(cv2.CAP_PROP_FPS)
        if not fps or fps <= 0:
            logger.warning(f"Unknown frame rate for {self.path.name}, assuming {settings.fallback_fps}")
            fps = settings.fallback_fps
        self.fps = fps

        if info and info.frame_count:
            self._frame_count = info.frame_count
        else:
            self._frame_count = int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT))

        self.window = window if window is not None else settings.decode_window
        self._decoded: OrderedDict[int, np.ndarray] = OrderedDict()
        self._position = 0

        logger.info(
            f"Opened video: {self.width}x{self.height} @ {self.fps:.2f}fps, "
            f"{self._frame_count} frames"
        )

    def _probe(self) -> Optional[VideoInfo]:
        try:
            return get_video_info(self.path)
        except (MediaIOError, FileNotFoundError) as e:
            logger.warning(f"ffprobe unavailable ({e}), using OpenCV properties")
            return None

    def __len__(self) -> int:
        return self._frame_count

    def __getitem__(self, index: int) -> np.ndarray:
        if not 0 <= index < self._frame_count:
            raise IndexError(f"Frame {index} out of range")

        if index in self._decoded:
            return self._decoded[index]

        if index < self._position:
            # Reading backward: refill the whole window ending at index
            self._seek(max(0, index - max(1, self.window) + 1))
        elif index - self._position > self.window:
            self._seek(index)

        while self._position <= index:
            ret, frame = self._cap.read()
            if not ret:
                raise MediaIOError(f"Cannot read frame {self._position} of {self.path}")
            self._remember(self._position, _freeze(frame))
            self._position += 1

        return self._decoded[index]

    def _seek(self, index: int):
        self._cap.set(cv2.CAP_PROP_POS_FRAMES, index)
        self._position = index

    def _remember(self, index: int, frame: np.ndarray):
        self._decoded[index] = frame
        self._decoded.move_to_end(index)
        while len(self._decoded) > max(1, self.window):
            self._decoded.popitem(last=False)

    def close(self):
        self._cap.release()
        self._decoded.clear()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def read_image(image_path: str | Path) -> np.ndarray:
    """Load a still image as a read-only BGR frame."""
    image_path = Path(image_path)
    image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
    if image is None:
        raise MediaIOError(f"Cannot load image: {image_path}")
    return _freeze(image)


class FfmpegVideoSink:
    """
    Encode raw BGR frames through an FFmpeg pipe.

    The process starts when the sink is created, so every output exists
    before the first frame is processed. Closing flushes and waits.
    """

    def __init__(
        self,
        output_path: str | Path,
        width: int,
        height: int,
        fps: float,
        codec: Optional[str] = None,
        crf: Optional[int] = None,
        pix_fmt: Optional[str] = None,
    ):
        self.path = Path(output_path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.width = width
        self.height = height
        self.frames_written = 0

        try:
            self._process = (
                ffmpeg_lib
                .input("pipe:", format="rawvideo", pix_fmt="bgr24", s=f"{width}x{height}", framerate=fps)
                .output(
                    str(self.path),
                    vcodec=codec or settings.video_codec,
                    crf=crf if crf is not None else settings.video_crf,
                    pix_fmt=pix_fmt or settings.pix_fmt,
                )
                .global_args("-hide_banner", "-loglevel", "error")
                .overwrite_output()
                .run_async(pipe_stdin=True)
            )
        except OSError as e:
            raise UpstreamCapabilityFailure(f"Cannot start FFmpeg for {self.path}: {e}") from e

        logger.debug(f"Encoder started: {self.path}")

    def write(self, frame: np.ndarray):
        if frame.shape[0] != self.height or frame.shape[1] != self.width:
            raise ValueError(
                f"Frame is {frame.shape[1]}x{frame.shape[0]}, sink expects {self.width}x{self.height}"
            )
        try:
            self._process.stdin.write(np.ascontiguousarray(frame, dtype=np.uint8).tobytes())
        except BrokenPipeError as e:
            raise UpstreamCapabilityFailure(f"Encoder for {self.path} exited early") from e
        self.frames_written += 1

    def close(self):
        if self._process is None:
            return
        process, self._process = self._process, None
        if process.stdin and not process.stdin.closed:
            try:
                process.stdin.close()
            except BrokenPipeError:
                pass
        returncode = process.wait()
        if returncode != 0:
            raise UpstreamCapabilityFailure(f"FFmpeg exited with {returncode} for {self.path}")
        logger.info(f"Wrote {self.frames_written} frames: {self.path}")


class ImageFileSink:
    """Write a single frame to an image file."""

    def __init__(self, output_path: str | Path):
        self.path = Path(output_path)
        self.frames_written = 0

    def write(self, frame: np.ndarray):
        if self.frames_written:
            raise MediaIOError(f"Image sink {self.path} already written")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not cv2.imwrite(str(self.path), frame):
            raise MediaIOError(f"Cannot write image: {self.path}")
        self.frames_written += 1
        logger.info(f"Wrote image: {self.path}")

    def close(self):
        pass


class MemorySink:
    """Collect frames in a list."""

    def __init__(self):
        self.frames: list[np.ndarray] = []
        self.closed = False

    @property
    def frames_written(self) -> int:
        return len(self.frames)

    def write(self, frame: np.ndarray):
        if self.closed:
            raise MediaIOError("Sink is closed")
        self.frames.append(frame)

    def close(self):
        self.closed = True
