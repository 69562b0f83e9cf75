"""Test doubles and frame builders shared across tests."""

from __future__ import annotations

from typing import Optional

import numpy as np

from regionswap.models import Rectangle, Variant


def make_frames(count: int, width: int = 64, height: int = 48, seed: int = 0) -> list[np.ndarray]:
    """Noise frames with the frame index stamped into pixel (0, 0)."""
    rng = np.random.default_rng(seed)
    frames = []
    for index in range(count):
        frame = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
        frame[0, 0] = (index & 0xFF, (index >> 8) & 0xFF, 0)
        frames.append(frame)
    return frames


def frame_index(frame: np.ndarray) -> int:
    return int(frame[0, 0, 0]) | (int(frame[0, 0, 1]) << 8)


class ScriptedDetector:
    """Returns a fixed rectangle for chosen frame indices and records every call."""

    def __init__(self, hits: dict[int, Rectangle]):
        self.hits = hits
        self.calls: list[int] = []

    def detect(self, frame: np.ndarray, padding: int = 0) -> Optional[Rectangle]:
        index = frame_index(frame)
        self.calls.append(index)
        rect = self.hits.get(index)
        return rect.padded(padding) if rect is not None else None


class SolidGenerator:
    """Fills each variant with its own solid color; counts generate() calls."""

    def __init__(self, colors: Optional[dict[str, tuple[int, int, int]]] = None):
        self.colors = colors or {}
        self.sizes: list[tuple[int, int]] = []

    def generate(self, payloads, size):
        self.sizes.append(tuple(size))
        width, height = size
        variants = []
        for i, record in enumerate(payloads):
            color = self.colors.get(record.name, (10 * (i + 1), 20 * (i + 1), 30 * (i + 1)))
            content = np.zeros((height, width, 3), dtype=np.uint8)
            content[:] = color
            variants.append(Variant(name=record.name, content=content))
        return variants


class RecordingSink:
    """Appends (name, frame index) to a shared log on every write."""

    def __init__(self, name: str, log: list):
        self.name = name
        self.log = log
        self.frames: list[np.ndarray] = []
        self.closed = False

    def write(self, frame):
        self.log.append((self.name, frame_index(frame)))
        self.frames.append(frame)

    def close(self):
        self.closed = True
