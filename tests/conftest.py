from __future__ import annotations

import pytest

from regionswap.core.frames import ArrayFrameSource
from regionswap.models import PayloadRecord, Rectangle
from tests.helpers import make_frames


@pytest.fixture
def payloads() -> list[PayloadRecord]:
    return [
        PayloadRecord(name="alpha", payload="https://example.com/a"),
        PayloadRecord(name="beta", payload="https://example.com/b"),
    ]


@pytest.fixture
def rect() -> Rectangle:
    return Rectangle(10, 8, 20, 16)


@pytest.fixture
def source_factory():
    def _make(count: int, fps: float = 8.0) -> ArrayFrameSource:
        return ArrayFrameSource(make_frames(count), fps=fps)

    return _make
