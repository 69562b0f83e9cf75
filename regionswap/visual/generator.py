"""
Variant Generators

Turn payloads into replacement images of an exact pixel size.

- TextCardGenerator renders the payload as text on a solid card.
- ImageAssetGenerator treats the payload as an image path or URL.

All output is BGR uint8, sized (width, height) exactly.
"""

from pathlib import Path
from typing import Optional, Protocol, Sequence

import cv2
import httpx
import numpy as np
from loguru import logger
from PIL import Image, ImageDraw, ImageFont

from ..config import settings
from ..errors import UpstreamCapabilityFailure
from ..models import PayloadRecord, Variant

_FALLBACK_FONTS = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
)


class VariantGenerator(Protocol):
    def generate(self, payloads: Sequence[PayloadRecord], size: tuple[int, int]) -> list[Variant]:
        ...


def _check_size(size: tuple[int, int]) -> tuple[int, int]:
    width, height = int(size[0]), int(size[1])
    if width <= 0 or height <= 0:
        raise ValueError(f"Cannot generate content of size {width}x{height}")
    return width, height


def normalize_content(image: np.ndarray, size: tuple[int, int]) -> np.ndarray:
    """Resize to `size` and convert to 3-channel BGR uint8."""
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    elif image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if image.dtype != np.uint8:
        image = cv2.normalize(image, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
    if (image.shape[1], image.shape[0]) != size:
        image = cv2.resize(image, size, interpolation=cv2.INTER_AREA)
    return image


class TextCardGenerator:
    """
    Render each payload as centered text.

    The font size starts at the card height and shrinks until the text
    fits inside the card with a small margin.
    """

    def __init__(
        self,
        font_path: Optional[str] = None,
        color: Optional[tuple] = None,
        background_color: Optional[tuple] = None,
        margin: float = 0.08,
    ):
        self.font_path = font_path if font_path is not None else settings.font_path
        self.color = tuple(color if color is not None else settings.text_color)
        self.background_color = tuple(
            background_color if background_color is not None else settings.background_color
        )
        self.margin = margin
        self._warned_font = False

    def generate(self, payloads: Sequence[PayloadRecord], size: tuple[int, int]) -> list[Variant]:
        size = _check_size(size)
        return [Variant(name=p.name, content=self.render(p.payload, size)) for p in payloads]

    def render(self, text: str, size: tuple[int, int]) -> np.ndarray:
        width, height = size
        img = Image.new("RGB", (width, height), self.background_color)
        draw = ImageDraw.Draw(img)

        font = self._fit_font(draw, text, width, height)
        bbox = draw.textbbox((0, 0), text, font=font)
        text_width = bbox[2] - bbox[0]
        text_height = bbox[3] - bbox[1]
        x = (width - text_width) // 2 - bbox[0]
        y = (height - text_height) // 2 - bbox[1]
        draw.text((x, y), text, font=font, fill=self.color)

        return cv2.cvtColor(np.array(img), cv2.COLOR_RGB2BGR)

    def _fit_font(self, draw: ImageDraw.ImageDraw, text: str, width: int, height: int):
        max_w = max(1, int(width * (1 - 2 * self.margin)))
        max_h = max(1, int(height * (1 - 2 * self.margin)))
        font_size = max(1, max_h)
        while True:
            font = self._load_font(font_size)
            bbox = draw.textbbox((0, 0), text, font=font)
            if (bbox[2] - bbox[0] <= max_w and bbox[3] - bbox[1] <= max_h) or font_size <= 1:
                return font
            font_size = max(1, int(font_size * 0.85))

    def _load_font(self, font_size: int):
        candidates = ([self.font_path] if self.font_path else []) + list(_FALLBACK_FONTS)
        for path in candidates:
            try:
                return ImageFont.truetype(path, font_size)
            except OSError:
                continue
        if not self._warned_font:
            logger.warning("No TrueType font found, using Pillow's default font")
            self._warned_font = True
        return ImageFont.load_default(size=font_size)


class ImageAssetGenerator:
    """
    Load each payload as an image.

    Payloads starting with http:// or https:// are downloaded, anything
    else is read from disk. Images are fetched once and resized per call.
    """

    def __init__(self, client: Optional[httpx.Client] = None, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self._cache: dict[str, np.ndarray] = {}

    def generate(self, payloads: Sequence[PayloadRecord], size: tuple[int, int]) -> list[Variant]:
        size = _check_size(size)
        return [
            Variant(name=p.name, content=normalize_content(self.load(p.payload), size))
            for p in payloads
        ]

    def load(self, payload: str) -> np.ndarray:
        if payload not in self._cache:
            data = self._fetch(payload)
            image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
            if image is None:
                raise UpstreamCapabilityFailure(f"Cannot decode image: {payload}")
            self._cache[payload] = image
        return self._cache[payload]

    def _fetch(self, payload: str) -> bytes:
        if payload.startswith(("http://", "https://")):
            logger.debug(f"Downloading image: {payload}")
            try:
                if self.client is not None:
                    response = self.client.get(payload, follow_redirects=True)
                else:
                    response = httpx.get(payload, timeout=self.timeout, follow_redirects=True)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise UpstreamCapabilityFailure(f"Image download failed for {payload}: {e}") from e
            return response.content

        path = Path(payload)
        try:
            return path.read_bytes()
        except OSError as e:
            raise UpstreamCapabilityFailure(f"Cannot read image {path}: {e}") from e
