"""
Region Detectors

A detector looks at one frame and returns the padded bounding rectangle
of the region, or None. Anything with a matching `detect` method works,
including scripted doubles in tests.
"""

from pathlib import Path
from typing import Optional, Protocol

import cv2
import numpy as np
from loguru import logger

from ..errors import MediaIOError
from ..models import Rectangle


class RegionDetector(Protocol):
    def detect(self, frame: np.ndarray, padding: int = 0) -> Optional[Rectangle]:
        ...


def _to_gray(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


class TemplateMatchDetector:
    """
    Find a reference image inside each frame.

    Uses normalized squared-difference matching, so the best match is the
    minimum of the response map. score = 1 - min_val, and a match counts
    when score >= threshold.
    """

    def __init__(self, template: np.ndarray, threshold: float = 0.8):
        if template is None or template.size == 0:
            raise ValueError("Template image is empty")
        self.template = _to_gray(template)
        self.threshold = threshold
        self.last_score: Optional[float] = None

    @classmethod
    def from_file(cls, template_path: str | Path, threshold: float = 0.8) -> "TemplateMatchDetector":
        template_path = Path(template_path)
        template = cv2.imread(str(template_path), cv2.IMREAD_COLOR)
        if template is None:
            raise MediaIOError(f"Cannot load template image: {template_path}")
        return cls(template, threshold)

    def detect(self, frame: np.ndarray, padding: int = 0) -> Optional[Rectangle]:
        gray = _to_gray(frame)
        t_h, t_w = self.template.shape[:2]
        if gray.shape[0] < t_h or gray.shape[1] < t_w:
            return None

        result = cv2.matchTemplate(gray, self.template, cv2.TM_SQDIFF_NORMED)
        min_val, _, min_loc, _ = cv2.minMaxLoc(result)
        if not np.isfinite(min_val):
            return None
        self.last_score = 1.0 - float(min_val)
        logger.debug(
            f"Template match score {self.last_score:.3f} at x={min_loc[0]}, y={min_loc[1]} "
            f"(threshold {self.threshold})"
        )

        if self.last_score < self.threshold:
            return None

        box = Rectangle.normalized(min_loc[0], min_loc[1], t_w, t_h)
        return box.padded(padding) if box is not None else None


class QRCodeRegionDetector:
    """Locate a QR code and return the upright bounding box of its corners."""

    def __init__(self):
        self._detector = cv2.QRCodeDetector()

    def detect(self, frame: np.ndarray, padding: int = 0) -> Optional[Rectangle]:
        found, points = self._detector.detect(frame)
        if not found or points is None:
            return None

        x, y, w, h = cv2.boundingRect(points.reshape(-1, 2).astype(np.float32))
        box = Rectangle.normalized(x, y, w, h)
        if box is None:
            logger.debug(f"Discarding degenerate QR box {(x, y, w, h)}")
            return None
        return box.padded(padding)
