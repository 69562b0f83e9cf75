"""
Multi-Variant Compositor

Produces one output frame per variant from a single input frame. The
input is never modified; every variant gets its own copy, so all output
streams receive a frame for every input frame whether or not anything
was replaced.
"""

from typing import Optional, Sequence

import numpy as np

from ..models import Rectangle, Variant


def composite_region(frame: np.ndarray, content: np.ndarray, rect: Rectangle) -> np.ndarray:
    """
    Write `content` into `frame` at `rect`, in place.

    Content must already be rect-sized. Parts of the rectangle outside the
    frame are dropped. BGRA content is alpha blended, BGR is copied.
    """
    if (content.shape[1], content.shape[0]) != rect.size:
        raise ValueError(
            f"Variant content is {content.shape[1]}x{content.shape[0]}, "
            f"rectangle is {rect.width}x{rect.height}"
        )

    frame_h, frame_w = frame.shape[:2]
    x1, y1, x2, y2 = rect.clipped_to(frame_w, frame_h)

    # Matching crop of the content when the rectangle hangs off the frame
    ax1 = x1 - rect.x
    ay1 = y1 - rect.y
    ax2 = ax1 + (x2 - x1)
    ay2 = ay1 + (y2 - y1)

    if ax2 <= ax1 or ay2 <= ay1:
        return frame  # Completely out of frame

    roi = frame[y1:y2, x1:x2]
    overlay = content[ay1:ay2, ax1:ax2]

    if overlay.ndim == 3 and overlay.shape[2] == 4:
        alpha = overlay[:, :, 3:4] / 255.0
        overlay_rgb = overlay[:, :, :3]
        blended = (alpha * overlay_rgb + (1 - alpha) * roi[:, :, :3]).astype(np.uint8)
        frame[y1:y2, x1:x2, :3] = blended
    else:
        frame[y1:y2, x1:x2] = overlay[:, :, :3]

    return frame


class MultiVariantCompositor:
    """Fan one frame out into one named frame per variant."""

    def replace(
        self,
        frame: np.ndarray,
        rectangle: Optional[Rectangle],
        variants: Sequence[Variant],
    ) -> list[tuple[str, np.ndarray]]:
        outputs = []
        for variant in variants:
            clone = frame.copy()
            if rectangle is not None:
                composite_region(clone, variant.content, rectangle)
            outputs.append((variant.name, clone))
        return outputs

    def passthrough(self, frame: np.ndarray, names: Sequence[str]) -> list[tuple[str, np.ndarray]]:
        """Clones of `frame` for each name, when no variants exist yet."""
        return [(name, frame.copy()) for name in names]
