"""
Geometry helpers for the marker pipeline.

Quad ordering, padded regions of interest and coverage.
"""

import math
from typing import Optional, Tuple

import cv2
import numpy as np

from .context import Quad


def order_quad(points) -> np.ndarray:
    """
    Order four points as TL, TR, BR, BL.

    TL/BR minimize/maximize (x + y); TR/BL maximize/minimize (x - y).

    Args:
        points: Anything reshapeable to (4, 2)

    Returns:
        (4, 2) float32 array
    """
    pts = np.asarray(points, dtype=np.float32).reshape(4, 2)
    s = pts[:, 0] + pts[:, 1]
    d = pts[:, 0] - pts[:, 1]
    return np.array([
        pts[np.argmin(s)],
        pts[np.argmax(d)],
        pts[np.argmax(s)],
        pts[np.argmin(d)]
    ], dtype=np.float32)


def quad_to_tuple(points: np.ndarray) -> Quad:
    """Convert an ordered (4, 2) array into a tuple of float pairs."""
    return tuple((float(x), float(y)) for x, y in np.asarray(points).reshape(4, 2))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def coverage_percent(area: float, image_shape: Tuple[int, ...]) -> int:
    """Integer coverage of `area` over the image, clamped to [0, 100]."""
    h, w = image_shape[:2]
    image_area = float(w * h)
    if image_area <= 0:
        return 0
    pct = 100.0 * area / image_area
    return round_half_up(min(100.0, max(0.0, pct)))


def padded_roi(
    quad: np.ndarray,
    image_shape: Tuple[int, ...],
    pad_frac: float = 0.10
) -> Optional[Tuple[int, int, int, int]]:
    """
    Axis-aligned box around a quad, padded by pad_frac of its larger side.

    Args:
        quad: (4, 2) corner array in image coordinates
        image_shape: Shape of the image the quad lives in
        pad_frac: Padding as a fraction of max(width, height)

    Returns:
        (x0, y0, x1, y1) clamped to the image, or None if empty
    """
    h, w = image_shape[:2]
    x, y, bw, bh = cv2.boundingRect(np.asarray(quad, dtype=np.float32).reshape(-1, 1, 2))
    pad = max(2, round_half_up(pad_frac * max(bw, bh)))
    x0 = max(0, x - pad)
    y0 = max(0, y - pad)
    x1 = min(w, x + bw + pad)
    y1 = min(h, y + bh + pad)
    if x1 <= x0 or y1 <= y0:
        return None
    return x0, y0, x1, y1
