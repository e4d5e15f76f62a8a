"""
Adaptive color segmentation for marker detection.

Builds a binary mask of saturated, marker-like pixels using HSV thresholds
derived from image percentiles.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from config.marker_config import DetectionParams

logger = logging.getLogger(__name__)

# OpenCV hue bands (0..179) that make up the marker palette
HUE_BANDS: Tuple[Tuple[int, int], ...] = (
    (0, 10),     # red
    (170, 180),  # red (wrap)
    (20, 35),    # yellow
    (40, 85),    # green
    (86, 100),   # cyan
    (101, 130),  # blue
    (131, 169),  # magenta / purple
)


@dataclass
class SegmentationResult:
    """Mask plus the adaptive thresholds that produced it."""
    mask: np.ndarray
    hsv: np.ndarray
    s_min: int
    v_min: int
    v_max: int


def percentile_u8(channel: np.ndarray, percentile: float) -> int:
    """
    Histogram percentile of an 8-bit channel.

    Returns the first value whose cumulative count reaches
    round(percentile / 100 * N).
    """
    hist = np.bincount(channel.ravel(), minlength=256)
    total = int(channel.size)
    target = int(round(min(100.0, max(0.0, percentile)) / 100.0 * total))
    cumulative = np.cumsum(hist)
    idx = int(np.searchsorted(cumulative, target, side='left'))
    return min(idx, 255)


def morph_kernel_size(image_shape: Tuple[int, ...], divisor: int) -> int:
    """Odd kernel size proportional to the short image side, minimum 3."""
    short_side = min(image_shape[:2])
    return max(3, (short_side // max(1, divisor)) | 1)


def adaptive_thresholds(hsv: np.ndarray, params: DetectionParams) -> Tuple[int, int, int]:
    """Compute (Smin, Vmin, Vmax) from S/V percentiles, clamped to their bands."""
    s = hsv[:, :, 1]
    v = hsv[:, :, 2]
    s_min = int(np.clip(percentile_u8(s, params.s_percentile) - params.s_percentile_offset,
                        params.s_min_floor, params.s_min_ceil))
    v_min = int(np.clip(percentile_u8(v, params.v_min_percentile),
                        params.v_min_floor, params.v_min_ceil))
    v_max = int(np.clip(percentile_u8(v, params.v_max_percentile),
                        params.v_max_floor, params.v_max_ceil))
    return s_min, v_min, v_max


def build_color_mask_adaptive(image: np.ndarray, params: DetectionParams) -> SegmentationResult:
    """
    Build the marker-like pixel mask.

    Args:
        image: Input image (BGR format)
        params: Detection parameters

    Returns:
        SegmentationResult with a 0/255 mask after close/open morphology
    """
    hsv = cv2.cvtColor(image, cv2.COLOR_BGR2HSV)
    s_min, v_min, v_max = adaptive_thresholds(hsv, params)

    mask = np.zeros(hsv.shape[:2], dtype=np.uint8)
    for h_lo, h_hi in HUE_BANDS:
        band = cv2.inRange(hsv, np.array([h_lo, s_min, v_min]), np.array([h_hi, 255, v_max]))
        mask = cv2.bitwise_or(mask, band)

    k_close = morph_kernel_size(image.shape, params.close_div)
    k_open = morph_kernel_size(image.shape, params.open_div)
    mask = cv2.morphologyEx(mask, cv2.MORPH_CLOSE,
                            cv2.getStructuringElement(cv2.MORPH_RECT, (k_close, k_close)))
    mask = cv2.morphologyEx(mask, cv2.MORPH_OPEN,
                            cv2.getStructuringElement(cv2.MORPH_RECT, (k_open, k_open)))

    logger.debug(f"Adaptive HSV: Smin={s_min}, Vmin={v_min}, Vmax={v_max}, "
                 f"kernels close={k_close} open={k_open}")

    return SegmentationResult(mask=mask, hsv=hsv, s_min=s_min, v_min=v_min, v_max=v_max)
