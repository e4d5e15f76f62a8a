"""
Perspective normalization.

Warps a candidate quadrilateral into the fixed-size canonical square used by
grid validation, and builds the natural-scale crops used as debug artifacts.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from .geometry import order_quad, padded_roi, round_half_up

logger = logging.getLogger(__name__)


def warp_to_canonical(
    image: np.ndarray,
    quad,
    size: int = 360,
    pad_frac: float = 0.10
) -> Optional[np.ndarray]:
    """
    Warp a quadrilateral to a size x size square.

    Crops a padded ROI around the quad first, so the transform only samples
    the neighbourhood of the candidate.

    Args:
        image: Full image (BGR format)
        quad: Four corner points in any order
        size: Side of the output square
        pad_frac: ROI padding as a fraction of the quad's larger side

    Returns:
        Warped square (BGR), or None if the quad falls outside the image
    """
    src = order_quad(quad)
    roi = padded_roi(src, image.shape, pad_frac)
    if roi is None:
        return None
    x0, y0, x1, y1 = roi
    roi_image = image[y0:y1, x0:x1]
    src_roi = src - np.array([x0, y0], dtype=np.float32)

    dst = np.array([
        [0, 0],
        [size - 1, 0],
        [size - 1, size - 1],
        [0, size - 1]
    ], dtype=np.float32)
    transform = cv2.getPerspectiveTransform(src_roi, dst)
    return cv2.warpPerspective(roi_image, transform, (size, size))


def natural_crop(image: np.ndarray, quad, min_side: int = 20) -> np.ndarray:
    """
    Perspective-corrected crop at the quad's own scale.

    Output width/height come from the longer of each pair of opposite edges.
    """
    tl, tr, br, bl = order_quad(quad)
    width = max(np.linalg.norm(tr - tl), np.linalg.norm(br - bl))
    height = max(np.linalg.norm(bl - tl), np.linalg.norm(br - tr))
    dst_w = max(min_side, round_half_up(width))
    dst_h = max(min_side, round_half_up(height))

    src = np.array([tl, tr, br, bl], dtype=np.float32)
    dst = np.array([
        [0, 0],
        [dst_w - 1, 0],
        [dst_w - 1, dst_h - 1],
        [0, dst_h - 1]
    ], dtype=np.float32)
    transform = cv2.getPerspectiveTransform(src, dst)
    return cv2.warpPerspective(image, transform, (dst_w, dst_h),
                               flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_REPLICATE)


def clip_to_quad(image: np.ndarray, quad) -> np.ndarray:
    """Copy of the image with everything outside the quad blacked out."""
    poly = np.rint(order_quad(quad)).astype(np.int32)
    poly_mask = np.zeros(image.shape[:2], dtype=np.uint8)
    cv2.fillConvexPoly(poly_mask, poly, 255)
    return cv2.bitwise_and(image, image, mask=poly_mask)


def quad_mask_fraction(mask: np.ndarray, quad) -> float:
    """Fraction of non-zero mask pixels inside a quad."""
    poly = np.rint(order_quad(quad)).astype(np.int32)
    poly_mask = np.zeros(mask.shape[:2], dtype=np.uint8)
    cv2.fillConvexPoly(poly_mask, poly, 255)
    inside = cv2.countNonZero(poly_mask)
    if inside == 0:
        return 0.0
    return cv2.countNonZero(cv2.bitwise_and(mask, poly_mask)) / inside
