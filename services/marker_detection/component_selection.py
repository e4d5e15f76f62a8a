"""
Dominant region selection.

Picks the connected component of the color mask that most looks like the
marker (large and roughly square) and derives its base rotated rectangle.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import cv2
import numpy as np

from config.marker_config import DetectionParams
from .context import RotatedRegion

logger = logging.getLogger(__name__)


@dataclass
class ComponentSelection:
    """The chosen component and its statistics."""
    mask: np.ndarray
    bbox: Dict
    area: int
    area_frac: float
    score: float


def select_dominant_component(
    mask: np.ndarray,
    params: DetectionParams
) -> Optional[ComponentSelection]:
    """
    Select the best 8-connected component of a binary mask.

    Score is area / aspect, with aspect = max(w, h) / min(w, h). Components
    under min_component_px are ignored. The winner is rejected when its share
    of the image is outside [min_comp_frac, max_comp_frac].

    Args:
        mask: 0/255 binary mask
        params: Detection parameters

    Returns:
        ComponentSelection, or None when no component qualifies
    """
    num, labels, stats, _ = cv2.connectedComponentsWithStats(mask, connectivity=8)
    if num <= 1:
        logger.debug("No connected components in mask")
        return None

    best = -1
    best_score = -1.0
    for i in range(1, num):
        area = int(stats[i, cv2.CC_STAT_AREA])
        if area < params.min_component_px:
            continue
        w = int(stats[i, cv2.CC_STAT_WIDTH])
        h = int(stats[i, cv2.CC_STAT_HEIGHT])
        aspect = max(w, h) / max(1, min(w, h))
        score = area / aspect
        if score > best_score:
            best_score = score
            best = i

    if best < 0:
        logger.debug(f"All {num - 1} components under {params.min_component_px}px")
        return None

    area = int(stats[best, cv2.CC_STAT_AREA])
    image_area = max(1, mask.shape[0] * mask.shape[1])
    area_frac = area / image_area
    if area_frac < params.min_comp_frac or area_frac > params.max_comp_frac:
        logger.debug(f"Component fraction {area_frac:.5f} outside "
                     f"[{params.min_comp_frac}, {params.max_comp_frac}]")
        return None

    component = np.where(labels == best, 255, 0).astype(np.uint8)
    bbox = {
        'x': int(stats[best, cv2.CC_STAT_LEFT]),
        'y': int(stats[best, cv2.CC_STAT_TOP]),
        'width': int(stats[best, cv2.CC_STAT_WIDTH]),
        'height': int(stats[best, cv2.CC_STAT_HEIGHT])
    }
    return ComponentSelection(mask=component, bbox=bbox, area=area,
                              area_frac=area_frac, score=best_score)


def base_region(component_mask: np.ndarray) -> Optional[RotatedRegion]:
    """Minimum-area rotated rectangle of the component's largest outer contour."""
    contours, _ = cv2.findContours(component_mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    if not contours:
        return None
    largest = max(contours, key=cv2.contourArea)
    return RotatedRegion.from_cv(cv2.minAreaRect(largest))
