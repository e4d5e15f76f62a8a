"""
Grid validation cascade.

Runs the hue richness gate and the ordered list of grid validators on a
canonical square. The first validator that finds the grid wins.
"""

import logging
from typing import List, Optional, Tuple

import cv2
import numpy as np

from config.marker_config import DetectionParams, DEFAULT_PARAMS
from .context import GridCheckResult
from .validators import (
    BaseGridValidator,
    LinePeaksValidator,
    ColorGradientValidator,
    MaxGapValidator,
    KMeansColorValidator,
    TemplateCorrelationValidator,
)

logger = logging.getLogger(__name__)


def compute_hue_score(square: np.ndarray, params: DetectionParams = DEFAULT_PARAMS) -> float:
    """
    Hue richness of a canonical square.

    Counts hue bins (over saturated pixels) holding at least
    max(10, round(hue_bin_frac * warp_size^2)) pixels.

    Args:
        square: Canonical square (BGR format)
        params: Detection parameters

    Returns:
        min(1, distinct_bins / expected_hues)
    """
    hsv = cv2.cvtColor(square, cv2.COLOR_BGR2HSV)
    h = hsv[:, :, 0]
    s = hsv[:, :, 1]
    saturated = h[s > params.hue_sat_floor].astype(np.int64)
    bins = np.minimum(saturated * params.hue_bins // 180, params.hue_bins - 1)
    hist = np.bincount(bins, minlength=params.hue_bins)

    threshold = max(10, int(round(params.hue_bin_frac * params.warp_size * params.warp_size)))
    distinct = int(np.count_nonzero(hist >= threshold))
    return min(1.0, distinct / float(params.expected_hues))


def strip_barcode_like(square: np.ndarray) -> Tuple[np.ndarray, bool]:
    """
    Cut a bright, washed-out band (barcode label or glare) off the top.

    Returns:
        Tuple of (square, stripped)
    """
    rows = square.shape[0]
    hsv = cv2.cvtColor(square, cv2.COLOR_BGR2HSV)
    top = max(1, rows // 10)
    mid_start = rows // 4
    mid_end = mid_start + max(1, rows // 2)

    top_v = float(hsv[:top, :, 2].mean())
    mid_v = float(hsv[mid_start:mid_end, :, 2].mean())
    top_s = float(hsv[:top, :, 1].mean())

    if top_v > 1.15 * mid_v and top_s < 60:
        cut = max(1, int(round(0.12 * rows)))
        logger.debug(f"Stripping top {cut}px (top V {top_v:.0f} vs mid V {mid_v:.0f})")
        return square[cut:, :].copy(), True
    return square, False


class GridValidationCascade:
    """Hue gate plus the ordered grid validators."""

    def __init__(
        self,
        params: DetectionParams = DEFAULT_PARAMS,
        validators: Optional[List[BaseGridValidator]] = None
    ):
        self.params = params
        self.validators = validators if validators is not None else [
            LinePeaksValidator(params),
            ColorGradientValidator(params),
            MaxGapValidator(params),
            KMeansColorValidator(params),
            TemplateCorrelationValidator(params),
        ]
        self.logger = logging.getLogger(self.__class__.__name__)

    def run(self, square: np.ndarray) -> GridCheckResult:
        """
        Validate a canonical square.

        Args:
            square: Warped candidate (BGR format)

        Returns:
            GridCheckResult; use accepted(min_hue_score) for the final decision
        """
        result = GridCheckResult(hue_score=compute_hue_score(square, self.params))

        work, result.stripped_top = strip_barcode_like(square)
        result.small_mode = min(work.shape[:2]) < self.params.small_mode_px

        for validator in self.validators:
            try:
                ok = validator.validate(work, result.small_mode)
            except Exception as e:
                self.logger.warning(f"Validator {validator.name} failed: {e}", exc_info=True)
                ok = False
            if ok:
                result.line_ok = True
                result.validator = validator.name
                break

        self.logger.debug(f"Cascade: hue={result.hue_score:.2f}, line_ok={result.line_ok}, "
                          f"validator={result.validator}, small={result.small_mode}")
        return result

    def accepts(self, result: GridCheckResult) -> bool:
        return result.accepted(self.params.min_hue_score)
