"""
Line peaks validator.

Binarizes the square with an adaptive threshold and looks for the two cell
boundaries in the column and row projections.
"""

import cv2
import numpy as np

from .base_validator import BaseGridValidator
from .profiles import two_peaks_prominence


class LinePeaksValidator(BaseGridValidator):
    """Adaptive threshold + projection peaks, with CLAHE on full-size squares."""

    BLOCK_SIZE = 21
    C = 5

    def validate(self, square: np.ndarray, small_mode: bool) -> bool:
        gray = cv2.cvtColor(square, cv2.COLOR_BGR2GRAY)
        if not small_mode:
            clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
            gray = clahe.apply(gray)
        gray = cv2.GaussianBlur(gray, (3, 3), 0)

        binary = cv2.adaptiveThreshold(gray, 255, cv2.ADAPTIVE_THRESH_MEAN_C,
                                       cv2.THRESH_BINARY_INV, self.BLOCK_SIZE, self.C)
        binary = cv2.dilate(binary, cv2.getStructuringElement(cv2.MORPH_RECT, (3, 1)))
        binary = cv2.dilate(binary, cv2.getStructuringElement(cv2.MORPH_RECT, (1, 3)))

        px = binary.sum(axis=0, dtype=np.float64)
        py = binary.sum(axis=1, dtype=np.float64)

        prom, sep = self.peak_thresholds(small_mode)
        ok_x = two_peaks_prominence(px, prom, sep, True, self.params.thirds_tol,
                                    self.params.profile_edge_margin)
        if not ok_x:
            self.logger.debug("Column projection has no grid peaks")
            return False
        return two_peaks_prominence(py, prom, sep, True, self.params.thirds_tol,
                                    self.params.profile_edge_margin)
