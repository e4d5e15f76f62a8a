"""
Max-gap validator.

Picks the two cuts with the largest summed edge energy per axis, at least a
minimum distance apart, and requires them near the thirds.
"""

import cv2
import numpy as np

from .base_validator import BaseGridValidator
from .profiles import best_cut_pair, edge_margin, gradient_magnitude, near_thirds, smooth5


class MaxGapValidator(BaseGridValidator):
    """Best pair of gradient cuts per axis."""

    def _axis_ok(self, profile: np.ndarray, min_sep_frac: float) -> bool:
        p = smooth5(profile)
        n = p.size
        if n < 8:
            return False
        min_sep = int(round(min_sep_frac * n))
        pair = best_cut_pair(p, min_sep, edge_margin(n, self.params.profile_edge_margin))
        if pair is None:
            return False
        return near_thirds(n, pair[0], pair[1], self.params.thirds_tol)

    def validate(self, square: np.ndarray, small_mode: bool) -> bool:
        gray = cv2.cvtColor(square, cv2.COLOR_BGR2GRAY)
        mag = gradient_magnitude(gray)
        _, sep = self.peak_thresholds(small_mode)
        return self._axis_ok(mag.sum(axis=0), sep) and self._axis_ok(mag.sum(axis=1), sep)
