"""
Color gradient validator.

Cell boundaries are hue changes more than brightness changes, so the gradient
is taken on the hue vector and mixed with a smaller value-channel term.
"""

import cv2
import numpy as np

from .base_validator import BaseGridValidator
from .profiles import hue_vector, two_peaks_prominence

# Weight of the value-channel gradient
VALUE_WEIGHT = 0.35


def _abs_sobel(channel: np.ndarray, along_x: bool) -> np.ndarray:
    if along_x:
        return np.abs(cv2.Sobel(channel, cv2.CV_32F, 1, 0, ksize=3))
    return np.abs(cv2.Sobel(channel, cv2.CV_32F, 0, 1, ksize=3))


class ColorGradientValidator(BaseGridValidator):
    """Sobel on (cos H * S, sin H * S) plus weighted V, projection peaks."""

    def validate(self, square: np.ndarray, small_mode: bool) -> bool:
        hsv = cv2.cvtColor(square, cv2.COLOR_BGR2HSV)
        hcos, hsin, _, v = hue_vector(hsv)

        grad_x = _abs_sobel(hcos, True) + _abs_sobel(hsin, True) + VALUE_WEIGHT * _abs_sobel(v, True)
        grad_y = _abs_sobel(hcos, False) + _abs_sobel(hsin, False) + VALUE_WEIGHT * _abs_sobel(v, False)

        px = grad_x.sum(axis=0)
        py = grad_y.sum(axis=1)

        prom = self.params.min_line_peak
        sep = self.params.min_peak_sep
        margin = self.params.profile_edge_margin
        return (two_peaks_prominence(px, prom, sep, True, self.params.thirds_tol, margin) and
                two_peaks_prominence(py, prom, sep, True, self.params.thirds_tol, margin))
