"""
Template correlation validator.

Correlates the normalized edge map with an ideal cross-hair of grid lines at
1/3 and 2/3 of each side.
"""

import cv2
import numpy as np

from .base_validator import BaseGridValidator
from .profiles import gradient_magnitude


def grid_template(height: int, width: int) -> np.ndarray:
    """Float32 template with 2px anti-aliased lines at the thirds."""
    template = np.zeros((height, width), dtype=np.float32)
    for x in (width // 3, 2 * width // 3):
        cv2.line(template, (x, 0), (x, height - 1), 1.0, 2, cv2.LINE_AA)
    for y in (height // 3, 2 * height // 3):
        cv2.line(template, (0, y), (width - 1, y), 1.0, 2, cv2.LINE_AA)
    return template


class TemplateCorrelationValidator(BaseGridValidator):
    """TM_CCOEFF_NORMED of edge magnitude against the grid template."""

    def correlation(self, square: np.ndarray) -> float:
        gray = cv2.cvtColor(square, cv2.COLOR_BGR2GRAY)
        mag = gradient_magnitude(gray)
        if float(mag.max() - mag.min()) < 1e-6:
            return 0.0
        mag = cv2.normalize(mag, None, 0.0, 1.0, cv2.NORM_MINMAX)

        template = grid_template(*mag.shape[:2])
        result = cv2.matchTemplate(mag, template, cv2.TM_CCOEFF_NORMED)
        _, max_val, _, _ = cv2.minMaxLoc(result)
        return float(max_val) if np.isfinite(max_val) else 0.0

    def validate(self, square: np.ndarray, small_mode: bool) -> bool:
        corr = self.correlation(square)
        self.logger.debug(f"Template correlation {corr:.3f}")
        return corr > self.params.template_min_corr
