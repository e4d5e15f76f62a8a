"""
K-means color validator.

Clusters a subsampled square in (cos H * S, sin H * S, S, V) space and checks
that label changes along the centre row and column hit both thirds.
"""

import warnings

import cv2
import numpy as np
from sklearn.cluster import KMeans
from sklearn.exceptions import ConvergenceWarning

from .base_validator import BaseGridValidator
from .profiles import hue_vector

MIN_SAMPLES = 64
MIN_DISTINCT_LABELS = 5


class KMeansColorValidator(BaseGridValidator):
    """Color clustering + label transitions near the thirds."""

    def _transitions_hit_thirds(self, labels_1d: np.ndarray) -> bool:
        n = labels_1d.size
        if n < 3:
            return False
        positions = np.flatnonzero(labels_1d[1:] != labels_1d[:-1]) + 1
        a, b = n / 3.0, 2.0 * n / 3.0
        tol = self.params.thirds_tol * n
        hit_a = bool(np.any(np.abs(positions - a) < tol))
        hit_b = bool(np.any(np.abs(positions - b) < tol))
        return hit_a and hit_b

    def validate(self, square: np.ndarray, small_mode: bool) -> bool:
        stride = 8 if small_mode else 6
        sub = square[::stride, ::stride]
        rows, cols = sub.shape[:2]
        if rows * cols < MIN_SAMPLES:
            self.logger.debug(f"Only {rows * cols} samples at stride {stride}")
            return False

        hsv = cv2.cvtColor(np.ascontiguousarray(sub), cv2.COLOR_BGR2HSV)
        hcos, hsin, s, v = hue_vector(hsv)
        features = np.stack([hcos, hsin, s, v], axis=-1).reshape(-1, 4)

        # Few distinct colors make sklearn warn about duplicate centers
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', ConvergenceWarning)
            model = KMeans(
                n_clusters=self.params.kmeans_clusters,
                init='k-means++',
                n_init=1,
                max_iter=10,
                tol=1e-3,
                random_state=self.params.kmeans_seed
            )
            labels = model.fit_predict(features)

        if np.unique(labels).size < MIN_DISTINCT_LABELS:
            self.logger.debug(f"Only {np.unique(labels).size} distinct clusters")
            return False

        grid = labels.reshape(rows, cols)
        return (self._transitions_hit_thirds(grid[rows // 2, :]) and
                self._transitions_hit_thirds(grid[:, cols // 2]))
