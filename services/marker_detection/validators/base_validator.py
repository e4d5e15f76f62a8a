"""
Base class for all grid validators.
"""

import logging
import re
from abc import ABC, abstractmethod
import numpy as np

from config.marker_config import DetectionParams, DEFAULT_PARAMS

logger = logging.getLogger(__name__)


class BaseGridValidator(ABC):
    """Base class for all grid validators."""

    def __init__(self, params: DetectionParams = DEFAULT_PARAMS):
        """
        Initialize validator.

        Args:
            params: Detection parameters (peak thresholds, thirds tolerance, ...)
        """
        self.params = params
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def name(self) -> str:
        """
        Validator name used in telemetry.

        Returns:
            Name (e.g., 'line_peaks', 'color_gradient', 'k_means_color')
        """
        name = self.__class__.__name__.replace('Validator', '')
        return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()

    def peak_thresholds(self, small_mode: bool):
        """(min prominence, min separation), relaxed to at most 0.12 in small mode."""
        prom = self.params.min_line_peak
        sep = self.params.min_peak_sep
        if small_mode:
            return min(0.12, prom), min(0.12, sep)
        return prom, sep

    @abstractmethod
    def validate(self, square: np.ndarray, small_mode: bool) -> bool:
        """
        Check a canonical square for 3x3 grid divisions.

        Args:
            square: Warped marker candidate (BGR format)
            small_mode: True when the square's short side is under small_mode_px

        Returns:
            True if the grid structure was found
        """
        pass
