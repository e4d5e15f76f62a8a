"""
Grid validators.

Each validator checks a canonical square for the 3x3 cell structure in a
different way; the cascade in validation.py runs them in order.
"""

from .base_validator import BaseGridValidator
from .line_peaks import LinePeaksValidator
from .color_gradient import ColorGradientValidator
from .max_gap import MaxGapValidator
from .kmeans_color import KMeansColorValidator
from .template_correlation import TemplateCorrelationValidator

__all__ = [
    'BaseGridValidator',
    'LinePeaksValidator',
    'ColorGradientValidator',
    'MaxGapValidator',
    'KMeansColorValidator',
    'TemplateCorrelationValidator',
]
