"""
Marker Detection Package - Coverage measurement for the 3x3 color marker.

This package provides the detection pipeline:
- service.py: Main orchestrator (MarkerDetectionService, detect)
- context.py: Shared data types (DetectionResult, DetectOptions, ...)
- segmentation.py: Adaptive HSV color mask
- component_selection.py: Dominant component and base rectangle
- angle_scan.py: Parallel coarse/fine angle sweep
- perspective.py: Canonical warp and natural-scale crops
- validation.py: Hue gate and grid validation cascade
- validators/: The individual grid validators
- artifacts.py: Debug image payloads
- geometry.py: Quad ordering and coverage helpers

Usage:
    from services.marker_detection import detect, DetectOptions

    result = detect(image, DetectOptions(debug=True))
    if result.found:
        print(result.coverage_percent)
"""

from .service import MarkerDetectionService, detect
from .context import (
    DetectionResult,
    DetectOptions,
    DebugArtifact,
    CandidateScore,
    GridCheckResult,
    RotatedRegion,
    INPUT_EMPTY,
    NO_CANDIDATE,
    VALIDATION_FAILED,
)
from .geometry import order_quad
from .validation import GridValidationCascade, compute_hue_score

__all__ = [
    'MarkerDetectionService',
    'detect',
    'DetectionResult',
    'DetectOptions',
    'DebugArtifact',
    'CandidateScore',
    'GridCheckResult',
    'RotatedRegion',
    'INPUT_EMPTY',
    'NO_CANDIDATE',
    'VALIDATION_FAILED',
    'order_quad',
    'GridValidationCascade',
    'compute_hue_score'
]
