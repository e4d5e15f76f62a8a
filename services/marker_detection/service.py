"""
Marker Detection Service - Orchestrator for the coverage pipeline.

Steps:
1. Adaptive HSV segmentation -> color mask
2. Dominant component -> base rotated rectangle
3. Coarse/fine angle scan; each angle is tightened, warped to the canonical
   square and run through the grid validation cascade
4. Best accepted candidate -> quad + coverage
5. Fallback: warp the base rectangle directly and validate once more
"""

import logging
import time
from typing import Optional

import cv2
import numpy as np

from config.marker_config import DetectionParams, DEFAULT_PARAMS
from services.utils.debug import DebugContext

from .context import (
    CandidateScore,
    DetectOptions,
    DetectionResult,
    RotatedRegion,
    INPUT_EMPTY,
    NO_CANDIDATE,
    VALIDATION_FAILED,
)
from .geometry import order_quad, quad_to_tuple, coverage_percent
from .segmentation import build_color_mask_adaptive, SegmentationResult
from .component_selection import select_dominant_component, base_region
from .angle_scan import AngleScanOptimizer
from .perspective import warp_to_canonical, quad_mask_fraction
from .validation import GridValidationCascade
from .artifacts import build_artifacts

logger = logging.getLogger(__name__)


def ensure_bgr(image: np.ndarray) -> np.ndarray:
    """
    Normalize an input image to 3-channel uint8 BGR.

    Raises:
        ValueError: If the input is not a 2-D or 3-D uint8 array
    """
    if not isinstance(image, np.ndarray):
        raise ValueError(f"Expected numpy.ndarray image, got {type(image).__name__}")
    if image.dtype != np.uint8:
        raise ValueError(f"Expected uint8 image, got {image.dtype}")
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3:
        channels = image.shape[2]
        if channels == 3:
            return image
        if channels == 1:
            return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        if channels == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    raise ValueError(f"Unsupported image shape {image.shape}")


class MarkerDetectionService:
    """
    Marker coverage detection.

    Stateless between calls: parameters are immutable and every scan creates
    its own executor, so one instance may serve concurrent detections.
    """

    def __init__(self, params: Optional[DetectionParams] = None):
        """Initialize marker detection service."""
        self.params = params or DEFAULT_PARAMS
        self.cascade = GridValidationCascade(self.params)
        self.scanner = AngleScanOptimizer(self.params)
        self.logger = logging.getLogger(__name__)

    def detect(self, image: Optional[np.ndarray], options: Optional[DetectOptions] = None) -> DetectionResult:
        """
        Detect the 3x3 marker and measure its coverage.

        Args:
            image: Input image (BGR, grayscale or BGRA; never modified)
            options: Per-call options (diagnostics, artifacts, label)

        Returns:
            DetectionResult; "not found" is a result, never an exception

        Raises:
            ValueError: If image is not a 2-D/3-D uint8 array
        """
        options = options or DetectOptions()
        start = time.perf_counter()
        label = options.label or 'marker'
        debug = DebugContext(enabled=options.debug, image_name=label)

        if image is None or (isinstance(image, np.ndarray) and image.size == 0):
            debug.note("Empty input image")
            return self._finish(start, debug, reason_code=INPUT_EMPTY)

        bgr = ensure_bgr(image)
        h, w = bgr.shape[:2]

        # Step 1: Segmentation
        seg = build_color_mask_adaptive(bgr, self.params)
        thresholds = {'s_min': seg.s_min, 'v_min': seg.v_min, 'v_max': seg.v_max}
        debug.add_step('01_segmentation', 'Adaptive HSV', dict(thresholds),
                       f'Mask pixels: {cv2.countNonZero(seg.mask)}')

        # Step 2: Dominant component
        selection = select_dominant_component(seg.mask, self.params)
        if selection is None:
            debug.note("No component passed the size/fraction gates")
            return self._finish(start, debug, reason_code=NO_CANDIDATE,
                                artifacts=self._artifacts(options, label, bgr, seg),
                                **thresholds)
        base = base_region(selection.mask)
        if base is None:
            debug.note("Selected component has no outer contour")
            return self._finish(start, debug, reason_code=NO_CANDIDATE,
                                artifacts=self._artifacts(options, label, bgr, seg),
                                **thresholds)

        base_frac = base.area / float(w * h)
        debug.add_step('02_component', 'Dominant Component',
                       {'area_frac': selection.area_frac, 'bbox': selection.bbox,
                        'base_angle': base.angle, 'base_frac': base_frac})
        if base_frac > self.params.max_quad_area_frac:
            debug.note(f"Base rectangle very large ({base_frac:.3f}); scanning anyway")

        # Step 3: Angle scan
        def evaluate(tight: RotatedRegion, occupancy: float, angle: float) -> Optional[CandidateScore]:
            square = warp_to_canonical(bgr, tight.points(), self.params.warp_size, self.params.roi_pad_frac)
            if square is None:
                return None
            check = self.cascade.run(square)
            return CandidateScore(
                occupancy=occupancy,
                hue_score=check.hue_score,
                line_ok=check.line_ok,
                angle=angle,
                region=tight,
                validator=check.validator,
                accepted=self.cascade.accepts(check)
            )

        outcome = self.scanner.scan(selection.mask, base, evaluate)
        if outcome.angles_planned == 0:
            debug.note("Angle scan has no angles to evaluate")
            return self._finish(start, debug, reason_code=NO_CANDIDATE,
                                artifacts=self._artifacts(options, label, bgr, seg),
                                **thresholds)
        debug.add_step('03_angle_scan', 'Angle Scan',
                       {'evaluated': outcome.angles_evaluated, 'planned': outcome.angles_planned,
                        'early_accepted': outcome.early_accepted,
                        'best_angle': outcome.best.angle if outcome.best else None})

        # Step 4: Best scanned candidate
        if outcome.best is not None:
            best = outcome.best
            quad = order_quad(best.region.points())
            coverage = coverage_percent(best.region.area, bgr.shape)
            self.logger.info(f"Marker found: coverage {coverage}% at {best.angle:.1f} deg "
                             f"(occ={best.occupancy:.2f}, hue={best.hue_score:.2f}, {best.validator})")
            artifacts = ()
            if options.debug_artifacts:
                square = warp_to_canonical(bgr, quad, self.params.warp_size, self.params.roi_pad_frac)
                artifacts = self._artifacts(options, label, bgr, seg, quad, square, coverage)
            return self._finish(
                start, debug,
                found=True,
                quad=quad_to_tuple(quad),
                coverage_percent=coverage,
                best_angle_deg=best.angle,
                occupancy=best.occupancy,
                hue_score=best.hue_score,
                line_ok=best.line_ok,
                validator=best.validator,
                artifacts=artifacts,
                **thresholds
            )

        # Step 5: Fallback on the raw base rectangle
        debug.note("No scanned angle validated; trying the base rectangle directly")
        quad = order_quad(base.points())
        square = warp_to_canonical(bgr, quad, self.params.warp_size, self.params.roi_pad_frac)
        check = self.cascade.run(square) if square is not None else None
        if check is not None and self.cascade.accepts(check):
            coverage = coverage_percent(base.area, bgr.shape)
            self.logger.info(f"Marker found via fallback: coverage {coverage}%")
            return self._finish(
                start, debug,
                found=True,
                quad=quad_to_tuple(quad),
                coverage_percent=coverage,
                best_angle_deg=base.angle,
                occupancy=quad_mask_fraction(selection.mask, quad),
                hue_score=check.hue_score,
                line_ok=check.line_ok,
                validator=check.validator,
                fallback_used=True,
                artifacts=self._artifacts(options, label, bgr, seg, quad, square, coverage),
                **thresholds
            )

        # Not found: report the best rejected attempt
        rejected = outcome.best_rejected
        if rejected is not None:
            telemetry = {'best_angle_deg': rejected.angle, 'occupancy': rejected.occupancy,
                         'hue_score': rejected.hue_score, 'line_ok': rejected.line_ok}
        elif check is not None:
            telemetry = {'best_angle_deg': base.angle, 'hue_score': check.hue_score,
                         'line_ok': check.line_ok}
        else:
            telemetry = {'best_angle_deg': base.angle}
        fallback_hue = check.hue_score if check is not None else 0.0
        debug.note(f"Fallback failed (hue={fallback_hue:.2f})")
        self.logger.info(f"Marker not found: validation failed for '{label}'")
        return self._finish(start, debug, reason_code=VALIDATION_FAILED,
                            artifacts=self._artifacts(options, label, bgr, seg),
                            **telemetry, **thresholds)

    def _artifacts(
        self,
        options: DetectOptions,
        label: str,
        image: np.ndarray,
        seg: SegmentationResult,
        quad=None,
        square: Optional[np.ndarray] = None,
        coverage: int = -1
    ):
        if not options.debug_artifacts:
            return ()
        return tuple(build_artifacts(label, image, seg.mask, quad, square, coverage))

    def _finish(self, start: float, debug: DebugContext, **fields) -> DetectionResult:
        """Assemble the immutable result with timing and diagnostics."""
        elapsed_ms = int(round((time.perf_counter() - start) * 1000))
        return DetectionResult(processing_time_ms=elapsed_ms, diagnostics=debug.diagnostics, **fields)


def detect(
    image: Optional[np.ndarray],
    options: Optional[DetectOptions] = None,
    params: Optional[DetectionParams] = None
) -> DetectionResult:
    """
    Detect the marker in one image.

    Args:
        image: Input image (BGR format)
        options: Per-call options
        params: Detection parameters (module defaults when None)

    Returns:
        DetectionResult
    """
    return MarkerDetectionService(params).detect(image, options)
