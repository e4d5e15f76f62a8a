"""
Angle scan optimizer.

Sweeps rotation angles around the base rectangle (coarse, then fine), tightens
the component at each angle and keeps the best validated candidate. Angles of
one sweep are split into contiguous chunks evaluated in parallel; the chunk
results are merged in scan order so the winner does not depend on timing.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import cv2
import numpy as np

from config.marker_config import DetectionParams, DEFAULT_PARAMS
from .context import CandidateScore, RotatedRegion
from .geometry import round_half_up

logger = logging.getLogger(__name__)

# evaluate(tight_region, occupancy, angle) -> scored candidate or None
Evaluator = Callable[[RotatedRegion, float, float], Optional[CandidateScore]]


def angle_deltas(step: int, angle_range: int) -> List[int]:
    """Offsets -range..+range stepping by step; empty for a malformed step/range."""
    if step <= 0 or angle_range < 0:
        return []
    return list(range(-angle_range, angle_range + 1, step))


def rotate_and_tighten(
    mask: np.ndarray,
    base: RotatedRegion,
    angle: float
) -> Optional[Tuple[RotatedRegion, float]]:
    """
    Rotate the component mask and fit an axis-aligned box in the rotated frame.

    The mask is rotated about the base centre by angle (nearest neighbour) and
    cropped to the base size around that centre. The bounding box of the
    largest contour in the crop becomes the tight rectangle, mapped back to the
    image frame with the inverse rotation.

    Args:
        mask: Component mask (0/255)
        base: Base rotated rectangle of the component
        angle: Rotation angle in degrees

    Returns:
        Tuple of (tight_region, occupancy) or None if nothing is left in the crop
    """
    center = base.center
    rotation = cv2.getRotationMatrix2D(center, angle, 1.0)
    rows, cols = mask.shape[:2]
    rotated = cv2.warpAffine(mask, rotation, (cols, rows), flags=cv2.INTER_NEAREST,
                             borderMode=cv2.BORDER_CONSTANT, borderValue=0)

    rw = max(1, round_half_up(base.width))
    rh = max(1, round_half_up(base.height))
    x0 = int(np.clip(round_half_up(center[0] - rw / 2.0), 0, cols - 1))
    y0 = int(np.clip(round_half_up(center[1] - rh / 2.0), 0, rows - 1))
    x1 = int(np.clip(x0 + rw, 0, cols))
    y1 = int(np.clip(y0 + rh, 0, rows))

    roi = np.ascontiguousarray(rotated[y0:y1, x0:x1])
    if roi.size == 0:
        return None

    contours, _ = cv2.findContours(roi.copy(), cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    if not contours:
        return None
    largest = max(contours, key=lambda c: abs(cv2.contourArea(c)))
    tx, ty, tw, th = cv2.boundingRect(largest)
    occupancy = cv2.countNonZero(roi) / float(max(1, roi.shape[0] * roi.shape[1]))

    inverse = cv2.invertAffineTransform(rotation)
    cx = x0 + tx + tw / 2.0
    cy = y0 + ty + th / 2.0
    back_x = inverse[0, 0] * cx + inverse[0, 1] * cy + inverse[0, 2]
    back_y = inverse[1, 0] * cx + inverse[1, 1] * cy + inverse[1, 2]

    tight = RotatedRegion((float(back_x), float(back_y)), (float(tw), float(th)), float(angle))
    return tight, occupancy


@dataclass
class ScanOutcome:
    """Result of the coarse and fine sweeps."""
    best: Optional[CandidateScore] = None
    best_rejected: Optional[CandidateScore] = None
    early_accepted: bool = False
    angles_planned: int = 0
    angles_evaluated: int = 0


@dataclass
class _ChunkResult:
    best: Optional[CandidateScore] = None
    best_rejected: Optional[CandidateScore] = None
    evaluated: int = 0


class AngleScanOptimizer:
    """Coarse-to-fine parallel angle sweep."""

    def __init__(self, params: DetectionParams = DEFAULT_PARAMS):
        self.params = params
        self.logger = logging.getLogger(self.__class__.__name__)

    def passes_gate(self, tight: RotatedRegion, occupancy: float) -> bool:
        """Geometric candidate gate: non-degenerate, dense enough, not too elongated."""
        if tight.width <= 0 or tight.height <= 0:
            return False
        return occupancy >= self.params.min_occupancy and tight.aspect <= self.params.max_aspect

    def is_early_accept(self, candidate: Optional[CandidateScore]) -> bool:
        return (candidate is not None and candidate.accepted and candidate.line_ok and
                candidate.occupancy > self.params.early_stop_occupancy and
                candidate.hue_score > self.params.early_stop_hue)

    def _evaluate_chunk(
        self,
        angles: List[float],
        mask: np.ndarray,
        base: RotatedRegion,
        evaluate: Evaluator,
        stop_event: threading.Event
    ) -> _ChunkResult:
        local = _ChunkResult()
        for angle in angles:
            if self.params.eager_stop and stop_event.is_set():
                break
            tightened = rotate_and_tighten(mask, base, angle)
            local.evaluated += 1
            if tightened is None:
                continue
            tight, occupancy = tightened
            if not self.passes_gate(tight, occupancy):
                continue

            candidate = evaluate(tight, occupancy, angle)
            if candidate is None:
                continue
            if candidate.accepted:
                if candidate.beats(local.best):
                    local.best = candidate
                if self.is_early_accept(candidate):
                    stop_event.set()
            elif candidate.beats(local.best_rejected):
                local.best_rejected = candidate
        return local

    def _sweep(
        self,
        center_angle: float,
        deltas: List[int],
        mask: np.ndarray,
        base: RotatedRegion,
        evaluate: Evaluator,
        outcome: ScanOutcome
    ) -> None:
        angles = [center_angle + d for d in deltas]
        if not angles:
            return

        num_chunks = max(1, min(self.params.max_workers, len(angles)))
        chunks = [[float(a) for a in c] for c in np.array_split(np.array(angles, dtype=np.float64), num_chunks)]
        stop_event = threading.Event()

        if num_chunks > 1:
            with ThreadPoolExecutor(max_workers=num_chunks) as executor:
                results = list(executor.map(
                    lambda c: self._evaluate_chunk(c, mask, base, evaluate, stop_event), chunks))
        else:
            # Sequential fallback
            results = [self._evaluate_chunk(chunks[0], mask, base, evaluate, stop_event)]

        # Merge in chunk (scan) order; strict comparison keeps the earliest on ties
        for local in results:
            outcome.angles_evaluated += local.evaluated
            if local.best is not None and local.best.beats(outcome.best):
                outcome.best = local.best
            if local.best_rejected is not None and local.best_rejected.beats(outcome.best_rejected):
                outcome.best_rejected = local.best_rejected

    def scan(self, mask: np.ndarray, base: RotatedRegion, evaluate: Evaluator) -> ScanOutcome:
        """
        Run the coarse sweep around the base angle, then the fine sweep around
        the coarse winner unless it already passes the early-accept bar.

        Args:
            mask: Component mask (0/255)
            base: Base rotated rectangle of the component
            evaluate: Scores one tightened candidate (perspective + validation)

        Returns:
            ScanOutcome with the best accepted and best rejected candidates
        """
        coarse = angle_deltas(self.params.coarse_step_deg, self.params.coarse_range_deg)
        fine = angle_deltas(self.params.fine_step_deg, self.params.fine_range_deg)
        outcome = ScanOutcome(angles_planned=len(coarse) + len(fine))

        self._sweep(base.angle, coarse, mask, base, evaluate, outcome)
        if self.is_early_accept(outcome.best):
            outcome.early_accepted = True
            self.logger.debug(f"Early accept at {outcome.best.angle:.1f} deg after coarse sweep")
            return outcome

        center = outcome.best.angle if outcome.best is not None else base.angle
        self._sweep(center, fine, mask, base, evaluate, outcome)
        if self.is_early_accept(outcome.best):
            outcome.early_accepted = True

        self.logger.debug(f"Scan done: {outcome.angles_evaluated}/{outcome.angles_planned} angles, "
                          f"best={outcome.best.angle if outcome.best else None}")
        return outcome
