"""
Unit tests for the angle scan optimizer.
"""

import numpy as np

from config.marker_config import get_params
from services.marker_detection.angle_scan import (
    AngleScanOptimizer,
    angle_deltas,
    rotate_and_tighten,
)
from services.marker_detection.component_selection import base_region
from services.marker_detection.context import CandidateScore


def constant_evaluator(occupancy=0.5, hue_score=0.5, line_ok=True, accepted=True):
    """Evaluator that scores every angle the same."""
    def evaluate(tight, occ, angle):
        return CandidateScore(occupancy=occupancy, hue_score=hue_score, line_ok=line_ok,
                              angle=angle, region=tight, validator='stub', accepted=accepted)
    return evaluate


class TestAngleDeltas:
    """Test cases for angle_deltas."""

    def test_default_coarse_sweep(self):
        """Test the default coarse sweep covers -25..25 in steps of 2."""
        deltas = angle_deltas(2, 25)
        assert len(deltas) == 26
        assert deltas[0] == -25 and deltas[-1] == 25

    def test_step_not_dividing_range(self):
        """Test the sweep stops before passing +range."""
        assert angle_deltas(3, 4) == [-4, -1, 2]

    def test_malformed(self):
        """Test zero step or negative range yields no angles."""
        assert angle_deltas(0, 5) == []
        assert angle_deltas(1, -1) == []
        assert angle_deltas(1, 0) == [0]


class TestRotateAndTighten:
    """Test cases for rotate_and_tighten."""

    def setup_method(self):
        """Set up test fixtures."""
        self.mask = np.zeros((480, 640), dtype=np.uint8)
        self.mask[120:360, 200:440] = 255
        self.base = base_region(self.mask)

    def test_aligned_angle_is_fully_occupied(self):
        """Test the base angle gives a tight, fully occupied box."""
        tight, occupancy = rotate_and_tighten(self.mask, self.base, self.base.angle)
        assert occupancy > 0.99
        assert abs(tight.width - self.base.width) <= 1
        assert abs(tight.center[0] - self.base.center[0]) < 1.5
        assert abs(tight.center[1] - self.base.center[1]) < 1.5
        assert tight.angle == self.base.angle

    def test_misaligned_angle_lowers_occupancy(self):
        """Test a 20 degree offset leaves empty corners in the crop."""
        _, occupancy = rotate_and_tighten(self.mask, self.base, self.base.angle + 20)
        assert occupancy < 0.95

    def test_empty_mask(self):
        """Test nothing to tighten in an empty mask."""
        empty = np.zeros_like(self.mask)
        assert rotate_and_tighten(empty, self.base, self.base.angle) is None


class TestAngleScanOptimizer:
    """Test cases for AngleScanOptimizer.scan."""

    def setup_method(self):
        """Set up test fixtures."""
        self.mask = np.zeros((480, 640), dtype=np.uint8)
        self.mask[120:360, 200:440] = 255
        self.base = base_region(self.mask)

    def test_ties_keep_first_in_scan_order(self):
        """Test equal scores resolve to the first angle of the coarse sweep."""
        for workers in (1, 4):
            scanner = AngleScanOptimizer(get_params(max_workers=workers))
            outcome = scanner.scan(self.mask, self.base, constant_evaluator())
            assert outcome.best is not None
            assert outcome.best.angle == self.base.angle - 25
            assert not outcome.early_accepted

    def test_early_accept_skips_fine_sweep(self):
        """Test a strong coarse winner ends the scan after the coarse sweep."""
        scanner = AngleScanOptimizer(get_params(max_workers=4))
        outcome = scanner.scan(self.mask, self.base, constant_evaluator(occupancy=0.9, hue_score=0.9))
        assert outcome.early_accepted
        assert outcome.angles_evaluated == 26

    def test_fine_sweep_runs_without_early_accept(self):
        """Test both sweeps are evaluated when nothing passes the early-accept bar."""
        scanner = AngleScanOptimizer(get_params(max_workers=2))
        outcome = scanner.scan(self.mask, self.base, constant_evaluator())
        assert outcome.angles_evaluated == 26 + 13

    def test_eager_stop_skips_remaining_angles(self):
        """Test eager stop ends a sequential sweep after the first early-accept candidate."""
        scanner = AngleScanOptimizer(get_params(max_workers=1, eager_stop=True))
        outcome = scanner.scan(self.mask, self.base, constant_evaluator(occupancy=0.9, hue_score=0.9))
        assert outcome.early_accepted
        assert outcome.angles_evaluated == 1

    def test_rejected_candidates_tracked(self):
        """Test rejected candidates are kept apart for telemetry."""
        scanner = AngleScanOptimizer(get_params(max_workers=3))
        outcome = scanner.scan(self.mask, self.base, constant_evaluator(accepted=False))
        assert outcome.best is None
        assert outcome.best_rejected is not None
        assert outcome.best_rejected.angle == self.base.angle - 25

    def test_zero_angles(self):
        """Test a malformed configuration plans no angles."""
        scanner = AngleScanOptimizer(get_params(coarse_step_deg=0, fine_step_deg=0))
        outcome = scanner.scan(self.mask, self.base, constant_evaluator())
        assert outcome.angles_planned == 0
        assert outcome.best is None

    def test_occupancy_gate(self):
        """Test candidates under min_occupancy never reach the evaluator."""
        calls = []

        def evaluate(tight, occ, angle):
            calls.append(angle)
            return None

        scanner = AngleScanOptimizer(get_params(min_occupancy=1.01))
        outcome = scanner.scan(self.mask, self.base, evaluate)
        assert calls == []
        assert outcome.best is None
