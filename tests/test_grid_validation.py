"""
Unit tests for the grid validators and the validation cascade.
"""

import numpy as np
import pytest

from config.marker_config import get_params
from services.marker_detection.validation import (
    GridValidationCascade,
    compute_hue_score,
    strip_barcode_like,
)
from services.marker_detection.validators import (
    BaseGridValidator,
    LinePeaksValidator,
    ColorGradientValidator,
    MaxGapValidator,
    KMeansColorValidator,
    TemplateCorrelationValidator,
)
from services.marker_detection.validators.profiles import (
    smooth5,
    two_peaks_prominence,
    best_cut_pair,
    near_thirds,
)
from tests.synthetic import make_grid, make_gray_grid, GRID_COLORS


class ExplodingValidator(BaseGridValidator):
    def validate(self, square, small_mode):
        raise RuntimeError("boom")


class AlwaysValidator(BaseGridValidator):
    def validate(self, square, small_mode):
        return True


class TestProfiles:
    """Test cases for 1-D profile helpers."""

    def test_smooth5_keeps_ends(self):
        """Test the box filter leaves the two end samples untouched."""
        p = np.array([5, 0, 0, 10, 0, 0, 7], dtype=np.float32)
        s = smooth5(p)
        assert s[0] == 5 and s[1] == 0 and s[-1] == 7
        assert s[3] == pytest.approx(2.0)

    def test_two_peaks_at_thirds(self):
        """Test two clean peaks at 1/3 and 2/3 qualify."""
        p = np.zeros(90)
        p[29:32] = 10
        p[59:62] = 10
        assert two_peaks_prominence(p, 0.12, 0.12)

    def test_single_peak_rejected(self):
        """Test adjacent samples of one peak do not count as two peaks."""
        p = np.zeros(90)
        p[28:34] = 10
        assert not two_peaks_prominence(p, 0.12, 0.12)

    def test_peaks_off_thirds_rejected(self):
        """Test anchoring to the thirds."""
        p = np.zeros(90)
        p[10:13] = 10
        p[80:83] = 10
        assert not two_peaks_prominence(p, 0.12, 0.12)
        assert two_peaks_prominence(p, 0.12, 0.12, anchor_thirds=False)

    def test_flat_profile_rejected(self):
        """Test a flat profile has no peaks."""
        assert not two_peaks_prominence(np.ones(90), 0.12, 0.12)

    def test_best_cut_pair(self):
        """Test best pair respects the minimum separation."""
        p = np.zeros(30)
        p[10] = 5
        p[11] = 4
        p[20] = 3
        assert best_cut_pair(p, 5) == (10, 20)
        assert best_cut_pair(p, 40) is None

    def test_near_thirds(self):
        """Test near_thirds needs one position at each third."""
        assert near_thirds(90, 31, 58, 0.15)
        assert not near_thirds(90, 30, 32, 0.15)


class TestHueScore:
    """Test cases for compute_hue_score and strip_barcode_like."""

    def setup_method(self):
        """Set up test fixtures."""
        self.params = get_params()

    def test_full_palette(self):
        """Test nine distinct hues give a full score."""
        assert compute_hue_score(make_grid(360), self.params) == 1.0

    def test_single_color(self):
        """Test one hue gives 1/9."""
        square = np.full((360, 360, 3), (0, 0, 255), dtype=np.uint8)
        assert compute_hue_score(square, self.params) == pytest.approx(1.0 / 9.0)

    def test_gray_grid(self):
        """Test desaturated cells give zero."""
        assert compute_hue_score(make_gray_grid(360), self.params) == 0.0

    def test_strip_bright_top_band(self):
        """Test a washed-out top band is cut."""
        dim = [[tuple(int(c * 0.6) for c in color) for color in row] for row in GRID_COLORS]
        square = make_grid(360, dim)
        square[:36] = 255
        stripped, did_strip = strip_barcode_like(square)
        assert did_strip
        assert stripped.shape[0] == 360 - 43

    def test_no_strip_on_clean_grid(self):
        """Test a clean grid is left as-is."""
        square = make_grid(360)
        stripped, did_strip = strip_barcode_like(square)
        assert not did_strip
        assert stripped is square


class TestValidators:
    """Test cases for the individual grid validators."""

    def setup_method(self):
        """Set up test fixtures."""
        self.params = get_params()
        self.grid = make_grid(360)
        self.flat = np.full((360, 360, 3), 128, dtype=np.uint8)

    @pytest.mark.parametrize('validator_cls', [
        LinePeaksValidator,
        ColorGradientValidator,
        MaxGapValidator,
        TemplateCorrelationValidator,
    ])
    def test_clean_grid_detected(self, validator_cls):
        """Test each structural validator finds a clean grid."""
        assert validator_cls(self.params).validate(self.grid, False)

    @pytest.mark.parametrize('validator_cls', [
        LinePeaksValidator,
        ColorGradientValidator,
        MaxGapValidator,
        KMeansColorValidator,
        TemplateCorrelationValidator,
    ])
    def test_featureless_square_rejected(self, validator_cls):
        """Test no validator accepts a featureless square."""
        assert not validator_cls(self.params).validate(self.flat, False)

    def test_kmeans_needs_enough_samples(self):
        """Test k-means refuses a square with under 64 samples."""
        assert not KMeansColorValidator(self.params).validate(make_grid(48), True)

    def test_kmeans_deterministic(self):
        """Test k-means gives the same answer on repeated calls."""
        validator = KMeansColorValidator(self.params)
        assert validator.validate(self.grid, False) == validator.validate(self.grid, False)

    def test_validator_names(self):
        """Test telemetry names."""
        assert LinePeaksValidator(self.params).name == 'line_peaks'
        assert KMeansColorValidator(self.params).name == 'k_means_color'
        assert TemplateCorrelationValidator(self.params).name == 'template_correlation'


class TestGridValidationCascade:
    """Test cases for GridValidationCascade."""

    def setup_method(self):
        """Set up test fixtures."""
        self.params = get_params()
        self.cascade = GridValidationCascade(self.params)

    def test_clean_grid_accepted(self):
        """Test a clean colored grid passes the cascade."""
        result = self.cascade.run(make_grid(360))
        assert result.line_ok
        assert result.hue_score == 1.0
        assert result.validator == 'line_peaks'
        assert self.cascade.accepts(result)
        assert not result.small_mode

    def test_gray_grid_fails_hue_gate(self):
        """Test a desaturated grid is rejected by the hue gate."""
        result = self.cascade.run(make_gray_grid(360))
        assert result.hue_score < self.params.min_hue_score
        assert not self.cascade.accepts(result)

    def test_small_mode(self):
        """Test a tiny square runs in small mode without errors."""
        params = get_params(warp_size=48)
        result = GridValidationCascade(params).run(make_grid(48))
        assert result.small_mode
        assert result.line_ok
        assert result.hue_score == 1.0

    def test_validator_exception_counts_as_failure(self):
        """Test a raising validator is skipped and the next one runs."""
        cascade = GridValidationCascade(self.params, [ExplodingValidator(self.params),
                                                      AlwaysValidator(self.params)])
        result = cascade.run(make_grid(360))
        assert result.line_ok
        assert result.validator == 'always'

    def test_no_validator_succeeds(self):
        """Test line_ok stays False when every validator fails."""
        cascade = GridValidationCascade(self.params, [ExplodingValidator(self.params)])
        result = cascade.run(make_grid(360))
        assert not result.line_ok
        assert result.validator is None
