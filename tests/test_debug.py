"""
Unit tests for DebugContext.
"""

import numpy as np

from services.utils.debug import DebugContext


class TestDebugContext:
    """Test cases for DebugContext."""

    def setup_method(self):
        """Set up test fixtures."""
        self.debug = DebugContext(enabled=True, image_name='photo.jpg')

    def test_disabled_records_nothing(self):
        """Test a disabled context keeps no diagnostics."""
        debug = DebugContext(enabled=False)
        debug.add_step('01_segmentation', 'Adaptive HSV', {'s_min': 52})
        debug.note('component fraction 0.18')
        assert debug.diagnostics == ()

    def test_step_line_format(self):
        """Test a step becomes 'id: name k=v (description)'."""
        self.debug.add_step('01_segmentation', 'Adaptive HSV', {'s_min': 52, 'v_min': 90},
                            'Mask pixels: 100')
        assert self.debug.diagnostics == (
            '01_segmentation: Adaptive HSV s_min=52 v_min=90 (Mask pixels: 100)',)

    def test_numpy_values_cleaned(self):
        """Test numpy scalars and floats are shown as rounded Python values."""
        self.debug.add_step('02_component', 'Dominant Component',
                            {'area': np.int64(5), 'frac': np.float32(0.123456), 'ok': np.bool_(True),
                             'pts': np.array([1, 2])})
        assert self.debug.diagnostics[0] == (
            '02_component: Dominant Component area=5 frac=0.1235 ok=True pts=[1, 2]')

    def test_notes_in_order(self):
        """Test steps and notes keep insertion order."""
        self.debug.add_step('03_angle_scan', 'Angle Scan')
        self.debug.note('fallback')
        assert self.debug.diagnostics == ('03_angle_scan: Angle Scan', 'fallback')
