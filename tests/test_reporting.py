"""
Unit tests for the CSV report writer and the visual logger.
"""

import csv
import json
from pathlib import Path

from services.marker_detection import DetectOptions, detect
from services.marker_detection.context import DetectionResult
from utils.report_writer import CoverageReportWriter, build_report_row, REPORT_FIELDS
from utils.visual_logger import VisualLogger, resolve_output_dir


class TestReportWriter:
    """Test cases for CoverageReportWriter."""

    def test_row_for_missing_marker(self):
        """Test a not-found result flattens with -1 coverage."""
        row = build_report_row('img.png', DetectionResult())
        assert set(row) == set(REPORT_FIELDS)
        assert row['found'] is False
        assert row['coverage_percent'] == -1
        assert row['artifact_paths'] == ''

    def test_header_written_once(self, tmp_path):
        """Test appending twice gives one header and two rows."""
        path = tmp_path / 'report.csv'
        writer = CoverageReportWriter(str(path))
        writer.append('a.png', DetectionResult(found=True, coverage_percent=42))
        writer.append('b.png', DetectionResult(), ['x.png', 'y.png'])

        lines = path.read_text().splitlines()
        assert lines[0] == ','.join(REPORT_FIELDS)
        assert len(lines) == 3
        with open(path, newline='') as f:
            rows = list(csv.DictReader(f))
        assert rows[0]['coverage_percent'] == '42'
        assert rows[1]['artifact_paths'] == 'x.png;y.png'
        assert writer.rows_written == 2

    def test_appends_to_existing_report(self, tmp_path):
        """Test a second writer keeps the existing header."""
        path = tmp_path / 'report.csv'
        CoverageReportWriter(str(path)).append('a.png', DetectionResult())
        CoverageReportWriter(str(path)).append('b.png', DetectionResult())
        assert path.read_text().count('identifier') == 1


class TestVisualLogger:
    """Test cases for VisualLogger and resolve_output_dir."""

    def test_resolve_explicit_dir(self, tmp_path):
        assert resolve_output_dir(str(tmp_path), 'run1') == tmp_path / 'run1'

    def test_resolve_from_env(self, tmp_path, monkeypatch):
        """Test MARKER_DEBUG_DIR is the default root."""
        monkeypatch.setenv('MARKER_DEBUG_DIR', str(tmp_path))
        assert resolve_output_dir(run_name='r') == tmp_path / 'r'

    def test_resolve_timestamp_folder(self, monkeypatch):
        """Test runs default to a timestamp-named folder under debug_output."""
        monkeypatch.delenv('MARKER_DEBUG_DIR', raising=False)
        path = resolve_output_dir()
        assert path.parent == Path('debug_output')
        assert len(path.name) == len('20260101_120000')

    def test_save_result(self, tmp_path, scene):
        """Test artifacts and log.json are written."""
        result = detect(scene, DetectOptions(debug_artifacts=True, label='scene'))
        logger = VisualLogger(str(tmp_path / 'run'))
        written = logger.save_result(result, 'scene.jpg')

        assert len(written) == 5
        assert all(Path(p).exists() for p in written)
        assert Path(written[0]).name == 'scene_debug_mask.png'
        log = json.loads((tmp_path / 'run' / 'log.json').read_text())
        assert log['entries'][0]['image_name'] == 'scene.jpg'
        assert len(log['entries'][0]['artifact_files']) == 5

    def test_save_result_without_artifacts(self, tmp_path):
        """Test a result without artifacts still gets a log entry."""
        logger = VisualLogger(str(tmp_path))
        assert logger.save_result(DetectionResult(), 'x.png') == []
        log = json.loads((tmp_path / 'log.json').read_text())
        assert len(log['entries']) == 1
