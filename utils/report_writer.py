"""
CSV coverage report writer.
"""

import csv
import logging
from pathlib import Path
from typing import List, Optional

from services.interfaces import CoverageReportRow
from services.marker_detection.context import DetectionResult

logger = logging.getLogger(__name__)

REPORT_FIELDS = [
    'identifier', 'found', 'coverage_percent', 'best_angle_deg', 'occupancy',
    'hue_score', 'line_ok', 'validator', 's_min', 'v_min', 'v_max', 'artifact_paths'
]


def build_report_row(
    identifier: str,
    result: DetectionResult,
    artifact_paths: Optional[List[str]] = None
) -> CoverageReportRow:
    """Flatten a detection result into one report row."""
    return {
        'identifier': identifier,
        'found': result.found,
        'coverage_percent': result.coverage_percent,
        'best_angle_deg': round(result.best_angle_deg, 2),
        'occupancy': round(result.occupancy, 4),
        'hue_score': round(result.hue_score, 4),
        'line_ok': result.line_ok,
        'validator': result.validator or '',
        's_min': result.s_min,
        'v_min': result.v_min,
        'v_max': result.v_max,
        'artifact_paths': ';'.join(artifact_paths or [])
    }


class CoverageReportWriter:
    """Appends one CSV row per processed image, writing the header once."""

    def __init__(self, csv_path: str):
        """
        Initialize report writer.

        Args:
            csv_path: Output CSV path; parent directories are created
        """
        self.csv_path = Path(csv_path)
        self.rows_written = 0

    def append(self, identifier: str, result: DetectionResult,
               artifact_paths: Optional[List[str]] = None) -> CoverageReportRow:
        """
        Append one row.

        Returns:
            The row that was written
        """
        row = build_report_row(identifier, result, artifact_paths)
        self.csv_path.parent.mkdir(parents=True, exist_ok=True)
        write_header = not self.csv_path.exists() or self.csv_path.stat().st_size == 0

        with open(self.csv_path, 'a', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=REPORT_FIELDS)
            if write_header:
                writer.writeheader()
            writer.writerow(row)

        self.rows_written += 1
        logger.debug(f'Report row for {identifier} appended to {self.csv_path}')
        return row
