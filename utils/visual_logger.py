"""
Visual logging utilities for persisting detection debug artifacts.
"""

import cv2
import logging
import os
import json
from typing import Dict, List, Optional
from datetime import datetime
from pathlib import Path

from services.marker_detection.context import DetectionResult

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_ROOT = 'debug_output'


def resolve_output_dir(base_dir: Optional[str] = None, run_name: Optional[str] = None) -> Path:
    """
    Resolve the artifact directory for one run.

    The root is base_dir, else MARKER_DEBUG_DIR, else ./debug_output. Each run
    gets a timestamp-named subfolder.

    Args:
        base_dir: Explicit output root
        run_name: Subfolder name (defaults to the current timestamp)

    Returns:
        Path to the (not yet created) run directory
    """
    root = base_dir or os.getenv('MARKER_DEBUG_DIR') or DEFAULT_OUTPUT_ROOT
    run_name = run_name or datetime.now().strftime('%Y%m%d_%H%M%S')
    return Path(root) / run_name


class VisualLogger:
    """Saves debug artifacts and a JSON log for each processed image."""

    def __init__(self, output_dir: Optional[str] = None):
        """
        Initialize visual logger.

        Args:
            output_dir: Run directory. If None, resolve_output_dir() picks one.
        """
        self.output_dir = Path(output_dir) if output_dir else resolve_output_dir()
        self.entries: List[Dict] = []

    def save_result(self, result: DetectionResult, image_name: str) -> List[str]:
        """
        Write a result's artifacts as <stem><suffix>.png and update log.json.

        Args:
            result: Detection result (artifacts must have been requested)
            image_name: Source image name; its stem prefixes the files

        Returns:
            Paths of the written images
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        stem = Path(image_name).stem

        written = []
        for artifact in result.artifacts:
            path = self.output_dir / f'{stem}{artifact.suffix}.png'
            if not cv2.imwrite(str(path), artifact.image):
                logger.warning(f'Failed to write artifact: {path}')
                continue
            written.append(str(path))

        entry = {
            'image_name': image_name,
            'timestamp': datetime.now().isoformat(),
            'result': result.to_dict(include_artifacts=False),
            'artifact_files': [Path(p).name for p in written]
        }
        self.entries.append(entry)
        self._write_log()

        logger.info(f'Saved {len(written)} debug artifacts for {image_name} to {self.output_dir}')
        return written

    def _write_log(self) -> None:
        metadata_path = self.output_dir / 'log.json'
        with open(metadata_path, 'w') as f:
            json.dump({'entries': self.entries}, f, indent=2)
