#!/usr/bin/env python3
"""
Measure marker coverage for one or more images.

Prints "<image> <percent>%" for every image where the marker was found.
Exit status: 0 when every image had a marker, 2 when at least one did not,
1 on usage or read errors.

Usage:
    python scripts/measure_coverage.py photos/ extra.jpg --csv report.csv --save-debug
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from config.marker_config import get_params, PRESETS
from services.marker_detection import MarkerDetectionService, DetectOptions
from utils.image_loader import load_image, collect_image_paths
from utils.report_writer import CoverageReportWriter
from utils.visual_logger import VisualLogger, resolve_output_dir

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_FOUND = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Measure 3x3 marker coverage in images')
    parser.add_argument('paths', nargs='+', help='Image files or directories of PNG/JPEG images')
    parser.add_argument('--debug', action='store_true', help='Print per-stage diagnostics')
    parser.add_argument('--save-debug', action='store_true', help='Write debug artifacts and log.json')
    parser.add_argument('--csv', type=str, default=None, help='Append one CSV row per image to this file')
    parser.add_argument('--output-dir', type=str, default=None,
                        help='Debug output root (default: $MARKER_DEBUG_DIR or ./debug_output)')
    parser.add_argument('--preset', type=str, choices=sorted(PRESETS), default=None,
                        help='Detection parameter preset')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        image_paths = []
        for path in args.paths:
            image_paths.extend(collect_image_paths(path))
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_ERROR

    if not image_paths:
        print("ERROR: No images found", file=sys.stderr)
        return EXIT_ERROR

    service = MarkerDetectionService(get_params(args.preset))
    report = CoverageReportWriter(args.csv) if args.csv else None
    visual_logger = VisualLogger(str(resolve_output_dir(args.output_dir))) if args.save_debug else None

    any_missing = False
    for image_path in image_paths:
        try:
            image = load_image(str(image_path))
        except ValueError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return EXIT_ERROR

        options = DetectOptions(debug=args.debug, debug_artifacts=args.save_debug, label=image_path.stem)
        result = service.detect(image, options)

        if result.found:
            print(f"{image_path} {result.coverage_percent}%")
        else:
            any_missing = True
            print(f"{image_path} marker not found ({result.reason_code})", file=sys.stderr)

        if args.debug:
            for line in result.diagnostics:
                print(f"  [{image_path.name}] {line}", file=sys.stderr)

        artifact_paths = []
        if visual_logger is not None:
            artifact_paths = visual_logger.save_result(result, Path(image_path).name)
        if report is not None:
            report.append(str(image_path), result, artifact_paths)

    return EXIT_NOT_FOUND if any_missing else EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
