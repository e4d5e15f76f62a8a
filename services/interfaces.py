"""
Service interfaces and type definitions for the Marker Coverage Service.

This module defines the JSON-facing structures returned by the detection
service, the HTTP API and the report writers.
"""

from typing import TypedDict, List, Optional, Literal


class ThresholdInfo(TypedDict):
    """Adaptive HSV thresholds used by the segmenter."""
    s_min: int
    v_min: int
    v_max: int


class DetectionTelemetry(TypedDict):
    """
    Telemetry for a single detection.

    Populated for not-found results too, with the best attempted values.
    """
    best_angle_deg: float  # Chosen scan angle (RotatedRect convention)
    skew_deg: float  # best_angle_deg folded into (-45, 45]
    occupancy: float  # Mask occupancy inside the tightened ROI
    hue_score: float  # 0..1 hue richness after warp
    line_ok: bool  # Grid divisions detected after warp
    validator: Optional[str]  # Name of the validator that accepted
    fallback_used: bool  # Accepted through the raw-rectangle fallback
    thresholds: ThresholdInfo


class ArtifactInfo(TypedDict, total=False):
    """Debug artifact descriptor."""
    suffix: str  # e.g. "_debug_quad"
    filename: str  # <label><suffix>.png
    width: int
    height: int
    png_base64: str  # Only when payloads were requested


class DetectionPayload(TypedDict):
    """
    Complete detection result in JSON form.

    quad is ordered TL, TR, BR, BL in image coordinates.
    """
    found: bool
    quad: Optional[List[List[float]]]
    coverage_percent: int  # -1 when not found
    telemetry: DetectionTelemetry
    reason_code: Optional[Literal["INPUT_EMPTY", "NO_CANDIDATE", "VALIDATION_FAILED"]]
    processing_time_ms: int
    diagnostics: List[str]
    artifacts: List[ArtifactInfo]


class CoverageReportRow(TypedDict):
    """One CSV row written per processed image."""
    identifier: str
    found: bool
    coverage_percent: int
    best_angle_deg: float
    occupancy: float
    hue_score: float
    line_ok: bool
    validator: str
    s_min: int
    v_min: int
    v_max: int
    artifact_paths: str  # Semicolon separated
