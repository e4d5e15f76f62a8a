"""
Detection Context - Data types shared by the marker detection pipeline.

Holds candidate regions, scores, validation results and the final
DetectionResult handed back to callers.
"""

import base64
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Any

import cv2
import numpy as np

from services.interfaces import DetectionPayload

Point = Tuple[float, float]
Quad = Tuple[Point, Point, Point, Point]

# Reason codes for a not-found result
INPUT_EMPTY = 'INPUT_EMPTY'
NO_CANDIDATE = 'NO_CANDIDATE'
VALIDATION_FAILED = 'VALIDATION_FAILED'

# Artifact suffixes
MASK_SUFFIX = '_debug_mask'
QUAD_SUFFIX = '_debug_quad'
WARP_SUFFIX = '_debug_warp'
CROP_SUFFIX = '_debug_crop'
CLIP_SUFFIX = '_debug_clip'


@dataclass(frozen=True)
class RotatedRegion:
    """Rotated rectangle in OpenCV RotatedRect convention (angle in degrees)."""
    center: Point
    size: Tuple[float, float]
    angle: float

    @classmethod
    def from_cv(cls, rect) -> 'RotatedRegion':
        (cx, cy), (w, h), angle = rect
        return cls((float(cx), float(cy)), (float(w), float(h)), float(angle))

    def to_cv(self):
        return (self.center, self.size, self.angle)

    @property
    def width(self) -> float:
        return self.size[0]

    @property
    def height(self) -> float:
        return self.size[1]

    @property
    def area(self) -> float:
        return self.size[0] * self.size[1]

    @property
    def aspect(self) -> float:
        w, h = self.size
        return max(w, h) / max(1.0, min(w, h))

    def points(self) -> np.ndarray:
        """Raw corners (unordered) as a (4, 2) float32 array."""
        return cv2.boxPoints(self.to_cv()).astype(np.float32)


@dataclass(frozen=True)
class CandidateScore:
    """One evaluated scan angle."""
    occupancy: float
    hue_score: float
    line_ok: bool
    angle: float
    region: RotatedRegion
    validator: Optional[str] = None
    accepted: bool = True

    @property
    def score(self) -> float:
        return self.occupancy * (0.5 + 0.5 * self.hue_score)

    def beats(self, other: Optional['CandidateScore']) -> bool:
        """Strictly better score; ties keep the incumbent."""
        return other is None or self.score > other.score


@dataclass
class GridCheckResult:
    """Outcome of the grid validation cascade on one canonical square."""
    hue_score: float = 0.0
    line_ok: bool = False
    validator: Optional[str] = None
    small_mode: bool = False
    stripped_top: bool = False

    def accepted(self, min_hue_score: float) -> bool:
        return self.line_ok and self.hue_score >= min_hue_score


@dataclass(frozen=True)
class DetectOptions:
    """
    Per-call options.

    Attributes:
        debug: Collect human-readable diagnostics in the result
        debug_artifacts: Produce debug image payloads in the result
        label: Identifier prefix used only to label artifact buffers
    """
    debug: bool = False
    debug_artifacts: bool = False
    label: str = ''


@dataclass(frozen=True)
class DebugArtifact:
    """In-memory debug image plus its PNG payload and suggested name."""
    suffix: str
    label: str
    image: np.ndarray = field(repr=False, compare=False)
    payload: bytes = field(repr=False, compare=False)

    @property
    def filename(self) -> str:
        return f'{self.label}{self.suffix}.png'

    def to_dict(self, include_payload: bool = False) -> Dict[str, Any]:
        data = {
            'suffix': self.suffix,
            'filename': self.filename,
            'width': int(self.image.shape[1]),
            'height': int(self.image.shape[0])
        }
        if include_payload:
            data['png_base64'] = base64.b64encode(self.payload).decode('ascii')
        return data


@dataclass(frozen=True)
class DetectionResult:
    """
    Final decision for one image. Immutable once assembled.

    coverage_percent is -1 when the marker was not found.
    """
    found: bool = False
    quad: Optional[Quad] = None
    coverage_percent: int = -1
    best_angle_deg: float = 0.0
    occupancy: float = 0.0
    hue_score: float = 0.0
    line_ok: bool = False
    s_min: int = 0
    v_min: int = 0
    v_max: int = 255
    validator: Optional[str] = None
    fallback_used: bool = False
    reason_code: Optional[str] = None
    processing_time_ms: int = 0
    diagnostics: Tuple[str, ...] = ()
    artifacts: Tuple[DebugArtifact, ...] = field(default=(), repr=False)

    @property
    def skew_deg(self) -> float:
        """best_angle_deg folded into (-45, 45]."""
        folded = (self.best_angle_deg + 45.0) % 90.0 - 45.0
        return 45.0 if folded == -45.0 else folded

    def artifact(self, suffix: str) -> Optional[DebugArtifact]:
        for item in self.artifacts:
            if item.suffix == suffix:
                return item
        return None

    def to_dict(self, include_artifacts: bool = False) -> DetectionPayload:
        return {
            'found': self.found,
            'quad': [[float(x), float(y)] for x, y in self.quad] if self.quad else None,
            'coverage_percent': self.coverage_percent,
            'telemetry': {
                'best_angle_deg': float(self.best_angle_deg),
                'skew_deg': float(self.skew_deg),
                'occupancy': float(self.occupancy),
                'hue_score': float(self.hue_score),
                'line_ok': bool(self.line_ok),
                'validator': self.validator,
                'fallback_used': self.fallback_used,
                'thresholds': {'s_min': self.s_min, 'v_min': self.v_min, 'v_max': self.v_max}
            },
            'reason_code': self.reason_code,
            'processing_time_ms': self.processing_time_ms,
            'diagnostics': list(self.diagnostics),
            'artifacts': [a.to_dict(include_payload=include_artifacts) for a in self.artifacts]
        }
