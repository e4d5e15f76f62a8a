"""
Marker detection configuration.

Module-level defaults can be overridden through environment variables.
Per-call overrides go through get_params(), which returns a new frozen
DetectionParams and never touches the module defaults.
"""

import os
from dataclasses import dataclass, replace, asdict
from typing import Dict, Optional

# Adaptive HSV clamps (computed from percentiles)
MARKER_S_MIN_FLOOR: int = int(os.getenv('MARKER_S_MIN_FLOOR', '35'))
MARKER_S_MIN_CEIL: int = int(os.getenv('MARKER_S_MIN_CEIL', '80'))
MARKER_V_MIN_FLOOR: int = int(os.getenv('MARKER_V_MIN_FLOOR', '40'))
MARKER_V_MIN_CEIL: int = int(os.getenv('MARKER_V_MIN_CEIL', '90'))
MARKER_V_MAX_FLOOR: int = int(os.getenv('MARKER_V_MAX_FLOOR', '180'))
MARKER_V_MAX_CEIL: int = int(os.getenv('MARKER_V_MAX_CEIL', '255'))

# Morphology kernel ~ min(H, W) / div
MARKER_CLOSE_DIV: int = int(os.getenv('MARKER_CLOSE_DIV', '55'))
MARKER_OPEN_DIV: int = int(os.getenv('MARKER_OPEN_DIV', '110'))

# Component size filters (fraction of full image)
MARKER_MIN_COMP_FRAC: float = float(os.getenv('MARKER_MIN_COMP_FRAC', '0.0002'))
MARKER_MAX_COMP_FRAC: float = float(os.getenv('MARKER_MAX_COMP_FRAC', '0.95'))

# Angle scan
MARKER_COARSE_STEP_DEG: int = int(os.getenv('MARKER_COARSE_STEP_DEG', '2'))
MARKER_COARSE_RANGE_DEG: int = int(os.getenv('MARKER_COARSE_RANGE_DEG', '25'))
MARKER_FINE_STEP_DEG: int = int(os.getenv('MARKER_FINE_STEP_DEG', '1'))
MARKER_FINE_RANGE_DEG: int = int(os.getenv('MARKER_FINE_RANGE_DEG', '6'))

# Canonical warp side (pixels)
MARKER_WARP_SIZE: int = int(os.getenv('MARKER_WARP_SIZE', '360'))

# Worker threads for the angle scan
MARKER_MAX_WORKERS: int = int(os.getenv('MARKER_MAX_WORKERS', str(min(8, os.cpu_count() or 1))))

# Skip the rest of a sweep once an early-accept candidate shows up
MARKER_EAGER_STOP: bool = os.getenv('MARKER_EAGER_STOP', 'false').lower() == 'true'


@dataclass(frozen=True)
class DetectionParams:
    """Read-only tunables for one detection call."""

    # Adaptive segmentation
    s_min_floor: int = MARKER_S_MIN_FLOOR
    s_min_ceil: int = MARKER_S_MIN_CEIL
    v_min_floor: int = MARKER_V_MIN_FLOOR
    v_min_ceil: int = MARKER_V_MIN_CEIL
    v_max_floor: int = MARKER_V_MAX_FLOOR
    v_max_ceil: int = MARKER_V_MAX_CEIL
    s_percentile: float = 85.0
    s_percentile_offset: int = 10
    v_min_percentile: float = 60.0
    v_max_percentile: float = 99.0
    close_div: int = MARKER_CLOSE_DIV
    open_div: int = MARKER_OPEN_DIV

    # Component selection
    min_component_px: int = 100
    min_comp_frac: float = MARKER_MIN_COMP_FRAC
    max_comp_frac: float = MARKER_MAX_COMP_FRAC
    max_quad_area_frac: float = 0.99  # logged only

    # Angle scan
    coarse_step_deg: int = MARKER_COARSE_STEP_DEG
    coarse_range_deg: int = MARKER_COARSE_RANGE_DEG
    fine_step_deg: int = MARKER_FINE_STEP_DEG
    fine_range_deg: int = MARKER_FINE_RANGE_DEG
    min_occupancy: float = 0.30
    max_aspect: float = 3.0
    early_stop_occupancy: float = 0.78
    early_stop_hue: float = 0.85
    max_workers: int = MARKER_MAX_WORKERS
    eager_stop: bool = MARKER_EAGER_STOP

    # Perspective normalization
    warp_size: int = MARKER_WARP_SIZE
    roi_pad_frac: float = 0.10

    # Grid validation
    min_hue_score: float = 0.25
    hue_bins: int = 18
    hue_sat_floor: int = 40
    hue_bin_frac: float = 0.002
    expected_hues: int = 9
    min_line_peak: float = 0.12
    min_peak_sep: float = 0.12
    thirds_tol: float = 0.15
    profile_edge_margin: float = 0.04
    small_mode_px: int = 60
    template_min_corr: float = 0.25
    kmeans_clusters: int = 6
    kmeans_seed: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


DEFAULT_PARAMS = DetectionParams()

# Preset overrides
PRESETS: Dict[str, Dict] = {
    'default': {},
    # Wider sweep and larger warp used before the scan was tightened
    'legacy': {
        'coarse_range_deg': 35,
        'fine_range_deg': 10,
        'warp_size': 480,
        'min_line_peak': 0.15,
        'min_peak_sep': 0.15,
    },
    'fast': {
        'coarse_step_deg': 3,
        'fine_range_deg': 4,
        'warp_size': 240,
    },
}


def get_params(preset: Optional[str] = None, **overrides) -> DetectionParams:
    """
    Get detection parameters.

    Args:
        preset: Preset name ('default', 'legacy', 'fast') or None for default
        **overrides: Individual DetectionParams fields to replace

    Returns:
        DetectionParams instance

    Raises:
        ValueError: If the preset is unknown
    """
    params = DEFAULT_PARAMS
    if preset:
        if preset not in PRESETS:
            raise ValueError(f"Unknown preset '{preset}', expected one of {sorted(PRESETS)}")
        params = replace(params, **PRESETS[preset])
    if overrides:
        params = replace(params, **overrides)
    return params
