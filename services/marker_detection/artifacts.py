"""
Debug artifact rendering.

Produces the in-memory PNG payloads attached to a DetectionResult when the
caller asks for artifacts. Persisting them is up to the caller
(see utils/visual_logger.py).
"""

import logging
from typing import List, Optional

import cv2
import numpy as np

from .context import (
    DebugArtifact,
    MASK_SUFFIX,
    QUAD_SUFFIX,
    WARP_SUFFIX,
    CROP_SUFFIX,
    CLIP_SUFFIX,
)
from .geometry import order_quad
from .perspective import natural_crop, clip_to_quad

logger = logging.getLogger(__name__)

QUAD_COLOR = (0, 255, 0)


def encode_png(image: np.ndarray) -> bytes:
    ok, buffer = cv2.imencode('.png', image)
    if not ok:
        raise ValueError("Failed to PNG-encode debug image")
    return buffer.tobytes()


def make_artifact(suffix: str, label: str, image: np.ndarray) -> DebugArtifact:
    return DebugArtifact(suffix=suffix, label=label, image=image, payload=encode_png(image))


def draw_box(image: np.ndarray, quad, coverage: int = -1) -> np.ndarray:
    """
    Draw the quad outline and, when coverage >= 0, a coverage caption.

    Args:
        image: Image to draw on (BGR format, copied)
        quad: Four corner points
        coverage: Coverage percentage, -1 to omit the caption

    Returns:
        Annotated copy of the image
    """
    vis = image.copy()
    poly = np.rint(order_quad(quad)).astype(np.int32).reshape(-1, 1, 2)
    cv2.polylines(vis, [poly], True, QUAD_COLOR, 3, cv2.LINE_AA)
    if coverage >= 0:
        cv2.putText(vis, f"Coverage: {coverage}%", (20, 40),
                    cv2.FONT_HERSHEY_SIMPLEX, 1.0, QUAD_COLOR, 2, cv2.LINE_AA)
    return vis


def build_artifacts(
    label: str,
    image: np.ndarray,
    mask: Optional[np.ndarray] = None,
    quad=None,
    warp: Optional[np.ndarray] = None,
    coverage: int = -1
) -> List[DebugArtifact]:
    """
    Build the debug artifacts available for one detection.

    Artifacts are produced only for the inputs that exist: no quad means no
    quad overlay, crop or clip.

    Args:
        label: Identifier prefix for file names
        image: Original image (BGR format)
        mask: Segmentation mask
        quad: Final quadrilateral
        warp: Canonical square of the final candidate
        coverage: Coverage percentage for the overlay caption

    Returns:
        List of DebugArtifact in mask, quad, warp, crop, clip order
    """
    artifacts = []
    if mask is not None:
        artifacts.append(make_artifact(MASK_SUFFIX, label, mask))
    if quad is not None:
        artifacts.append(make_artifact(QUAD_SUFFIX, label, draw_box(image, quad, coverage)))
    if warp is not None:
        artifacts.append(make_artifact(WARP_SUFFIX, label, warp))
    if quad is not None:
        artifacts.append(make_artifact(CROP_SUFFIX, label, natural_crop(image, quad)))
        artifacts.append(make_artifact(CLIP_SUFFIX, label, clip_to_quad(image, quad)))
    logger.debug(f"Built {len(artifacts)} debug artifacts for '{label}'")
    return artifacts
