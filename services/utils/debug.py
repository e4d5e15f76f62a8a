"""
Debug utilities for the Marker Coverage Service.

Collects per-stage human-readable diagnostics for a single detection call.
Nothing is written to disk here; persistence is handled by
utils/visual_logger.py.
"""

import logging
import numpy as np
from typing import Optional, List, Dict, Any, Tuple

logger = logging.getLogger(__name__)


class DebugContext:
    """
    Manages debug state throughout one detection.

    Usage:
        debug = DebugContext(enabled=True, image_name="photo.jpg")
        debug.add_step("01_segmentation", "Adaptive HSV", {"s_min": 52})
        debug.note("component fraction 0.18")
        debug.diagnostics  # ('01_segmentation: Adaptive HSV s_min=52', ...)
    """

    def __init__(self, enabled: bool = False, image_name: str = "unknown"):
        """
        Initialize debug context.

        Args:
            enabled: Whether debug mode is enabled
            image_name: Name of the image being processed
        """
        self.enabled = enabled
        self.image_name = image_name
        self.messages: List[str] = []

    def add_step(
        self,
        step_id: str,
        name: str,
        data: Optional[Dict[str, Any]] = None,
        description: str = ""
    ) -> None:
        """
        Record a pipeline step as one diagnostic line.

        Args:
            step_id: Unique identifier for the step (e.g., "01_segmentation")
            name: Human-readable step name
            data: Optional metadata dictionary
            description: Optional description of the step
        """
        if not self.enabled:
            return

        details = ' '.join(f"{k}={self._clean_value(v)}" for k, v in (data or {}).items())
        line = f"{step_id}: {name} {details}".rstrip()
        if description:
            line = f"{line} ({description})"
        logger.debug(f"[{self.image_name}] {line}")
        self.messages.append(line)

    def note(self, message: str) -> None:
        """Record a free-form diagnostic line (also logged at DEBUG)."""
        logger.debug(f"[{self.image_name}] {message}")
        if self.enabled:
            self.messages.append(message)

    def _clean_value(self, value):
        """Recursively convert numpy scalars and round floats for display."""
        if isinstance(value, np.ndarray):
            return value.tolist() if value.size < 100 else f"<ndarray shape={value.shape}>"
        elif isinstance(value, np.bool_):
            return bool(value)
        elif isinstance(value, np.integer):
            return int(value)
        elif isinstance(value, (float, np.floating)):
            return round(float(value), 4)
        elif isinstance(value, (list, tuple)):
            return [self._clean_value(v) for v in value]
        elif isinstance(value, dict):
            return {k: self._clean_value(v) for k, v in value.items()}
        else:
            return value

    @property
    def diagnostics(self) -> Tuple[str, ...]:
        return tuple(self.messages)
