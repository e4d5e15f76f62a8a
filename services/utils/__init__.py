"""
Utility services for marker detection.

Utilities:
- DebugContext: Step tracking and diagnostics
"""

from services.utils.debug import DebugContext

__all__ = [
    'DebugContext'
]
