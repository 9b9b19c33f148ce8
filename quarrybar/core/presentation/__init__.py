"""Presentation layer for daemon status output.

Components:
- render_status / StatusView: DaemonState -> display text
- QuarryColors: Colors for CLI and prompt_toolkit output
"""

from quarrybar.core.presentation.colors import QuarryColors
from quarrybar.core.presentation.status import StatusView, render_status

__all__ = [
    "QuarryColors",
    "StatusView",
    "render_status",
]
