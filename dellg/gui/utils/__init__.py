"""Small Tk helpers shared by the control panel."""

from __future__ import annotations

from .theme import apply_dark_theme
from .tk_async import run_in_thread

__all__ = [
    "apply_dark_theme",
    "run_in_thread",
]
