"""Utility modules for logging, timing, and audio import helpers."""

from .imports import with_suppressed_audio_warnings
from .logging import setup_logging
from .timing import now_ms, format_duration, progress_percentage, clamp

__all__ = [
    "with_suppressed_audio_warnings", "setup_logging",
    "now_ms", "format_duration", "progress_percentage", "clamp",
]
