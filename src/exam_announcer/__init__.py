"""
Exam Announcer - scheduled spoken announcements for exam and quiz countdown timers.

The FastMCP server lives in ``exam_announcer.main``; importing the package
itself has no side effects.
"""

from .announcements import AnnouncementQueue, AnnouncementService, TextEnhancer
from .clock import CountdownClock
from .config import AnnouncementSettings, load_settings, save_settings
from .errors import ConfigurationError, ExamAnnouncerError, TimerNotFoundError
from .models import *

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("exam-announcer")
except Exception:
    __version__ = "0.1.0"  # Fallback if metadata unavailable
__all__ = [
    "AnnouncementQueue",
    "AnnouncementService",
    "TextEnhancer",
    "CountdownClock",
    "AnnouncementSettings",
    "load_settings",
    "save_settings",
    "ExamAnnouncerError",
    "TimerNotFoundError",
    "ConfigurationError",
]
