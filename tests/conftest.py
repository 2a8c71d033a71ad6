"""
Pytest configuration and fixtures for exam-announcer tests.
"""

import sys
from pathlib import Path
import pytest

# Add src directory to Python path to allow importing exam_announcer
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from exam_announcer.config import AnnouncementSettings  # noqa: E402
from exam_announcer.models import ScheduleEntry, Timer, TimerMode, TimerStatus  # noqa: E402


# Configure anyio to only use asyncio (not trio)
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings() -> AnnouncementSettings:
    """Default settings with no secrets from the environment."""
    return AnnouncementSettings()


@pytest.fixture
def exam_timer() -> Timer:
    """A running 90-minute exam with a single five-minute warning."""
    return Timer(
        id="t1",
        label="Geomatics",
        mode=TimerMode.EXAM,
        duration_seconds=5400,
        remaining_seconds=5400,
        status=TimerStatus.RUNNING,
        course_code="GEOM2001",
        program="BSc Geomatics",
        student_count=42,
        announcement_schedule=[
            ScheduleEntry(
                id="five",
                trigger_at_seconds=300,
                message="{program}, {remainingWords} left",
            ),
        ],
    )
