"""
Data models for the exam announcer.

Timers are owned by the countdown clock; the announcement subsystem only
reads them, apart from latching ``has_been_spoken`` on schedule entries.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TimerStatus(str, Enum):
    """Lifecycle states reported by the countdown clock."""

    IDLE = "Idle"
    RUNNING = "Running"
    PAUSED = "Paused"
    ENDED = "Ended"


class TimerMode(str, Enum):
    QUIZ = "quiz"
    EXAM = "exam"


class ScheduleEntry(BaseModel):
    """A rule describing when and what to announce for one timer."""

    id: str = Field(description="Unique identifier within the timer's schedule")
    trigger_at_seconds: int = Field(
        ge=0,
        description="Fires when remaining seconds cross at or below this value",
    )
    message: str = Field(description="Message template, e.g. '{program}, five minutes left'")
    enabled: bool = Field(default=True, description="Whether this entry may fire")
    has_been_spoken: bool = Field(
        default=False,
        description="Latched once fired; cleared when the timer is reset",
    )


class Timer(BaseModel):
    """A single countdown session (quiz or exam)."""

    id: str = Field(description="Unique timer identifier")
    label: str = Field(default="", description="Display label")
    mode: TimerMode = Field(default=TimerMode.QUIZ)
    duration_seconds: int = Field(ge=0, description="Total duration of the session")
    remaining_seconds: int = Field(ge=0, description="Seconds left on the clock")
    status: TimerStatus = Field(default=TimerStatus.IDLE)
    end_time_unix: Optional[int] = Field(
        default=None,
        description="Projected or actual completion as epoch seconds",
    )
    course_code: Optional[str] = Field(default=None, description="Exam course code")
    program: Optional[str] = Field(default=None, description="Exam programme name")
    student_count: Optional[int] = Field(default=None, ge=0)
    announcement_schedule: list[ScheduleEntry] = Field(default_factory=list)

    @property
    def is_exam(self) -> bool:
        return self.mode == TimerMode.EXAM


class TimerTick(BaseModel):
    """Periodic event pushed by the countdown clock for a running timer."""

    timer_id: str
    remaining_seconds: int = Field(ge=0)
    status: TimerStatus
    end_time_unix: Optional[int] = None


class QueuedAnnouncement(BaseModel):
    """A resolved, ready-to-speak announcement waiting in the queue.

    Lower priority values are more urgent: 0 for manual announcements,
    1 for end of session, 2 for scheduled milestones.
    """

    id: str = Field(description="Deduplication key")
    text: str
    priority: int = Field(default=2, ge=0)


class DueAnnouncement(BaseModel):
    """Work item produced by the schedule evaluator for a single tick."""

    announcement_id: str
    timer_id: str
    text: str
    priority: int
    enhance: bool = True

    def to_queued(self, text: Optional[str] = None) -> QueuedAnnouncement:
        return QueuedAnnouncement(
            id=self.announcement_id,
            text=self.text if text is None else text,
            priority=self.priority,
        )


# Conventional priority levels
PRIORITY_MANUAL = 0
PRIORITY_END_OF_SESSION = 1
PRIORITY_MILESTONE = 2
