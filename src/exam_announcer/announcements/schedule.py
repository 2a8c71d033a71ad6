"""
Per-timer schedule evaluation.

The ScheduleEvaluator inspects each clock tick against the owning timer's
announcement schedule and returns the announcements that just became due.
It is purely synchronous: resolving text is cheap, while enhancement and
speech are left to the caller so tick handling never waits on the network.

An entry is due while the remaining time sits inside a short window below
its trigger point::

    trigger_at_seconds - WINDOW_SECONDS <= remaining <= trigger_at_seconds

Ticks arrive roughly once per second and may skip a value, so the window
tolerates jitter while bounding how late an announcement may still fire.
Entries are latched (``has_been_spoken``) the moment they are found due.
"""

import logging
from typing import Callable, Optional

import shortuuid

from ..config import AnnouncementSettings
from ..models import (
    PRIORITY_END_OF_SESSION,
    PRIORITY_MILESTONE,
    DueAnnouncement,
    ScheduleEntry,
    Timer,
    TimerStatus,
    TimerTick,
)
from .templates import resolve_template

logger = logging.getLogger("exam-announcer.announcements.schedule")

WINDOW_SECONDS = 3


def is_within_window(entry: ScheduleEntry, remaining_seconds: int) -> bool:
    """Check whether ``remaining_seconds`` falls in the entry's firing window."""
    trigger = entry.trigger_at_seconds
    return trigger - WINDOW_SECONDS <= remaining_seconds <= trigger


def clone_default_schedule(
    entries: list[ScheduleEntry],
    suffix: Optional[str] = None,
) -> list[ScheduleEntry]:
    """Copy a default schedule for a new timer.

    Each clone gets a fresh id (``{default_id}-{suffix}``) and starts
    unspoken, so edits to one timer's schedule never leak into another.
    """
    suffix = suffix or shortuuid.random(length=8)
    return [
        entry.model_copy(update={"id": f"{entry.id}-{suffix}", "has_been_spoken": False})
        for entry in entries
    ]


class ScheduleEvaluator:
    """Decides which schedule entries fire on each timer tick.

    The evaluator remembers the previous status of every timer it has seen
    so that it can detect the Running -> Ended edge, which triggers the
    global end-of-session message independently of any schedule entry.

    Args:
        settings_provider: Callable returning the current settings. Read on
            every tick so configuration changes apply immediately.
    """

    def __init__(self, settings_provider: Callable[[], AnnouncementSettings]) -> None:
        self._settings_provider = settings_provider
        self._previous_status: dict[str, TimerStatus] = {}
        self._end_announced: set[str] = set()

    def apply_tick(self, timer: Timer, tick: TimerTick) -> list[DueAnnouncement]:
        """Copy tick state onto ``timer`` and evaluate its schedule.

        Args:
            timer: Timer owning the schedule. Mutated in place.
            tick: The clock event for this timer.

        Returns:
            Announcements that became due on this tick, in schedule order.
        """
        timer.remaining_seconds = tick.remaining_seconds
        timer.status = tick.status
        timer.end_time_unix = tick.end_time_unix
        return self.evaluate(timer)

    def evaluate(self, timer: Timer) -> list[DueAnnouncement]:
        """Evaluate ``timer``'s schedule against its current state."""
        settings = self._settings_provider()
        previous = self._previous_status.get(timer.id)
        self._previous_status[timer.id] = timer.status

        if not settings.announcements_enabled:
            return []

        due: list[DueAnnouncement] = []
        just_ended = previous == TimerStatus.RUNNING and timer.status == TimerStatus.ENDED

        # The clock reports Ended on the same tick that reaches zero, so the
        # transition tick is still evaluated for end-of-session entries.
        if timer.status == TimerStatus.RUNNING or just_ended:
            for entry in timer.announcement_schedule:
                if not entry.enabled or entry.has_been_spoken:
                    continue
                if not is_within_window(entry, timer.remaining_seconds):
                    continue

                # Latch before any asynchronous work so a rapid double tick
                # cannot fire the same entry twice.
                entry.has_been_spoken = True
                if entry.trigger_at_seconds == 0:
                    priority = PRIORITY_END_OF_SESSION
                    self._end_announced.add(timer.id)
                else:
                    priority = PRIORITY_MILESTONE
                due.append(
                    DueAnnouncement(
                        announcement_id=f"{timer.id}-{entry.id}",
                        timer_id=timer.id,
                        text=resolve_template(entry.message, timer),
                        priority=priority,
                    )
                )
                logger.debug(
                    "Entry '%s' due for timer '%s' at %ss remaining",
                    entry.id,
                    timer.id,
                    timer.remaining_seconds,
                )

        if just_ended:
            if settings.consolidate_end_announcements and timer.id in self._end_announced:
                logger.debug(
                    "Timer '%s' ended, end-of-session entry already announced",
                    timer.id,
                )
                return due
            self._end_announced.add(timer.id)
            due.append(
                DueAnnouncement(
                    announcement_id=f"{timer.id}-sys-end",
                    timer_id=timer.id,
                    text=resolve_template(settings.end_message, timer),
                    priority=PRIORITY_END_OF_SESSION,
                )
            )
            logger.info("Timer '%s' ended, end-of-session message due", timer.id)

        return due

    def reset(self, timer: Timer) -> None:
        """Re-arm every schedule entry of ``timer`` for its next run."""
        for entry in timer.announcement_schedule:
            entry.has_been_spoken = False
        self._previous_status[timer.id] = timer.status
        self._end_announced.discard(timer.id)
        logger.debug("Schedule re-armed for timer '%s'", timer.id)

    def forget(self, timer_id: str) -> None:
        """Drop edge-detection state for a deleted timer."""
        self._previous_status.pop(timer_id, None)
        self._end_announced.discard(timer_id)
