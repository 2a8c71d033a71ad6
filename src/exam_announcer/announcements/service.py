"""
Announcement service: ties the pieces together.

The service owns the timers' announcement state on the consumer side of
the clock. For every tick it runs the ScheduleEvaluator synchronously,
then hands each due announcement to a detached task that enhances the
text (network-bound, best-effort) and enqueues it. The tick handler
therefore never waits on an LLM or a speech backend, and a failure in
one timer's pipeline cannot affect another's.

Manual announcements from the invigilator bypass schedules entirely and
are queued at the highest priority.

Usage:
    service = AnnouncementService(settings, queue)
    clock.register_callback(service.on_tick)
    service.add_timer(timer)
    service.enqueue_manual("Please remain seated.", "all")
"""

import asyncio
import logging
from typing import Optional

import shortuuid

from ..config import AnnouncementSettings
from ..errors import TimerNotFoundError
from ..models import (
    PRIORITY_MANUAL,
    PRIORITY_MILESTONE,
    DueAnnouncement,
    QueuedAnnouncement,
    ScheduleEntry,
    Timer,
    TimerStatus,
    TimerTick,
)
from .enhancer import TextEnhancer
from .queue import AnnouncementQueue
from .schedule import ScheduleEvaluator, clone_default_schedule
from .templates import resolve_template

logger = logging.getLogger("exam-announcer.announcements.service")

ALL_TIMERS = "all"


class AnnouncementService:
    """Schedules, resolves, enhances and queues announcements for all timers.

    Args:
        settings: Initial announcement settings.
        queue: The application's single AnnouncementQueue.
        enhancer: Text enhancer. Built from settings if None.
    """

    def __init__(
        self,
        settings: AnnouncementSettings,
        queue: AnnouncementQueue,
        enhancer: Optional[TextEnhancer] = None,
    ) -> None:
        self._settings = settings
        self.queue = queue
        self.enhancer = enhancer or TextEnhancer(settings)
        self.evaluator = ScheduleEvaluator(lambda: self._settings)
        self._timers: dict[str, Timer] = {}
        self._tasks: set[asyncio.Task] = set()
        self.queue.set_settings(settings)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def settings(self) -> AnnouncementSettings:
        return self._settings

    def update_settings(self, settings: AnnouncementSettings) -> None:
        """Apply new settings to every component."""
        self._settings = settings
        self.queue.set_settings(settings)
        self.enhancer.update_settings(settings)
        logger.info(
            "Settings updated (announcements=%s, provider=%s, llm=%s)",
            settings.announcements_enabled,
            settings.tts_provider.value,
            settings.llm_enabled,
        )

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def add_timer(self, timer: Timer, seed_schedule: bool = True) -> Timer:
        """Start tracking ``timer``.

        If ``seed_schedule`` is True and the timer has no schedule, it is
        seeded with a copy of the default schedule from settings.
        """
        if seed_schedule and not timer.announcement_schedule:
            timer.announcement_schedule = clone_default_schedule(
                self._settings.default_announcement_schedule
            )
        self._timers[timer.id] = timer
        logger.debug(
            "Tracking timer '%s' with %d schedule entries",
            timer.id,
            len(timer.announcement_schedule),
        )
        return timer

    def remove_timer(self, timer_id: str) -> None:
        if self._timers.pop(timer_id, None) is None:
            raise TimerNotFoundError(timer_id)
        self.evaluator.forget(timer_id)

    def get_timer(self, timer_id: str) -> Timer:
        try:
            return self._timers[timer_id]
        except KeyError:
            raise TimerNotFoundError(timer_id) from None

    def list_timers(self) -> list[Timer]:
        return list(self._timers.values())

    def reset_timer(self, timer_id: str) -> None:
        """Re-arm the schedule of a timer that has been reset to Idle."""
        timer = self.get_timer(timer_id)
        timer.status = TimerStatus.IDLE
        timer.remaining_seconds = timer.duration_seconds
        timer.end_time_unix = None
        self.evaluator.reset(timer)

    def update_schedule(self, timer_id: str, schedule: list[ScheduleEntry]) -> None:
        """Replace a timer's schedule after a user edit."""
        timer = self.get_timer(timer_id)
        timer.announcement_schedule = list(schedule)

    # ------------------------------------------------------------------
    # Tick handling
    # ------------------------------------------------------------------

    def on_tick(self, tick: TimerTick) -> list[DueAnnouncement]:
        """Handle a clock tick.

        Synchronous: evaluates the schedule and spawns one detached task
        per due announcement. Ticks for unknown timers are ignored.

        Returns:
            The announcements that became due on this tick.
        """
        timer = self._timers.get(tick.timer_id)
        if timer is None:
            logger.debug("Ignoring tick for unknown timer '%s'", tick.timer_id)
            return []

        due = self.evaluator.apply_tick(timer, tick)
        for item in due:
            self._spawn(self._enhance_and_enqueue(item))
        return due

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Announcement task failed: %s", exc)

    async def _enhance_and_enqueue(self, item: DueAnnouncement) -> None:
        text = item.text
        if item.enhance:
            text = await self.enhancer.enhance(text)
        self.queue.enqueue(item.to_queued(text))

    async def drain_pending_tasks(self) -> None:
        """Wait for all in-flight enhancement tasks to enqueue their items."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Manual announcements
    # ------------------------------------------------------------------

    def _resolve_manual(self, text: str, target_timer_id: str) -> str:
        if target_timer_id == ALL_TIMERS:
            return text
        timer = self.get_timer(target_timer_id)
        prefix = timer.course_code if timer.is_exam and timer.course_code else timer.label
        if prefix:
            text = f"{prefix}: {text}"
        return resolve_template(text, timer)

    def enqueue_manual(
        self,
        text: str,
        target_timer_id: str = ALL_TIMERS,
        priority: int = PRIORITY_MANUAL,
    ) -> Optional[QueuedAnnouncement]:
        """Queue an invigilator's announcement, bypassing schedules.

        Args:
            text: Message, optionally with template placeholders.
            target_timer_id: Timer whose state resolves the template, or
                             ``"all"`` to speak the text as typed.
            priority: Queue priority. Defaults to immediate (0).

        Returns:
            The queued announcement, or None if ``text`` is blank.

        Raises:
            TimerNotFoundError: If ``target_timer_id`` is unknown.
        """
        if not text.strip():
            return None

        resolved = self._resolve_manual(text.strip(), target_timer_id)
        item = QueuedAnnouncement(
            id=f"manual-{shortuuid.uuid()}",
            text=resolved,
            priority=priority,
        )
        self.queue.enqueue(item)
        logger.info("Manual announcement queued for %s: %r", target_timer_id, resolved)
        return item

    def queue_manual(
        self,
        text: str,
        target_timer_id: str = ALL_TIMERS,
    ) -> Optional[QueuedAnnouncement]:
        """Queue a manual announcement behind urgent ones (milestone priority)."""
        return self.enqueue_manual(text, target_timer_id, priority=PRIORITY_MILESTONE)

    def enqueue_quick_pick(
        self,
        index: int,
        target_timer_id: str = ALL_TIMERS,
    ) -> Optional[QueuedAnnouncement]:
        """Speak one of the configured quick-pick messages immediately.

        Raises:
            IndexError: If ``index`` is out of range.
        """
        messages = self._settings.quick_pick_messages
        if not 0 <= index < len(messages):
            raise IndexError(f"Quick pick {index} out of range (0-{len(messages) - 1})")
        return self.enqueue_manual(messages[index], target_timer_id)

    async def generate_from_intent(
        self,
        intent: str,
        target_timer_id: str = ALL_TIMERS,
    ) -> str:
        """Draft an announcement from a short intent using the enhancer.

        The draft is returned for review, not queued. With enhancement
        disabled the intent prompt comes back unchanged.
        """
        timers = self.list_timers()
        if target_timer_id != ALL_TIMERS:
            context_timer: Optional[Timer] = self.get_timer(target_timer_id)
        else:
            context_timer = timers[0] if timers else None

        context = ""
        if context_timer is not None:
            name = context_timer.course_code if context_timer.is_exam else context_timer.label
            context = (
                f"Context: {name} · "
                f"{context_timer.remaining_seconds // 60} mins remaining\n"
            )
        return await self.enhancer.enhance(f"[Intent: {intent}]. {context}")

    # ------------------------------------------------------------------
    # Queue passthrough
    # ------------------------------------------------------------------

    def skip(self) -> None:
        self.queue.skip()

    def clear(self) -> None:
        self.queue.clear()

    async def shutdown(self) -> None:
        """Cancel in-flight enhancement tasks and silence the queue."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self.queue.clear()
        logger.info("Announcement service shut down")
