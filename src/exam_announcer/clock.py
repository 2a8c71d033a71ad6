"""
Countdown clock that pushes ticks to subscribers.

The clock keeps wall-clock anchored countdowns: while a timer runs, its
remaining time is derived from ``end_time_unix`` rather than decremented,
so a delayed loop iteration never makes a timer drift. Roughly once per
second every running timer produces a TimerTick that is delivered to the
registered callbacks. A timer that reaches zero is reported as Ended on
that same tick.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

import shortuuid

from .errors import TimerNotFoundError
from .models import TimerStatus, TimerTick

logger = logging.getLogger("exam-announcer.clock")

DEFAULT_TICK_INTERVAL = 1.0

TickCallback = Callable[[TimerTick], None]


@dataclass
class ClockTimer:
    """Clock-side state of one countdown."""

    id: str
    label: str
    duration_seconds: int
    remaining_seconds: int
    status: TimerStatus = TimerStatus.IDLE
    end_time_unix: Optional[float] = None

    def to_tick(self) -> TimerTick:
        return TimerTick(
            timer_id=self.id,
            remaining_seconds=self.remaining_seconds,
            status=self.status,
            end_time_unix=int(self.end_time_unix) if self.end_time_unix is not None else None,
        )


class CountdownClock:
    """Drives countdown timers and publishes their ticks.

    Args:
        tick_interval: Seconds between ticks.
        time_source: Returns the current epoch time; injectable for tests.
    """

    def __init__(
        self,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        time_source: Callable[[], float] = time.time,
    ) -> None:
        self.tick_interval = tick_interval
        self._now = time_source
        self._timers: dict[str, ClockTimer] = {}
        self._callbacks: list[TickCallback] = []
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def register_callback(self, callback: TickCallback) -> None:
        """Register a callback invoked with every TimerTick."""
        self._callbacks.append(callback)

    def _notify(self, tick: TimerTick) -> None:
        for callback in self._callbacks:
            try:
                callback(tick)
            except Exception as e:
                logger.error("Error in tick callback: %s", e, exc_info=True)

    # ------------------------------------------------------------------
    # Timer control
    # ------------------------------------------------------------------

    def _get(self, timer_id: str) -> ClockTimer:
        try:
            return self._timers[timer_id]
        except KeyError:
            raise TimerNotFoundError(timer_id) from None

    def get_timer(self, timer_id: str) -> ClockTimer:
        return self._get(timer_id)

    def create_timer(self, duration_seconds: int, label: str = "") -> ClockTimer:
        timer = ClockTimer(
            id=shortuuid.uuid(),
            label=label,
            duration_seconds=duration_seconds,
            remaining_seconds=duration_seconds,
        )
        self._timers[timer.id] = timer
        logger.info("Created timer '%s' (%s, %ds)", timer.id, label, duration_seconds)
        return timer

    def start_timer(self, timer_id: str) -> ClockTimer:
        timer = self._get(timer_id)
        if timer.status in (TimerStatus.RUNNING, TimerStatus.ENDED):
            return timer
        timer.end_time_unix = self._now() + timer.remaining_seconds
        timer.status = TimerStatus.RUNNING
        logger.info("Started timer '%s' with %ds remaining", timer_id, timer.remaining_seconds)
        return timer

    def pause_timer(self, timer_id: str) -> ClockTimer:
        timer = self._get(timer_id)
        if timer.status != TimerStatus.RUNNING:
            return timer
        timer.remaining_seconds = self._remaining(timer)
        timer.status = TimerStatus.PAUSED
        timer.end_time_unix = None
        logger.info("Paused timer '%s' at %ds", timer_id, timer.remaining_seconds)
        return timer

    def reset_timer(self, timer_id: str) -> ClockTimer:
        timer = self._get(timer_id)
        timer.remaining_seconds = timer.duration_seconds
        timer.status = TimerStatus.IDLE
        timer.end_time_unix = None
        logger.info("Reset timer '%s'", timer_id)
        return timer

    def add_extra_time(self, timer_id: str, extra_seconds: int) -> ClockTimer:
        """Extend a timer. An ended timer resumes running."""
        timer = self._get(timer_id)
        if timer.status == TimerStatus.RUNNING:
            timer.remaining_seconds = self._remaining(timer)
        timer.remaining_seconds += extra_seconds
        timer.duration_seconds += extra_seconds
        if timer.status in (TimerStatus.RUNNING, TimerStatus.ENDED):
            timer.status = TimerStatus.RUNNING
            timer.end_time_unix = self._now() + timer.remaining_seconds
        logger.info("Added %ds to timer '%s'", extra_seconds, timer_id)
        return timer

    def delete_timer(self, timer_id: str) -> None:
        self._get(timer_id)
        del self._timers[timer_id]

    def list_timers(self) -> list[ClockTimer]:
        return list(self._timers.values())

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    def _remaining(self, timer: ClockTimer) -> int:
        if timer.end_time_unix is None:
            return timer.remaining_seconds
        return max(0, math.ceil(timer.end_time_unix - self._now()))

    def tick_once(self) -> list[TimerTick]:
        """Advance every running timer and publish one tick for each."""
        ticks: list[TimerTick] = []
        for timer in list(self._timers.values()):
            if timer.status != TimerStatus.RUNNING:
                continue
            timer.remaining_seconds = self._remaining(timer)
            if timer.remaining_seconds == 0:
                timer.status = TimerStatus.ENDED
                logger.info("Timer '%s' ended", timer.id)
            tick = timer.to_tick()
            ticks.append(tick)
            self._notify(tick)
        return ticks

    async def run(self) -> None:
        """Tick forever. Cancel the task to stop."""
        logger.info("Countdown clock running (interval=%.1fs)", self.tick_interval)
        while True:
            self.tick_once()
            await asyncio.sleep(self.tick_interval)

    def start(self) -> asyncio.Task:
        """Start ticking on the running event loop (idempotent)."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Countdown clock stopped")
