"""
Tests for the AnnouncementService: tick handling and manual announcements.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from exam_announcer.announcements.enhancer import TextEnhancer
from exam_announcer.announcements.service import ALL_TIMERS, AnnouncementService
from exam_announcer.config import AnnouncementSettings
from exam_announcer.errors import TimerNotFoundError
from exam_announcer.models import (
    PRIORITY_MANUAL,
    PRIORITY_MILESTONE,
    Timer,
    TimerMode,
    TimerStatus,
    TimerTick,
)


def _service(settings: AnnouncementSettings | None = None, enhancer=None):
    queue = MagicMock()
    service = AnnouncementService(settings or AnnouncementSettings(), queue, enhancer=enhancer)
    return service, queue


def _queued(queue: MagicMock) -> list:
    return [call.args[0] for call in queue.enqueue.call_args_list]


def _quiz(timer_id: str = "q1") -> Timer:
    return Timer(
        id=timer_id,
        label="Stats Quiz",
        mode=TimerMode.QUIZ,
        duration_seconds=1200,
        remaining_seconds=1200,
    )


# ---------------------------------------------------------------------------
# Timers
# ---------------------------------------------------------------------------


class TestTimers:
    def test_add_timer_seeds_default_schedule(self) -> None:
        service, _ = _service()
        timer = service.add_timer(_quiz())
        assert len(timer.announcement_schedule) == 7
        assert all(e.id.startswith("default-") for e in timer.announcement_schedule)

    def test_add_timer_keeps_existing_schedule(self, exam_timer: Timer) -> None:
        service, _ = _service()
        service.add_timer(exam_timer)
        assert [e.id for e in exam_timer.announcement_schedule] == ["five"]

    def test_seeded_schedules_are_independent(self) -> None:
        service, _ = _service()
        first = service.add_timer(_quiz("a"))
        second = service.add_timer(_quiz("b"))
        first.announcement_schedule[0].enabled = False
        assert second.announcement_schedule[0].enabled is True

    def test_unknown_timer_raises(self) -> None:
        service, _ = _service()
        with pytest.raises(TimerNotFoundError, match="nope"):
            service.get_timer("nope")
        with pytest.raises(TimerNotFoundError):
            service.remove_timer("nope")

    def test_reset_rearms(self, exam_timer: Timer) -> None:
        service, _ = _service()
        service.add_timer(exam_timer)
        exam_timer.announcement_schedule[0].has_been_spoken = True
        exam_timer.remaining_seconds = 10
        exam_timer.status = TimerStatus.ENDED

        service.reset_timer("t1")

        assert exam_timer.announcement_schedule[0].has_been_spoken is False
        assert exam_timer.remaining_seconds == exam_timer.duration_seconds
        assert exam_timer.status == TimerStatus.IDLE

    def test_update_settings_propagates(self) -> None:
        service, queue = _service()
        new = AnnouncementSettings(tts_rate=1.2)
        service.update_settings(new)
        assert service.settings is new
        queue.set_settings.assert_called_with(new)


# ---------------------------------------------------------------------------
# Tick handling
# ---------------------------------------------------------------------------


class TestOnTick:
    @pytest.mark.asyncio
    async def test_due_entry_enqueued(self, exam_timer: Timer) -> None:
        service, queue = _service()
        service.add_timer(exam_timer)

        due = service.on_tick(TimerTick(timer_id="t1", remaining_seconds=300, status=TimerStatus.RUNNING))
        await service.drain_pending_tasks()

        assert len(due) == 1
        [item] = _queued(queue)
        assert item.id == "t1-five"
        assert item.text == "BSc Geomatics, five minutes left"
        assert item.priority == PRIORITY_MILESTONE

    @pytest.mark.asyncio
    async def test_text_is_enhanced_before_enqueue(self, exam_timer: Timer) -> None:
        enhancer = MagicMock(spec=TextEnhancer)
        enhancer.enhance = AsyncMock(return_value="Five minutes to go, Geomatics.")
        service, queue = _service(enhancer=enhancer)
        service.add_timer(exam_timer)

        service.on_tick(TimerTick(timer_id="t1", remaining_seconds=299, status=TimerStatus.RUNNING))
        await service.drain_pending_tasks()

        enhancer.enhance.assert_awaited_once_with("BSc Geomatics, five minutes left")
        assert _queued(queue)[0].text == "Five minutes to go, Geomatics."

    @pytest.mark.asyncio
    async def test_unknown_timer_ignored(self) -> None:
        service, queue = _service()
        due = service.on_tick(TimerTick(timer_id="ghost", remaining_seconds=5, status=TimerStatus.RUNNING))
        await service.drain_pending_tasks()
        assert due == []
        queue.enqueue.assert_not_called()

    @pytest.mark.asyncio
    async def test_ticks_update_timer_state(self, exam_timer: Timer) -> None:
        service, _ = _service()
        service.add_timer(exam_timer)
        service.on_tick(TimerTick(timer_id="t1", remaining_seconds=1000, status=TimerStatus.PAUSED))
        assert exam_timer.remaining_seconds == 1000
        assert exam_timer.status == TimerStatus.PAUSED


# ---------------------------------------------------------------------------
# Manual announcements
# ---------------------------------------------------------------------------


class TestManual:
    def test_all_timers_text_unchanged(self) -> None:
        service, queue = _service()
        item = service.enqueue_manual("Please remain seated.", ALL_TIMERS)

        assert item.text == "Please remain seated."
        assert item.priority == PRIORITY_MANUAL
        assert item.id.startswith("manual-")
        queue.enqueue.assert_called_once_with(item)

    def test_exam_target_prefixed_with_course_code(self, exam_timer: Timer) -> None:
        service, _ = _service()
        service.add_timer(exam_timer)
        item = service.enqueue_manual("{remainingWords} remaining.", "t1")
        assert item.text == "GEOM2001: 90 minutes remaining."

    def test_quiz_target_prefixed_with_label(self) -> None:
        service, _ = _service()
        service.add_timer(_quiz())
        item = service.enqueue_manual("Eyes on your own paper.", "q1")
        assert item.text == "Stats Quiz: Eyes on your own paper."

    def test_blank_text_ignored(self) -> None:
        service, queue = _service()
        assert service.enqueue_manual("   ") is None
        queue.enqueue.assert_not_called()

    def test_unknown_target_raises(self) -> None:
        service, queue = _service()
        with pytest.raises(TimerNotFoundError):
            service.enqueue_manual("Hello", "missing")
        queue.enqueue.assert_not_called()

    def test_ids_unique(self) -> None:
        service, _ = _service()
        first = service.enqueue_manual("Same text")
        second = service.enqueue_manual("Same text")
        assert first.id != second.id

    def test_queue_manual_uses_milestone_priority(self) -> None:
        service, _ = _service()
        assert service.queue_manual("Water is available.").priority == PRIORITY_MILESTONE

    def test_quick_pick(self) -> None:
        service, _ = _service()
        item = service.enqueue_quick_pick(1)
        assert item.text == "Please remain seated."
        assert item.priority == PRIORITY_MANUAL

    def test_quick_pick_out_of_range(self) -> None:
        service, _ = _service()
        with pytest.raises(IndexError):
            service.enqueue_quick_pick(99)

    @pytest.mark.asyncio
    async def test_generate_from_intent_includes_context(self, exam_timer: Timer) -> None:
        enhancer = MagicMock(spec=TextEnhancer)
        enhancer.enhance = AsyncMock(return_value="Please check your candidate number.")
        service, queue = _service(enhancer=enhancer)
        service.add_timer(exam_timer)

        draft = await service.generate_from_intent("check candidate numbers", "t1")

        assert draft == "Please check your candidate number."
        prompt = enhancer.enhance.call_args.args[0]
        assert "check candidate numbers" in prompt
        assert "GEOM2001" in prompt
        assert "90 mins remaining" in prompt
        queue.enqueue.assert_not_called()


# ---------------------------------------------------------------------------
# Queue passthrough
# ---------------------------------------------------------------------------


class TestPassthrough:
    def test_skip_and_clear(self) -> None:
        service, queue = _service()
        service.skip()
        service.clear()
        queue.skip.assert_called_once()
        queue.clear.assert_called_once()

    @pytest.mark.asyncio
    async def test_shutdown_clears_queue(self) -> None:
        service, queue = _service()
        await service.shutdown()
        queue.clear.assert_called_once()
