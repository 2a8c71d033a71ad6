"""
Tests for the ScheduleEvaluator and schedule helpers.
"""

from exam_announcer.announcements.schedule import (
    ScheduleEvaluator,
    clone_default_schedule,
    is_within_window,
)
from exam_announcer.config import DEFAULT_ANNOUNCEMENT_SCHEDULE, AnnouncementSettings
from exam_announcer.models import (
    PRIORITY_END_OF_SESSION,
    PRIORITY_MILESTONE,
    ScheduleEntry,
    Timer,
    TimerMode,
    TimerStatus,
    TimerTick,
)


def _timer(timer_id: str = "t1", entries: list[ScheduleEntry] | None = None) -> Timer:
    return Timer(
        id=timer_id,
        label="Quiz",
        mode=TimerMode.EXAM,
        duration_seconds=3600,
        remaining_seconds=3600,
        status=TimerStatus.RUNNING,
        program="BSc Geomatics",
        announcement_schedule=entries
        if entries is not None
        else [ScheduleEntry(id="ten", trigger_at_seconds=600, message="{program}, ten minutes")],
    )


def _tick(timer: Timer, remaining: int, status: TimerStatus = TimerStatus.RUNNING) -> TimerTick:
    return TimerTick(timer_id=timer.id, remaining_seconds=remaining, status=status)


def _run(evaluator: ScheduleEvaluator, timer: Timer, values: list[int]) -> list:
    due = []
    for remaining in values:
        due.extend(evaluator.apply_tick(timer, _tick(timer, remaining)))
    return due


# ---------------------------------------------------------------------------
# Window
# ---------------------------------------------------------------------------


class TestWindow:
    def test_bounds_inclusive(self) -> None:
        entry = ScheduleEntry(id="e", trigger_at_seconds=600, message="m")
        assert is_within_window(entry, 600)
        assert is_within_window(entry, 597)
        assert not is_within_window(entry, 601)
        assert not is_within_window(entry, 596)

    def test_fires_anywhere_in_window(self) -> None:
        for remaining in (600, 599, 598, 597):
            evaluator = ScheduleEvaluator(AnnouncementSettings)
            timer = _timer()
            due = _run(evaluator, timer, [remaining])
            assert len(due) == 1, remaining

    def test_fires_exactly_once_across_ticks(self) -> None:
        evaluator = ScheduleEvaluator(AnnouncementSettings)
        timer = _timer()
        due = _run(evaluator, timer, [602, 599, 596, 593])
        assert len(due) == 1
        assert due[0].text == "BSc Geomatics, ten minutes"
        assert timer.announcement_schedule[0].has_been_spoken is True

    def test_skipped_window_never_fires(self) -> None:
        evaluator = ScheduleEvaluator(AnnouncementSettings)
        timer = _timer()
        assert _run(evaluator, timer, [610, 605]) == []
        assert timer.announcement_schedule[0].has_been_spoken is False


# ---------------------------------------------------------------------------
# Evaluation rules
# ---------------------------------------------------------------------------


class TestEvaluate:
    def test_due_item_fields(self) -> None:
        evaluator = ScheduleEvaluator(AnnouncementSettings)
        timer = _timer()
        [item] = _run(evaluator, timer, [600])
        assert item.announcement_id == "t1-ten"
        assert item.timer_id == "t1"
        assert item.priority == PRIORITY_MILESTONE

    def test_paused_timer_does_not_fire(self) -> None:
        evaluator = ScheduleEvaluator(AnnouncementSettings)
        timer = _timer()
        due = evaluator.apply_tick(timer, _tick(timer, 600, TimerStatus.PAUSED))
        assert due == []
        assert timer.status == TimerStatus.PAUSED

    def test_disabled_entry_skipped(self) -> None:
        evaluator = ScheduleEvaluator(AnnouncementSettings)
        timer = _timer()
        timer.announcement_schedule[0].enabled = False
        assert _run(evaluator, timer, [600]) == []

    def test_master_switch_off(self) -> None:
        settings = AnnouncementSettings(announcements_enabled=False)
        evaluator = ScheduleEvaluator(lambda: settings)
        timer = _timer()
        assert _run(evaluator, timer, [600]) == []
        assert timer.announcement_schedule[0].has_been_spoken is False

    def test_settings_read_on_every_tick(self) -> None:
        current = {"settings": AnnouncementSettings(announcements_enabled=False)}
        evaluator = ScheduleEvaluator(lambda: current["settings"])
        timer = _timer()
        assert _run(evaluator, timer, [600]) == []
        current["settings"] = AnnouncementSettings()
        assert len(_run(evaluator, timer, [599])) == 1

    def test_multiple_entries_in_schedule_order(self) -> None:
        entries = [
            ScheduleEntry(id="a", trigger_at_seconds=300, message="A"),
            ScheduleEntry(id="b", trigger_at_seconds=299, message="B"),
        ]
        evaluator = ScheduleEvaluator(AnnouncementSettings)
        due = _run(evaluator, _timer(entries=entries), [298])
        assert [d.text for d in due] == ["A", "B"]


# ---------------------------------------------------------------------------
# End of session
# ---------------------------------------------------------------------------


class TestEndOfSession:
    def _end_entry(self) -> ScheduleEntry:
        return ScheduleEntry(id="end", trigger_at_seconds=0, message="Time is up for {program}.")

    def test_running_to_ended_emits_end_message(self) -> None:
        evaluator = ScheduleEvaluator(AnnouncementSettings)
        timer = _timer(entries=[])
        _run(evaluator, timer, [1])
        due = evaluator.apply_tick(timer, _tick(timer, 0, TimerStatus.ENDED))
        assert len(due) == 1
        assert due[0].announcement_id == "t1-sys-end"
        assert due[0].priority == PRIORITY_END_OF_SESSION
        assert due[0].text == "Time's up, BSc Geomatics. Pens down."

    def test_zero_entry_and_end_message_both_fire(self) -> None:
        evaluator = ScheduleEvaluator(AnnouncementSettings)
        timer = _timer(entries=[self._end_entry()])
        _run(evaluator, timer, [2])
        due = evaluator.apply_tick(timer, _tick(timer, 0, TimerStatus.ENDED))
        assert [d.announcement_id for d in due] == ["t1-end", "t1-sys-end"]
        assert all(d.priority == PRIORITY_END_OF_SESSION for d in due)

    def test_consolidation_skips_end_message(self) -> None:
        settings = AnnouncementSettings(consolidate_end_announcements=True)
        evaluator = ScheduleEvaluator(lambda: settings)
        timer = _timer(entries=[self._end_entry()])
        _run(evaluator, timer, [2])
        due = evaluator.apply_tick(timer, _tick(timer, 0, TimerStatus.ENDED))
        assert [d.announcement_id for d in due] == ["t1-end"]

    def test_ended_without_running_tick_is_silent(self) -> None:
        evaluator = ScheduleEvaluator(AnnouncementSettings)
        timer = _timer(entries=[self._end_entry()])
        assert evaluator.apply_tick(timer, _tick(timer, 0, TimerStatus.ENDED)) == []

    def test_end_message_only_once(self) -> None:
        evaluator = ScheduleEvaluator(AnnouncementSettings)
        timer = _timer(entries=[])
        _run(evaluator, timer, [1])
        evaluator.apply_tick(timer, _tick(timer, 0, TimerStatus.ENDED))
        assert evaluator.apply_tick(timer, _tick(timer, 0, TimerStatus.ENDED)) == []


# ---------------------------------------------------------------------------
# Reset and cloning
# ---------------------------------------------------------------------------


class TestReset:
    def test_reset_rearms_only_that_timer(self) -> None:
        evaluator = ScheduleEvaluator(AnnouncementSettings)
        first = _timer("t1")
        second = _timer("t2")
        _run(evaluator, first, [600])
        _run(evaluator, second, [600])

        evaluator.reset(first)

        assert first.announcement_schedule[0].has_been_spoken is False
        assert second.announcement_schedule[0].has_been_spoken is True

    def test_rearmed_entry_fires_again(self) -> None:
        evaluator = ScheduleEvaluator(AnnouncementSettings)
        timer = _timer()
        _run(evaluator, timer, [600])
        evaluator.reset(timer)
        assert len(_run(evaluator, timer, [599])) == 1


class TestCloneDefaultSchedule:
    def test_ids_suffixed_and_unspoken(self) -> None:
        source = [e.model_copy(update={"has_been_spoken": True}) for e in DEFAULT_ANNOUNCEMENT_SCHEDULE]
        clones = clone_default_schedule(source, suffix="abc")
        assert [c.id for c in clones] == [f"{e.id}-abc" for e in DEFAULT_ANNOUNCEMENT_SCHEDULE]
        assert not any(c.has_been_spoken for c in clones)

    def test_clones_are_independent(self) -> None:
        first = clone_default_schedule(DEFAULT_ANNOUNCEMENT_SCHEDULE)
        second = clone_default_schedule(DEFAULT_ANNOUNCEMENT_SCHEDULE)
        first[0].enabled = False
        assert second[0].enabled is True
        assert DEFAULT_ANNOUNCEMENT_SCHEDULE[0].enabled is True
        assert first[0].id != second[0].id
