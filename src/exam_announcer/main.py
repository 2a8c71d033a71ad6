"""
Exam Announcer MCP Server
Countdown timers with scheduled spoken announcements for invigilated exams,
exposed as FastMCP tools.
"""

import json
import logging
import os
from pathlib import Path
from typing import Annotated

from dotenv import load_dotenv
from fastmcp import FastMCP
from pydantic import Field

from .announcements import AnnouncementQueue, AnnouncementService
from .clock import CountdownClock
from .config import AnnouncementSettings, SpeechProviderType, load_settings, save_settings
from .errors import ConfigurationError, ExamAnnouncerError
from .models import ScheduleEntry, Timer, TimerMode
from .voice import get_provider_status, get_speech_provider

logger = logging.getLogger("exam-announcer")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

if not load_dotenv():
    logger.debug(".env file not found, using process environment only")

settings_path = Path(
    os.getenv("EXAM_ANNOUNCER_CONFIG", "~/.exam-announcer/settings.yaml")
).expanduser()
logger.debug(f"Settings path: {settings_path}")


def load_startup_settings(path: Path) -> AnnouncementSettings:
    """Load settings, starting with defaults if the file is unusable."""
    try:
        return load_settings(path)
    except ConfigurationError as e:
        logger.error(f"{e}; starting with default settings")
        return load_settings(None)


# Composition root: exactly one queue, service and clock per process
settings = load_startup_settings(settings_path)
announcement_queue = AnnouncementQueue(settings)
service = AnnouncementService(settings, announcement_queue)
clock = CountdownClock()
clock.register_callback(service.on_tick)

mcp = FastMCP(
    name="exam-announcer"
)

logger.debug("Server initialized, registering tools")


def _timer_summary(timer: Timer) -> dict:
    return {
        "id": timer.id,
        "label": timer.label,
        "mode": timer.mode.value,
        "status": timer.status.value,
        "remaining_seconds": timer.remaining_seconds,
        "duration_seconds": timer.duration_seconds,
        "course_code": timer.course_code,
        "program": timer.program,
    }


def _register_timer(timer_kwargs: dict, duration_seconds: int, start: bool) -> Timer:
    clock_timer = clock.create_timer(duration_seconds, timer_kwargs.get("label", ""))
    timer = service.add_timer(
        Timer(
            id=clock_timer.id,
            duration_seconds=duration_seconds,
            remaining_seconds=duration_seconds,
            **timer_kwargs,
        )
    )
    if start:
        clock.start_timer(timer.id)
        clock.start()
    return timer


# ----------------------------------------------------------------------
# Timers
# ----------------------------------------------------------------------


@mcp.tool
async def create_exam_timer(
    program: Annotated[str, Field(description="Programme name spoken in announcements")],
    duration_minutes: Annotated[int, Field(description="Exam length in minutes", ge=1)],
    course_code: Annotated[str, Field(description="Course code, e.g. GEOM2001")] = "",
    student_count: Annotated[int | None, Field(description="Number of candidates")] = None,
    start_immediately: Annotated[bool, Field(description="Start the countdown now")] = False,
) -> str:
    """Create an exam timer seeded with the default announcement schedule."""
    timer = _register_timer(
        {
            "label": course_code or program,
            "mode": TimerMode.EXAM,
            "program": program,
            "course_code": course_code or None,
            "student_count": student_count,
        },
        duration_minutes * 60,
        start_immediately,
    )
    state = "running" if start_immediately else "ready"
    return f"Created exam timer '{timer.id}' for {program} ({duration_minutes} min, {state})."


@mcp.tool
async def create_quiz_timer(
    label: Annotated[str, Field(description="Quiz name")],
    duration_minutes: Annotated[int, Field(description="Quiz length in minutes", ge=1)],
    start_immediately: Annotated[bool, Field(description="Start the countdown now")] = False,
) -> str:
    """Create a quiz timer seeded with the default announcement schedule."""
    timer = _register_timer(
        {"label": label, "mode": TimerMode.QUIZ},
        duration_minutes * 60,
        start_immediately,
    )
    return f"Created quiz timer '{timer.id}' ({duration_minutes} min)."


@mcp.tool
async def start_timer(
    timer_id: Annotated[str, Field(description="Timer id")],
) -> str:
    """Start or resume a timer."""
    try:
        clock.start_timer(timer_id)
    except ExamAnnouncerError as e:
        return f"❌ {e}"
    clock.start()
    return f"▶️ Timer '{timer_id}' running."


@mcp.tool
async def pause_timer(
    timer_id: Annotated[str, Field(description="Timer id")],
) -> str:
    """Pause a running timer."""
    try:
        clock_timer = clock.pause_timer(timer_id)
        timer = service.get_timer(timer_id)
    except ExamAnnouncerError as e:
        return f"❌ {e}"
    timer.status = clock_timer.status
    timer.remaining_seconds = clock_timer.remaining_seconds
    return f"⏸️ Timer '{timer_id}' paused with {clock_timer.remaining_seconds}s left."


@mcp.tool
async def reset_timer(
    timer_id: Annotated[str, Field(description="Timer id")],
) -> str:
    """Reset a timer to its full duration and re-arm its announcements."""
    try:
        clock.reset_timer(timer_id)
        service.reset_timer(timer_id)
    except ExamAnnouncerError as e:
        return f"❌ {e}"
    return f"🔄 Timer '{timer_id}' reset; announcements re-armed."


@mcp.tool
async def add_extra_time(
    timer_id: Annotated[str, Field(description="Timer id")],
    minutes: Annotated[int, Field(description="Minutes to add", ge=1)],
) -> str:
    """Give a session extra time."""
    try:
        clock_timer = clock.add_extra_time(timer_id, minutes * 60)
        timer = service.get_timer(timer_id)
    except ExamAnnouncerError as e:
        return f"❌ {e}"
    timer.duration_seconds = clock_timer.duration_seconds
    return f"⏱️ Added {minutes} min to '{timer_id}'."


@mcp.tool
async def delete_timer(
    timer_id: Annotated[str, Field(description="Timer id")],
) -> str:
    """Delete a timer and its schedule."""
    try:
        clock.delete_timer(timer_id)
        service.remove_timer(timer_id)
    except ExamAnnouncerError as e:
        return f"❌ {e}"
    return f"🗑️ Deleted timer '{timer_id}'."


@mcp.tool
def list_timers() -> str:
    """List all timers with their current state."""
    timers = service.list_timers()
    if not timers:
        return "No timers."
    return json.dumps([_timer_summary(t) for t in timers], indent=2)


# ----------------------------------------------------------------------
# Schedules
# ----------------------------------------------------------------------


@mcp.tool
def get_announcement_schedule(
    timer_id: Annotated[str, Field(description="Timer id")],
) -> str:
    """Show a timer's announcement schedule."""
    try:
        timer = service.get_timer(timer_id)
    except ExamAnnouncerError as e:
        return f"❌ {e}"
    return json.dumps(
        [entry.model_dump() for entry in timer.announcement_schedule],
        indent=2,
    )


@mcp.tool
def add_schedule_entry(
    timer_id: Annotated[str, Field(description="Timer id")],
    trigger_minutes: Annotated[float, Field(description="Minutes remaining when the entry fires", ge=0)],
    message: Annotated[str, Field(description="Template, e.g. '{program}, {remainingWords} remaining.'")],
) -> str:
    """Add an announcement to a timer's schedule."""
    try:
        timer = service.get_timer(timer_id)
    except ExamAnnouncerError as e:
        return f"❌ {e}"
    entry = ScheduleEntry(
        id=f"custom-{len(timer.announcement_schedule) + 1}-{int(trigger_minutes * 60)}",
        trigger_at_seconds=int(trigger_minutes * 60),
        message=message,
    )
    service.update_schedule(timer_id, [*timer.announcement_schedule, entry])
    return f"Added entry '{entry.id}' at {entry.trigger_at_seconds}s."


@mcp.tool
def set_schedule_entry_enabled(
    timer_id: Annotated[str, Field(description="Timer id")],
    entry_id: Annotated[str, Field(description="Schedule entry id")],
    enabled: Annotated[bool, Field(description="Whether the entry may fire")],
) -> str:
    """Enable or disable one schedule entry."""
    try:
        timer = service.get_timer(timer_id)
    except ExamAnnouncerError as e:
        return f"❌ {e}"
    for entry in timer.announcement_schedule:
        if entry.id == entry_id:
            entry.enabled = enabled
            return f"Entry '{entry_id}' {'enabled' if enabled else 'disabled'}."
    return f"❌ No entry '{entry_id}' on timer '{timer_id}'."


@mcp.tool
def remove_schedule_entry(
    timer_id: Annotated[str, Field(description="Timer id")],
    entry_id: Annotated[str, Field(description="Schedule entry id")],
) -> str:
    """Remove an entry from a timer's schedule."""
    try:
        timer = service.get_timer(timer_id)
    except ExamAnnouncerError as e:
        return f"❌ {e}"
    remaining = [e for e in timer.announcement_schedule if e.id != entry_id]
    if len(remaining) == len(timer.announcement_schedule):
        return f"❌ No entry '{entry_id}' on timer '{timer_id}'."
    service.update_schedule(timer_id, remaining)
    return f"Removed entry '{entry_id}'."


# ----------------------------------------------------------------------
# Announcements
# ----------------------------------------------------------------------


@mcp.tool
async def make_announcement(
    text: Annotated[str, Field(description="Announcement text; may use {program}, {courseCode}, ...")],
    target: Annotated[str, Field(description="Timer id whose details fill the template, or 'all'")] = "all",
    speak_now: Annotated[bool, Field(description="Jump the queue (True) or wait behind milestones")] = True,
) -> str:
    """Make a manual announcement."""
    try:
        if speak_now:
            item = service.enqueue_manual(text, target)
        else:
            item = service.queue_manual(text, target)
    except ExamAnnouncerError as e:
        return f"❌ {e}"
    if item is None:
        return "❌ Announcement text is empty."
    return f"📢 Queued: {item.text}"


@mcp.tool
async def quick_announcement(
    index: Annotated[int, Field(description="Index into the quick-pick list", ge=0)],
    target: Annotated[str, Field(description="Timer id or 'all'")] = "all",
) -> str:
    """Speak one of the configured quick-pick messages."""
    try:
        item = service.enqueue_quick_pick(index, target)
    except (ExamAnnouncerError, IndexError) as e:
        return f"❌ {e}"
    return f"📢 Queued: {item.text}" if item else "❌ Quick pick is empty."


@mcp.tool
def list_quick_picks() -> str:
    """List quick-pick messages with their indices."""
    messages = service.settings.quick_pick_messages
    return "\n".join(f"{i}: {m}" for i, m in enumerate(messages)) or "No quick picks."


@mcp.tool
async def draft_announcement(
    intent: Annotated[str, Field(description="What the announcement should say, in a few words")],
    target: Annotated[str, Field(description="Timer id for context, or 'all'")] = "all",
) -> str:
    """Draft announcement text with the configured LLM (not queued)."""
    try:
        return await service.generate_from_intent(intent, target)
    except ExamAnnouncerError as e:
        return f"❌ {e}"


@mcp.tool
def skip_announcement() -> str:
    """Stop the announcement currently being spoken."""
    service.skip()
    return "⏭️ Skipped."


@mcp.tool
def clear_announcements() -> str:
    """Stop speaking and discard all pending announcements."""
    service.clear()
    return "🧹 Announcement queue cleared."


@mcp.tool
def announcement_status() -> str:
    """Show what is being spoken and what is pending."""
    return json.dumps(announcement_queue.status(), indent=2)


# ----------------------------------------------------------------------
# Voice settings
# ----------------------------------------------------------------------


@mcp.tool
def list_voices() -> str:
    """List voices offered by the active speech provider."""
    provider = get_speech_provider(service.settings)
    voices = provider.list_voices()
    if not voices:
        return f"{provider.name}: no voices reported."
    return json.dumps({"provider": provider.name, "voices": voices}, indent=2)


@mcp.tool
def voice_status() -> str:
    """Show which speech providers are usable."""
    return json.dumps(get_provider_status(service.settings), indent=2)


@mcp.tool
def configure_voice(
    provider: Annotated[SpeechProviderType | None, Field(description="Speech provider")] = None,
    voice_id: Annotated[str | None, Field(description="Provider-specific voice id")] = None,
    rate: Annotated[float | None, Field(description="Speech rate (0.5-2.0)", ge=0.5, le=2.0)] = None,
    volume: Annotated[float | None, Field(description="Volume (0.0-1.0)", ge=0.0, le=1.0)] = None,
    announcements_enabled: Annotated[bool | None, Field(description="Master switch")] = None,
) -> str:
    """Update speech settings. Applies from the next announcement."""
    updates = {
        key: value
        for key, value in {
            "tts_provider": provider,
            "tts_voice_id": voice_id,
            "tts_rate": rate,
            "tts_volume": volume,
            "announcements_enabled": announcements_enabled,
        }.items()
        if value is not None
    }
    if not updates:
        return "Nothing to update."
    new_settings = service.settings.model_copy(update=updates)
    service.update_settings(new_settings)
    save_settings(new_settings, settings_path)
    return f"✅ Updated: {', '.join(sorted(updates))}"


def main() -> None:
    """Entry point for the ``exam-announcer`` command."""
    mcp.run()


if __name__ == "__main__":
    main()
