"""
Announcement pipeline.

Turns timer state into spoken announcements:
- templates: placeholder resolution ({program}, {remainingWords}, ...)
- schedule: per-tick evaluation of each timer's announcement schedule
- enhancer: optional LLM rewriting (Ollama or Anthropic), best-effort
- queue: serial, priority-ordered delivery to a single voice
- service: wires the above to the clock and to manual announcements
"""

from .enhancer import AnthropicBackend, OllamaBackend, TextEnhancer
from .queue import AnnouncementQueue
from .schedule import ScheduleEvaluator, clone_default_schedule
from .service import ALL_TIMERS, AnnouncementService
from .templates import minutes_in_words, resolve_template

__all__ = [
    # Service
    "AnnouncementService",
    "ALL_TIMERS",
    # Queue
    "AnnouncementQueue",
    # Scheduling
    "ScheduleEvaluator",
    "clone_default_schedule",
    # Templates
    "resolve_template",
    "minutes_in_words",
    # Enhancement
    "TextEnhancer",
    "OllamaBackend",
    "AnthropicBackend",
]
