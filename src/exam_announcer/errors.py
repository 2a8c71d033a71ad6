"""
Exceptions raised by the exam announcer's composition layer.

Nothing on the tick or speech delivery path raises these; they are only
surfaced to the control surface (MCP tools, callers of the service).
"""


class ExamAnnouncerError(Exception):
    """Base exception for exam announcer errors."""
    pass


class TimerNotFoundError(ExamAnnouncerError):
    """Raised when an operation references an unknown timer id."""

    def __init__(self, timer_id: str) -> None:
        self.timer_id = timer_id
        super().__init__(f"Timer '{timer_id}' not found")


class ConfigurationError(ExamAnnouncerError):
    """Raised when the settings file cannot be read or validated."""
    pass
