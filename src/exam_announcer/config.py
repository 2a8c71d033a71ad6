"""
Announcement settings.

Settings live in a ``settings.yaml`` file. On first run the default
settings are written out so an invigilator can edit them by hand.
Secrets (API keys) are never written to the file; they are overlaid from
the environment at load time:

  - ``OPENAI_API_KEY``
  - ``ELEVENLABS_API_KEY``
  - ``ANTHROPIC_API_KEY``
"""

import logging
import os
import time
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .models import ScheduleEntry

logger = logging.getLogger("exam-announcer.config")

_SECRET_ENV_VARS: dict[str, str] = {
    "openai_api_key": "OPENAI_API_KEY",
    "elevenlabs_api_key": "ELEVENLABS_API_KEY",
    "anthropic_api_key": "ANTHROPIC_API_KEY",
}


class SpeechProviderType(str, Enum):
    """Selectable speech output backends."""

    SYSTEM = "system"
    EDGE_TTS = "edge-tts"
    OPENAI = "openai"
    ELEVENLABS = "elevenlabs"
    CUSTOM_API = "custom-api"


class LLMProviderType(str, Enum):
    """Generative text backends used to rewrite announcements."""

    OLLAMA = "ollama"
    ANTHROPIC = "anthropic"


DEFAULT_ANNOUNCEMENT_SCHEDULE: list[ScheduleEntry] = [
    ScheduleEntry(
        id="default-60min",
        trigger_at_seconds=3600,
        message="{program}, you have one hour remaining.",
    ),
    ScheduleEntry(
        id="default-30min",
        trigger_at_seconds=1800,
        message="{program}, you have thirty minutes remaining.",
    ),
    ScheduleEntry(
        id="default-15min",
        trigger_at_seconds=900,
        message="{program}, you have fifteen minutes remaining.",
    ),
    ScheduleEntry(
        id="default-10min",
        trigger_at_seconds=600,
        message=(
            "{program}, you have ten minutes remaining. "
            "Please ensure your student ID is visible on your desk."
        ),
    ),
    ScheduleEntry(
        id="default-5min",
        trigger_at_seconds=300,
        message=(
            "{program}, you have five minutes remaining. "
            "Please put your scannables on top of your question papers."
        ),
    ),
    ScheduleEntry(
        id="default-1min",
        trigger_at_seconds=60,
        message="{program}, you have one minute remaining.",
    ),
    ScheduleEntry(
        id="default-end",
        trigger_at_seconds=0,
        message=(
            "Time is up for {program}. Stop writing. Put your pens down. "
            "Do not turn your papers over."
        ),
    ),
]

DEFAULT_QUICK_PICK_MESSAGES: list[str] = [
    "All papers collected.",
    "Please remain seated.",
    "Check your name is on your paper.",
    "Pens down now.",
]


class AnnouncementSettings(BaseModel):
    """Configuration surface consumed by the announcement subsystem."""

    announcements_enabled: bool = Field(
        default=True,
        description="Master switch for scheduled announcements",
    )

    # --- Speech delivery ---
    tts_provider: SpeechProviderType = Field(
        default=SpeechProviderType.SYSTEM,
        description="Speech output backend",
    )
    tts_voice_id: Optional[str] = Field(
        default=None,
        description="Provider-specific voice identifier",
    )
    tts_rate: float = Field(default=0.9, ge=0.5, le=2.0, description="Speech rate multiplier")
    tts_pitch: float = Field(default=1.0, ge=0.0, le=2.0, description="Pitch multiplier")
    tts_volume: float = Field(default=1.0, ge=0.0, le=1.0, description="Output volume")

    custom_tts_url: str = Field(
        default="http://localhost:8000/generate",
        description="User-hosted endpoint accepting POST {text, voice}",
    )
    custom_tts_voice: Optional[str] = Field(default="Jasper")

    openai_api_key: Optional[str] = Field(default=None, exclude=True)
    openai_tts_model: str = Field(default="tts-1", description="tts-1 or tts-1-hd")
    elevenlabs_api_key: Optional[str] = Field(default=None, exclude=True)

    # --- Text enhancement ---
    llm_enabled: bool = Field(default=False, description="Rewrite announcements with an LLM")
    llm_provider: Optional[LLMProviderType] = Field(default=None)
    llm_model: str = Field(default="llama3.1")
    ollama_url: str = Field(default="http://localhost:11434")
    anthropic_api_key: Optional[str] = Field(default=None, exclude=True)
    llm_timeout_seconds: float = Field(default=10.0, gt=0)

    # --- Messages ---
    end_message: str = Field(
        default="Time's up, {program}. Pens down.",
        description="Spoken when a timer transitions from Running to Ended",
    )
    consolidate_end_announcements: bool = Field(
        default=False,
        description=(
            "Skip the end message when a zero-second schedule entry already "
            "announced the end of the session"
        ),
    )
    default_announcement_schedule: list[ScheduleEntry] = Field(
        default_factory=lambda: [e.model_copy() for e in DEFAULT_ANNOUNCEMENT_SCHEDULE],
    )
    quick_pick_messages: list[str] = Field(
        default_factory=lambda: list(DEFAULT_QUICK_PICK_MESSAGES),
    )

    @field_validator("tts_provider", mode="before")
    @classmethod
    def validate_tts_provider(cls, v: object) -> object:
        """
        Map unsupported provider names to the system voice.

        Settings written by other front ends may name providers this
        package does not ship (e.g. "web-speech"). Those are a
        configuration problem, not a reason to refuse to start.
        """
        if v is None:
            return SpeechProviderType.SYSTEM
        if isinstance(v, SpeechProviderType):
            return v

        try:
            return SpeechProviderType(v)
        except ValueError:
            logger.warning("Unsupported speech provider %r, using system voice", v)
            return SpeechProviderType.SYSTEM


def _apply_environment(settings: AnnouncementSettings) -> AnnouncementSettings:
    """Overlay secrets from the environment onto ``settings``."""
    updates: dict[str, str] = {}
    for field_name, env_var in _SECRET_ENV_VARS.items():
        value = os.getenv(env_var)
        if value and not getattr(settings, field_name):
            updates[field_name] = value
    return settings.model_copy(update=updates) if updates else settings


def save_settings(settings: AnnouncementSettings, path: Path) -> None:
    """Persist settings to YAML. API keys are excluded."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as fh:
        yaml.safe_dump(
            settings.model_dump(mode="json"),
            fh,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
    logger.debug("Settings saved to %s", path)


def load_settings(path: Optional[Path] = None) -> AnnouncementSettings:
    """Load settings from ``path``, writing defaults on first run.

    Args:
        path: Location of the YAML settings file. If None, only defaults
              and environment values are used.

    Returns:
        Validated AnnouncementSettings.

    Raises:
        ConfigurationError: If the file exists but is not valid YAML or
            does not validate.
    """
    if path is None:
        return _apply_environment(AnnouncementSettings())

    start = time.monotonic()

    if not path.exists():
        settings = AnnouncementSettings()
        save_settings(settings, path)
        logger.info("Created default settings at %s", path)
        return _apply_environment(settings)

    try:
        with open(path) as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read settings file {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")

    try:
        settings = AnnouncementSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings in {path}: {exc}") from exc

    load_ms = (time.monotonic() - start) * 1000
    logger.info("Settings loaded in %.0fms from %s", load_ms, path)
    return _apply_environment(settings)
