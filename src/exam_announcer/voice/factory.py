"""
Speech provider selection.

``get_speech_provider`` maps the configured SpeechProviderType to a
provider instance. If the configured provider is unknown, unavailable, or
misconfigured (missing API key or endpoint URL), it logs a warning and
falls back to on-device synthesis. It never raises: a room full of exam
candidates must not see an error dialog because a key expired.
"""

import logging
from typing import Callable, Optional

from ..config import AnnouncementSettings, SpeechProviderType
from .playback import AudioPlayer
from .providers.base import SpeechProvider
from .providers.custom_api import CustomHTTPProvider
from .providers.edge_tts import EdgeTTSProvider
from .providers.elevenlabs import ElevenLabsTTSProvider
from .providers.openai_tts import OpenAITTSProvider
from .providers.system import SystemSpeechProvider

logger = logging.getLogger("exam-announcer.voice.factory")

ProviderBuilder = Callable[[AnnouncementSettings, AudioPlayer], SpeechProvider]

# Provider type to builder mapping
_PROVIDER_BUILDERS: dict[SpeechProviderType, ProviderBuilder] = {
    SpeechProviderType.SYSTEM: lambda settings, player: SystemSpeechProvider(),
    SpeechProviderType.EDGE_TTS: lambda settings, player: EdgeTTSProvider(player=player),
    SpeechProviderType.OPENAI: lambda settings, player: OpenAITTSProvider(
        api_key=settings.openai_api_key,
        model=settings.openai_tts_model,
        player=player,
    ),
    SpeechProviderType.ELEVENLABS: lambda settings, player: ElevenLabsTTSProvider(
        api_key=settings.elevenlabs_api_key,
        player=player,
    ),
    SpeechProviderType.CUSTOM_API: lambda settings, player: CustomHTTPProvider(
        url=settings.custom_tts_url,
        default_voice=settings.custom_tts_voice,
        player=player,
    ),
}

_shared_player: Optional[AudioPlayer] = None


def _get_player() -> AudioPlayer:
    """Audio output is a single device, so every provider shares one player."""
    global _shared_player
    if _shared_player is None:
        _shared_player = AudioPlayer()
    return _shared_player


def get_speech_provider(
    settings: AnnouncementSettings,
    player: Optional[AudioPlayer] = None,
) -> SpeechProvider:
    """Build the configured speech provider, falling back to on-device synthesis.

    Args:
        settings: Current announcement settings.
        player: Audio player for payload-based providers. Defaults to the
                process-wide shared player.

    Returns:
        A SpeechProvider. Always succeeds.
    """
    player = player or _get_player()
    provider_type = settings.tts_provider

    if provider_type != SpeechProviderType.SYSTEM:
        builder = _PROVIDER_BUILDERS.get(provider_type)
        if builder is None:
            logger.warning(
                "Unknown speech provider '%s', falling back to system voice",
                provider_type,
            )
        else:
            try:
                provider = builder(settings, player)
                if provider.is_available():
                    return provider
                logger.warning(
                    "Speech provider '%s' is unavailable or misconfigured, "
                    "falling back to system voice",
                    provider.name,
                )
            except Exception as exc:
                logger.warning(
                    "Could not create speech provider '%s', falling back to system voice: %s",
                    provider_type,
                    exc,
                )

    return _PROVIDER_BUILDERS[SpeechProviderType.SYSTEM](settings, player)


def get_provider_status(settings: AnnouncementSettings) -> dict[str, object]:
    """Summarise which providers are usable with the given settings.

    Useful for the settings screen and diagnostics.
    """
    player = _get_player()
    status: dict[str, object] = {}
    for provider_type, builder in _PROVIDER_BUILDERS.items():
        try:
            provider = builder(settings, player)
            status[provider_type.value] = {
                "name": provider.name,
                "available": provider.is_available(),
            }
        except Exception as exc:
            status[provider_type.value] = {"name": provider_type.value, "available": False,
                                           "error": str(exc)}
    status["selected"] = get_speech_provider(settings, player).name
    return status
