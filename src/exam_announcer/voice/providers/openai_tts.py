"""
OpenAI text-to-speech provider.

Posts to the ``/v1/audio/speech`` endpoint and plays the returned MP3.
Speech rate is applied server-side through the ``speed`` parameter.
"""

import logging
from typing import Optional

import httpx

from ..playback import AudioPlayer
from .base import SpeakOptions
from .remote import DEFAULT_TIMEOUT, RemoteSpeechProvider

logger = logging.getLogger("exam-announcer.voice.openai")

OPENAI_SPEECH_URL = "https://api.openai.com/v1/audio/speech"

VOICE_CATALOG: tuple[str, ...] = ("alloy", "echo", "fable", "onyx", "nova", "shimmer")
DEFAULT_VOICE = "nova"
MODELS: tuple[str, ...] = ("tts-1", "tts-1-hd")


class OpenAITTSProvider(RemoteSpeechProvider):
    """Cloud speech via the OpenAI audio API."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "tts-1",
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        player: Optional[AudioPlayer] = None,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport, player=player)
        self._api_key = api_key
        if model not in MODELS:
            logger.warning("Unknown OpenAI TTS model '%s', using tts-1", model)
            model = "tts-1"
        self._model = model

    @property
    def name(self) -> str:
        return "OpenAI TTS"

    def _is_configured(self) -> bool:
        return bool(self._api_key)

    def list_voices(self) -> list[dict[str, str]]:
        return [{"id": voice, "name": voice.capitalize()} for voice in VOICE_CATALOG]

    async def synthesize(self, text: str, options: SpeakOptions) -> bytes:
        if not self._api_key:
            raise RuntimeError("OpenAI TTS is not configured (missing API key)")

        voice = options.voice_id if options.voice_id in VOICE_CATALOG else DEFAULT_VOICE
        return await self._post_for_audio(
            OPENAI_SPEECH_URL,
            {
                "model": self._model,
                "input": text,
                "voice": voice,
                "speed": options.rate,
            },
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
