"""
ElevenLabs text-to-speech provider.
"""

from typing import Optional

import httpx

from ..playback import AudioPlayer
from .base import SpeakOptions
from .remote import DEFAULT_TIMEOUT, RemoteSpeechProvider

ELEVENLABS_TTS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"
ELEVENLABS_MODEL = "eleven_turbo_v2"

# Premade voices available on every account
VOICE_CATALOG: dict[str, str] = {
    "21m00Tcm4TlvDq8ikWAM": "Rachel",
    "AZnzlk1XvdvUeBnXmlld": "Domi",
    "EXAVITQu4vr4xnSDxMaL": "Bella",
    "ErXwobaYiN019PkySvjV": "Antoni",
    "TxGEqnHWrfWFTfGW9XjX": "Josh",
    "pNInz6obpgDQGcFmaJgB": "Adam",
}
DEFAULT_VOICE = "21m00Tcm4TlvDq8ikWAM"


class ElevenLabsTTSProvider(RemoteSpeechProvider):
    """Cloud speech via the ElevenLabs API."""

    def __init__(
        self,
        api_key: Optional[str],
        default_voice: str = DEFAULT_VOICE,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        player: Optional[AudioPlayer] = None,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport, player=player)
        self._api_key = api_key
        self._default_voice = default_voice

    @property
    def name(self) -> str:
        return "ElevenLabs"

    def _is_configured(self) -> bool:
        return bool(self._api_key)

    def list_voices(self) -> list[dict[str, str]]:
        return [{"id": voice_id, "name": label} for voice_id, label in VOICE_CATALOG.items()]

    async def synthesize(self, text: str, options: SpeakOptions) -> bytes:
        if not self._api_key:
            raise RuntimeError("ElevenLabs is not configured (missing API key)")

        voice_id = options.voice_id or self._default_voice
        return await self._post_for_audio(
            ELEVENLABS_TTS_URL.format(voice_id=voice_id),
            {
                "text": text,
                "model_id": ELEVENLABS_MODEL,
                "voice_settings": {
                    "stability": 0.6,
                    "similarity_boost": 0.8,
                    "speed": options.rate,
                },
            },
            headers={"xi-api-key": self._api_key},
        )
