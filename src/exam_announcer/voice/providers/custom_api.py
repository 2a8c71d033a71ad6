"""
User-hosted speech endpoint.

For self-hosted or local models (e.g. KittenTTS behind a small HTTP
server). The wire contract is deliberately minimal::

    POST <url>  {"text": "...", "voice": "..."}  ->  audio bytes (WAV)

The endpoint is not asked to honour a rate, so the rate is applied at
playback time instead.
"""

from typing import Optional

import httpx

from ..playback import AudioPlayer
from .base import SpeakOptions
from .remote import DEFAULT_TIMEOUT, RemoteSpeechProvider

DEFAULT_VOICE = "Jasper"


class CustomHTTPProvider(RemoteSpeechProvider):
    """Speech from a user-configured HTTP endpoint."""

    def __init__(
        self,
        url: Optional[str],
        default_voice: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        player: Optional[AudioPlayer] = None,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport, player=player)
        self._url = (url or "").strip()
        self._default_voice = default_voice or DEFAULT_VOICE

    @property
    def name(self) -> str:
        return "Custom API"

    @property
    def url(self) -> str:
        return self._url

    def _is_configured(self) -> bool:
        return bool(self._url)

    def playback_rate(self, options: SpeakOptions) -> float:
        return options.rate

    async def synthesize(self, text: str, options: SpeakOptions) -> bytes:
        if not self._url:
            raise RuntimeError("Custom TTS URL is missing")

        return await self._post_for_audio(
            self._url,
            {"text": text, "voice": options.voice_id or self._default_voice},
        )
