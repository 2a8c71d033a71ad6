"""
Edge-TTS cloud speech provider.

Edge-TTS uses Microsoft's edge speech service (free, no API key) to
synthesise MP3 audio, which is then played locally.

Requires the `edge-tts` package: pip install edge-tts
"""

import logging
import time
from typing import Optional

from ..playback import AudioPlayer
from .base import AudioSpeechProvider, SpeakOptions

logger = logging.getLogger("exam-announcer.voice.edge_tts")

DEFAULT_VOICE = "en-GB-RyanNeural"

VOICE_CATALOG: dict[str, str] = {
    "en-GB-RyanNeural": "Ryan (British English, male)",
    "en-GB-SoniaNeural": "Sonia (British English, female)",
    "en-US-GuyNeural": "Guy (US English, male)",
    "en-US-JennyNeural": "Jenny (US English, female)",
    "en-AU-WilliamNeural": "William (Australian English, male)",
    "en-AU-NatashaNeural": "Natasha (Australian English, female)",
}


def _check_edge_tts_available() -> bool:
    """Check if the edge-tts package is importable."""
    try:
        import edge_tts  # noqa: F401

        return True
    except ImportError:
        return False


def _percent(value: float) -> str:
    """Format a multiplier as an Edge-TTS relative adjustment, e.g. 0.9 -> "-10%"."""
    delta = int(round((value - 1.0) * 100))
    return f"+{delta}%" if delta >= 0 else f"{delta}%"


class EdgeTTSProvider(AudioSpeechProvider):
    """Cloud speech via Edge-TTS. Requires an internet connection."""

    def __init__(
        self,
        default_voice: Optional[str] = None,
        player: Optional[AudioPlayer] = None,
    ) -> None:
        super().__init__(player)
        self._default_voice = default_voice or DEFAULT_VOICE
        self._available: bool | None = None

    @property
    def name(self) -> str:
        return "Edge TTS"

    def is_available(self) -> bool:
        if self._available is None:
            self._available = _check_edge_tts_available()
            if not self._available:
                logger.debug("edge-tts package not installed")
        return self._available and self._player.is_available()

    def list_voices(self) -> list[dict[str, str]]:
        return [{"id": voice_id, "name": label} for voice_id, label in VOICE_CATALOG.items()]

    async def synthesize(self, text: str, options: SpeakOptions) -> bytes:
        """Synthesise ``text`` to MP3 bytes.

        Raises:
            RuntimeError: If edge-tts is not available or synthesis fails.
        """
        if not _check_edge_tts_available():
            raise RuntimeError("Edge-TTS provider is not available (edge-tts not installed)")

        voice = options.voice_id or self._default_voice
        pitch_hz = int(round((options.pitch - 1.0) * 50))
        pitch_str = f"+{pitch_hz}Hz" if pitch_hz >= 0 else f"{pitch_hz}Hz"

        try:
            import edge_tts

            start_time = time.monotonic()
            communicate = edge_tts.Communicate(
                text,
                voice=voice,
                rate=_percent(options.rate),
                pitch=pitch_str,
            )

            audio_chunks: list[bytes] = []
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    audio_chunks.append(chunk["data"])
        except Exception as exc:
            raise RuntimeError(f"Edge-TTS synthesis failed: {exc}") from exc

        audio_data = b"".join(audio_chunks)
        if not audio_data:
            raise RuntimeError("Edge-TTS returned no audio")

        elapsed_ms = (time.monotonic() - start_time) * 1000
        logger.info("Edge-TTS synthesis: %.0fms latency, voice=%s", elapsed_ms, voice)
        return audio_data
