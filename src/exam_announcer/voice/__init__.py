"""
Voice subsystem for exam-announcer.

Every speech backend implements the SpeechProvider interface:
- System: on-device synthesis via pyttsx3 (always the fallback)
- Edge TTS: Microsoft neural voices via edge-tts
- OpenAI, ElevenLabs, Custom API: HTTP synthesis over httpx

Audio-returning providers play their output through AudioPlayer
(sounddevice + soundfile).

Install voice dependencies: pip install exam-announcer[voice]
"""

from .factory import get_provider_status, get_speech_provider
from .playback import AudioPlayer
from .providers import SpeakOptions, SpeechProvider

__all__ = [
    # Selection
    "get_speech_provider",
    "get_provider_status",
    # Provider interface
    "SpeechProvider",
    "SpeakOptions",
    # Playback
    "AudioPlayer",
]
