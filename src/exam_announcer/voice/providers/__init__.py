"""
Speech provider implementations.
"""

from .base import AudioSpeechProvider, SpeakOptions, SpeechProvider
from .custom_api import CustomHTTPProvider
from .edge_tts import EdgeTTSProvider
from .elevenlabs import ElevenLabsTTSProvider
from .openai_tts import OpenAITTSProvider
from .system import SystemSpeechProvider

__all__ = [
    "SpeechProvider",
    "AudioSpeechProvider",
    "SpeakOptions",
    "SystemSpeechProvider",
    "EdgeTTSProvider",
    "OpenAITTSProvider",
    "ElevenLabsTTSProvider",
    "CustomHTTPProvider",
]
