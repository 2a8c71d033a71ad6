"""
On-device speech synthesis via pyttsx3.

Uses the host's speech engine (SAPI5 on Windows, NSSpeechSynthesizer on
macOS, eSpeak on Linux). No network access is needed, which makes this
the provider every other one falls back to.

The engine is created and driven entirely on a worker thread; SAPI5 binds
its COM objects to the creating thread.

Requires the `pyttsx3` package: pip install pyttsx3
"""

import asyncio
import logging
import threading
from typing import Any, Optional

from .base import SpeakOptions, SpeechProvider, _EndedNotifier

logger = logging.getLogger("exam-announcer.voice.system")

# pyttsx3 measures rate in words per minute; 1.0 maps to its default
_BASE_WORDS_PER_MINUTE = 200

# How long speak() waits for the engine to report that speech started
_START_TIMEOUT_SECONDS = 5.0


def _check_pyttsx3_available() -> bool:
    """Check if pyttsx3 is importable."""
    try:
        import pyttsx3  # noqa: F401

        return True
    except ImportError:
        return False


def _host_voice_ids(engine: Any) -> set[str]:
    try:
        return {voice.id for voice in engine.getProperty("voices") or []}
    except Exception as exc:
        logger.debug("Could not enumerate host voices: %s", exc)
        return set()


class SystemSpeechProvider(SpeechProvider):
    """Speech provider backed by the operating system's voices."""

    def __init__(self) -> None:
        self._available: bool | None = None
        self._engine: Any = None
        self._stop_requested = False
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "System Voice (Built-in)"

    def is_available(self) -> bool:
        if self._available is None:
            self._available = _check_pyttsx3_available()
            if not self._available:
                logger.debug("pyttsx3 not installed")
        return self._available

    def list_voices(self) -> list[dict[str, str]]:
        """Enumerate voices installed on the host."""
        if not self.is_available():
            return []

        import pyttsx3

        try:
            engine = pyttsx3.init()
            host_voices = engine.getProperty("voices")
        except Exception as exc:
            logger.warning("Could not list system voices: %s", exc)
            return []

        voices = []
        for voice in host_voices:
            languages = getattr(voice, "languages", None) or []
            voices.append(
                {
                    "id": voice.id,
                    "name": voice.name,
                    "language": ", ".join(
                        lang.decode(errors="ignore") if isinstance(lang, bytes) else str(lang)
                        for lang in languages
                    ),
                }
            )
        return voices

    def _run_utterance(
        self,
        text: str,
        options: SpeakOptions,
        started: threading.Event,
        notify_ended: _EndedNotifier,
    ) -> None:
        try:
            import pyttsx3

            engine = pyttsx3.init()
            engine.setProperty("rate", int(_BASE_WORDS_PER_MINUTE * options.rate))
            engine.setProperty("volume", max(0.0, min(options.volume, 1.0)))
            if options.voice_id:
                # Voice ids from other providers (e.g. "nova") are not host voices
                if options.voice_id in _host_voice_ids(engine):
                    engine.setProperty("voice", options.voice_id)
                else:
                    logger.info(
                        "Voice '%s' is not installed on this host, using the default voice",
                        options.voice_id,
                    )
            engine.connect("started-utterance", lambda name: started.set())

            with self._lock:
                if self._stop_requested:
                    logger.debug("System speech stopped before it started")
                    return
                self._engine = engine

            engine.say(text)
            engine.runAndWait()
        except Exception as exc:
            logger.warning("System speech failed: %s", exc)
        finally:
            with self._lock:
                self._engine = None
            started.set()
            notify_ended()

    async def speak(self, text: str, options: Optional[SpeakOptions] = None) -> None:
        options = options or SpeakOptions()
        notify_ended = _EndedNotifier(options.on_ended)

        if not self.is_available():
            logger.warning("System speech unavailable, skipping announcement")
            notify_ended()
            return

        with self._lock:
            self._stop_requested = False

        started = threading.Event()
        thread = threading.Thread(
            target=self._run_utterance,
            args=(text, options, started, notify_ended),
            daemon=True,
        )
        thread.start()

        if not await asyncio.to_thread(started.wait, _START_TIMEOUT_SECONDS):
            logger.warning("System speech did not start within %.0fs", _START_TIMEOUT_SECONDS)

    def stop(self) -> None:
        with self._lock:
            self._stop_requested = True
            engine = self._engine
        if engine is None:
            return
        try:
            engine.stop()
        except Exception as exc:
            logger.debug("Ignoring error while stopping system speech: %s", exc)
