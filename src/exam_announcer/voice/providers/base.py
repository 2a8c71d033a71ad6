"""
Abstract base classes for speech output providers.

Every provider (on-device synthesis, cloud APIs, a user-hosted endpoint)
implements the same small contract so the announcement queue can treat
them uniformly:

- ``speak()`` returns once speech has *started*. Completion is reported
  through ``SpeakOptions.on_ended``, which must fire exactly once even when
  synthesis or playback fails.
- ``stop()`` halts speech immediately and is a no-op when idle.
- ``is_available()`` is a cheap capability probe.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from ..playback import AudioPlayer

logger = logging.getLogger("exam-announcer.voice.providers")


@dataclass
class SpeakOptions:
    """Delivery options for a single utterance.

    Attributes:
        rate: Speech rate multiplier (1.0 = normal).
        pitch: Pitch multiplier (1.0 = normal).
        volume: Output volume from 0.0 to 1.0.
        voice_id: Provider-specific voice identifier.
        on_ended: Called once when speech finishes, fails, or is stopped.
            May be invoked from a worker thread.
    """

    rate: float = 0.9
    pitch: float = 1.0
    volume: float = 1.0
    voice_id: Optional[str] = None
    on_ended: Optional[Callable[[], None]] = None


class _EndedNotifier:
    """Guards an ``on_ended`` callback so it fires at most once."""

    def __init__(self, callback: Optional[Callable[[], None]]) -> None:
        self._callback = callback
        self._lock = threading.Lock()
        self._fired = False

    def __call__(self) -> None:
        with self._lock:
            if self._fired:
                return
            self._fired = True
        if self._callback is None:
            return
        try:
            self._callback()
        except Exception as exc:
            logger.warning("on_ended callback raised: %s", exc)


class SpeechProvider(ABC):
    """Abstract base class for speech output providers.

    Subclasses must implement:
    - name: A human-readable provider name.
    - is_available(): Whether the provider can be used right now.
    - speak(): Start speaking text.
    - stop(): Halt any in-progress speech.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name."""
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether this provider is installed and configured.

        Returns:
            True if the provider can be used, False otherwise.
        """
        ...

    @abstractmethod
    async def speak(self, text: str, options: Optional[SpeakOptions] = None) -> None:
        """Start speaking ``text``.

        Returns once speech has started. Errors are not raised: they are
        logged and ``options.on_ended`` is invoked so callers never wait
        on a dead provider.
        """
        ...

    @abstractmethod
    def stop(self) -> None:
        """Immediately halt any in-progress speech. Safe to call when idle."""
        ...

    def list_voices(self) -> list[dict[str, str]]:
        """Return the voices this provider offers.

        Override in subclasses. Default returns an empty list.
        """
        return []


class AudioSpeechProvider(SpeechProvider):
    """Base for providers that fetch an audio payload and play it locally.

    Subclasses implement ``synthesize()``; this class handles playback,
    stopping, and the guarantee that ``on_ended`` always fires.

    Args:
        player: Audio player used for output. A new one is created if None.
    """

    def __init__(self, player: Optional[AudioPlayer] = None) -> None:
        self._player = player or AudioPlayer()
        self._stopped = False

    @abstractmethod
    async def synthesize(self, text: str, options: SpeakOptions) -> bytes:
        """Convert ``text`` into encoded audio bytes (WAV, MP3, ...).

        Raises:
            RuntimeError: If synthesis fails.
        """
        ...

    def playback_rate(self, options: SpeakOptions) -> float:
        """Rate applied at playback time.

        Providers that honour the rate during synthesis return 1.0.
        """
        return 1.0

    async def speak(self, text: str, options: Optional[SpeakOptions] = None) -> None:
        options = options or SpeakOptions()
        notify_ended = _EndedNotifier(options.on_ended)
        self._stopped = False

        try:
            audio = await self.synthesize(text, options)
            if self._stopped:
                logger.debug("%s: stopped before playback started", self.name)
                notify_ended()
                return
            self._player.play(
                audio,
                volume=options.volume,
                rate=self.playback_rate(options),
                on_ended=notify_ended,
            )
        except Exception as exc:
            logger.warning("%s failed to speak: %s", self.name, exc)
            notify_ended()

    def stop(self) -> None:
        self._stopped = True
        self._player.stop()
