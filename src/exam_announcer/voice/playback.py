"""
Local playback of synthesised audio payloads.

Cloud and user-hosted providers return encoded audio (WAV or MP3). The
AudioPlayer decodes it with ``soundfile`` and plays it with
``sounddevice`` on a worker thread, reporting completion through a
callback so the event loop never blocks on audio output.

Requires the voice extras: pip install exam-announcer[voice]
"""

import io
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger("exam-announcer.voice.playback")


def _check_audio_available() -> bool:
    """Check if sounddevice and soundfile are importable."""
    try:
        import sounddevice  # noqa: F401
        import soundfile  # noqa: F401

        return True
    except (ImportError, OSError):
        # sounddevice raises OSError when the PortAudio library is missing
        return False


class AudioPlayer:
    """Plays one audio payload at a time and reports when it ends.

    ``play()`` returns as soon as output has started. ``stop()`` halts
    output immediately; the pending ``on_ended`` callback still fires.
    """

    def __init__(self) -> None:
        self._available: bool | None = None
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    def is_available(self) -> bool:
        if self._available is None:
            self._available = _check_audio_available()
            if not self._available:
                logger.debug("sounddevice/soundfile not installed or no audio device")
        return self._available

    def play(
        self,
        audio: bytes,
        *,
        volume: float = 1.0,
        rate: float = 1.0,
        on_ended: Optional[Callable[[], None]] = None,
    ) -> None:
        """Decode ``audio`` and start playing it.

        Args:
            audio: Encoded audio bytes.
            volume: Gain from 0.0 to 1.0.
            rate: Playback speed multiplier (applied via sample rate).
            on_ended: Invoked from the worker thread once playback ends.

        Raises:
            RuntimeError: If audio output is unavailable or decoding fails.
        """
        if not self.is_available():
            raise RuntimeError("Audio playback unavailable (install sounddevice and soundfile)")

        import sounddevice
        import soundfile

        try:
            samples, sample_rate = soundfile.read(io.BytesIO(audio), dtype="float32")
        except Exception as exc:
            raise RuntimeError(f"Could not decode audio payload: {exc}") from exc

        samples = samples * max(0.0, min(volume, 1.0))
        playback_rate = int(sample_rate * rate) if rate > 0 else sample_rate

        with self._lock:
            sounddevice.stop()
            sounddevice.play(samples, playback_rate)
            self._thread = threading.Thread(
                target=self._wait_for_end,
                args=(on_ended,),
                daemon=True,
            )
            self._thread.start()

        duration = len(samples) / playback_rate if playback_rate else 0.0
        logger.debug("Playback started (%.1fs at %dHz)", duration, playback_rate)

    def _wait_for_end(self, on_ended: Optional[Callable[[], None]]) -> None:
        import sounddevice

        try:
            sounddevice.wait()
        except Exception as exc:
            logger.warning("Playback ended with error: %s", exc)
        finally:
            if on_ended is not None:
                on_ended()

    def stop(self) -> None:
        """Halt playback. No-op when nothing is playing."""
        if not self._available:
            return
        import sounddevice

        try:
            sounddevice.stop()
        except Exception as exc:
            logger.debug("Ignoring error while stopping playback: %s", exc)
