"""
Announcement queue: serial dispatch for the single voice output.

Many timers produce announcements at unpredictable moments but only one
voice can speak at a time. The AnnouncementQueue is the single gate
between them:

- ``enqueue()`` drops items whose id is already pending and otherwise
  inserts in priority order (lower value first, FIFO within a priority).
- A drain task speaks items one by one. It advances when the provider's
  ``on_ended`` callback fires (or a safety timeout expires), then pauses
  briefly so announcements do not run together.
- ``skip()`` stops the current item; ``clear()`` also discards the rest.

State machine::

    Idle --enqueue--> Speaking --on_ended--> Speaking (next) | Idle (empty)
    Speaking --skip--> (on_ended) --> ...
    Speaking | Idle --clear--> Idle

The queue must be used from within a running asyncio event loop.
"""

import asyncio
import logging
from typing import Callable, Optional

from ..config import AnnouncementSettings
from ..models import QueuedAnnouncement
from ..voice.factory import get_speech_provider
from ..voice.providers.base import SpeakOptions, SpeechProvider

logger = logging.getLogger("exam-announcer.announcements.queue")

# Pause between consecutive announcements
DEFAULT_PAUSE_SECONDS = 0.8

# Upper bound on a single announcement, in case a provider never reports the end
DEFAULT_SPEECH_TIMEOUT_SECONDS = 120.0

ProviderFactory = Callable[[AnnouncementSettings], SpeechProvider]


class AnnouncementQueue:
    """Priority queue with at most one announcement audible at any instant.

    Args:
        settings: Initial delivery configuration (rate, volume, provider,
                  voice). Replace it at any time with ``set_settings()``.
        provider_factory: Builds the speech provider for each announcement
                          from the settings current when it starts.
        pause_seconds: Silence inserted between announcements.
        speech_timeout_seconds: Maximum time to wait for ``on_ended``.
    """

    def __init__(
        self,
        settings: Optional[AnnouncementSettings] = None,
        provider_factory: ProviderFactory = get_speech_provider,
        pause_seconds: float = DEFAULT_PAUSE_SECONDS,
        speech_timeout_seconds: float = DEFAULT_SPEECH_TIMEOUT_SECONDS,
    ) -> None:
        self._settings = settings or AnnouncementSettings()
        self._provider_factory = provider_factory
        self.pause_seconds = pause_seconds
        self.speech_timeout_seconds = speech_timeout_seconds

        self._pending: list[QueuedAnnouncement] = []
        self._is_speaking = False
        self._current: Optional[QueuedAnnouncement] = None
        self._current_provider: Optional[SpeechProvider] = None
        self._worker: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def settings(self) -> AnnouncementSettings:
        return self._settings

    def set_settings(self, settings: AnnouncementSettings) -> None:
        """Replace the delivery configuration.

        An announcement already speaking keeps the settings it started with.
        """
        self._settings = settings

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_speaking(self) -> bool:
        return self._is_speaking

    @property
    def is_active(self) -> bool:
        return self._is_speaking or len(self._pending) > 0

    @property
    def current_announcement(self) -> Optional[QueuedAnnouncement]:
        return self._current if self._is_speaking else None

    @property
    def current_announcement_text(self) -> Optional[str]:
        """Text being spoken right now, for on-screen captions."""
        current = self.current_announcement
        return current.text if current else None

    def pending(self) -> list[QueuedAnnouncement]:
        """Snapshot of pending announcements in speaking order."""
        return list(self._pending)

    def status(self) -> dict[str, object]:
        return {
            "is_speaking": self._is_speaking,
            "current": self.current_announcement_text,
            "pending_count": self.pending_count,
            "pending": [{"id": a.id, "priority": a.priority, "text": a.text} for a in self._pending],
        }

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def enqueue(self, item: QueuedAnnouncement) -> bool:
        """Add an announcement unless one with the same id is pending.

        Args:
            item: The announcement to queue.

        Returns:
            True if the item was queued, False if it was a duplicate.
        """
        if any(pending.id == item.id for pending in self._pending):
            logger.debug("Dropping duplicate announcement '%s'", item.id)
            return False

        index = next(
            (i for i, pending in enumerate(self._pending) if pending.priority > item.priority),
            len(self._pending),
        )
        self._pending.insert(index, item)
        logger.debug(
            "Queued announcement '%s' (priority=%d, position=%d)",
            item.id,
            item.priority,
            index,
        )

        if not self._is_speaking:
            self._start_worker()
        return True

    def skip(self) -> None:
        """Stop the current announcement; the queue advances on its own."""
        provider = self._current_provider
        if provider is None:
            return
        logger.info("Skipping announcement '%s'", self._current.id if self._current else "?")
        provider.stop()

    def clear(self) -> None:
        """Discard all pending announcements and stop the current one."""
        dropped = len(self._pending)
        self._pending.clear()

        provider = self._current_provider
        if provider is not None:
            provider.stop()

        worker = self._worker
        if worker is not None and not worker.done():
            worker.cancel()

        self._worker = None
        self._current_provider = None
        self._go_idle()
        logger.info("Announcement queue cleared (%d pending dropped)", dropped)

    async def wait_until_idle(self) -> None:
        """Wait until nothing is speaking and nothing is pending."""
        await self._idle.wait()

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def _start_worker(self) -> None:
        self._is_speaking = True
        self._idle.clear()
        self._worker = asyncio.get_running_loop().create_task(self._drain())

    def _go_idle(self) -> None:
        self._is_speaking = False
        self._current = None
        self._idle.set()

    async def _drain(self) -> None:
        try:
            while await self.process_next():
                await asyncio.sleep(self.pause_seconds)
        finally:
            # A cancelled worker must not clobber state owned by its successor
            if self._worker is asyncio.current_task():
                self._worker = None
                self._current_provider = None
                self._go_idle()

    async def process_next(self) -> bool:
        """Speak the front announcement and wait for it to finish.

        Returns:
            False if the queue was empty (and is now idle), True otherwise.
        """
        if not self._pending:
            self._go_idle()
            return False

        item = self._pending.pop(0)
        self._current = item
        self._is_speaking = True

        await self._deliver(item)
        return True

    async def _deliver(self, item: QueuedAnnouncement) -> None:
        settings = self._settings
        loop = asyncio.get_running_loop()
        finished = asyncio.Event()

        def on_ended() -> None:
            # Providers may report completion from a worker thread
            loop.call_soon_threadsafe(finished.set)

        try:
            provider = self._provider_factory(settings)
        except Exception as exc:
            logger.error("No speech provider for announcement '%s': %s", item.id, exc)
            return

        self._current_provider = provider
        options = SpeakOptions(
            rate=settings.tts_rate,
            pitch=settings.tts_pitch,
            volume=settings.tts_volume,
            voice_id=settings.tts_voice_id,
            on_ended=on_ended,
        )

        logger.info("Speaking announcement '%s' via %s", item.id, provider.name)
        try:
            await provider.speak(item.text, options)
        except Exception as exc:
            logger.error("Announcement '%s' failed: %s", item.id, exc)
            finished.set()

        try:
            await asyncio.wait_for(finished.wait(), timeout=self.speech_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "Announcement '%s' did not finish within %.0fs, moving on",
                item.id,
                self.speech_timeout_seconds,
            )
            provider.stop()
        finally:
            if self._current_provider is provider:
                self._current_provider = None
