"""
Shared HTTP plumbing for providers that fetch audio from a web API.
"""

import logging
import time
from typing import Any, Optional

import httpx

from ..playback import AudioPlayer
from .base import AudioSpeechProvider

logger = logging.getLogger("exam-announcer.voice.remote")

DEFAULT_TIMEOUT = 30.0


class RemoteSpeechProvider(AudioSpeechProvider):
    """Audio provider that POSTs JSON and receives an audio payload.

    Args:
        timeout: Request timeout in seconds.
        transport: Optional httpx transport, mainly for tests.
        player: Audio player used for output.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        player: Optional[AudioPlayer] = None,
    ) -> None:
        super().__init__(player)
        self._timeout = timeout
        self._transport = transport

    def _is_configured(self) -> bool:
        """Whether credentials or an endpoint are set. Override in subclasses."""
        return True

    def is_available(self) -> bool:
        # Requires local audio output as well
        return self._is_configured() and self._player.is_available()

    async def _post_for_audio(
        self,
        url: str,
        payload: dict[str, Any],
        headers: Optional[dict[str, str]] = None,
    ) -> bytes:
        """POST ``payload`` to ``url`` and return the response body.

        Raises:
            RuntimeError: On timeouts, transport errors, non-2xx responses,
                or an empty body.
        """
        start_time = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise RuntimeError(f"{self.name} request timed out: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise RuntimeError(
                f"{self.name} error: {exc.response.status_code} {exc.response.reason_phrase}"
            ) from exc
        except httpx.RequestError as exc:
            raise RuntimeError(f"{self.name} request failed: {exc}") from exc

        if not response.content:
            raise RuntimeError(f"{self.name} returned an empty audio payload")

        elapsed_ms = (time.monotonic() - start_time) * 1000
        logger.info(
            "%s synthesis: %.0fms latency, %d bytes",
            self.name,
            elapsed_ms,
            len(response.content),
        )
        return response.content
