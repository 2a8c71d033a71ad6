"""
Optional generative rewriting of announcement text.

The TextEnhancer passes resolved announcement text through an LLM so that
repeated announcements sound less like a recording. It is strictly
best-effort: when enhancement is disabled, misconfigured, slow, or
failing, the original text is returned unchanged.

Backends:
- Ollama (``POST {ollama_url}/api/chat``) over httpx
- Anthropic Messages API through the ``anthropic`` SDK
"""

import logging
from typing import Any, Optional, Protocol

import httpx

from ..config import AnnouncementSettings, LLMProviderType

logger = logging.getLogger("exam-announcer.announcements.enhancer")

SYSTEM_PROMPT = """You are an exam hall announcement assistant.
Your job is to rewrite a formal exam announcement to sound natural and clear when spoken aloud.
Rules:
- Keep the same core information (program name, time remaining)
- Use a calm, clear, authoritative tone
- Vary phrasing slightly from previous announcements so it doesn't sound like a recording
- Never add information that wasn't in the original
- Return ONLY the spoken announcement text, no quotes, no explanation
- Keep it under 25 words"""

DEFAULT_ANTHROPIC_MODEL = "claude-haiku-4-5-20251001"


# ---------------------------------------------------------------------------
# Custom Exceptions
# ---------------------------------------------------------------------------


class EnhancerError(Exception):
    """Raised by rewrite backends when a request fails."""
    pass


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class RewriteBackend(Protocol):
    """A generative text service: system prompt + user text -> text."""

    async def rewrite(self, system_prompt: str, text: str) -> str:
        ...


class OllamaBackend:
    """Rewrites text with a local Ollama chat model.

    Args:
        base_url: Ollama server URL, e.g. ``http://localhost:11434``.
        model: Model name, e.g. ``llama3.1``.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport, mainly for tests.
    """

    def __init__(
        self,
        base_url: str,
        model: str = "llama3.1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model or "llama3.1"
        self.timeout = timeout
        self._transport = transport

    async def rewrite(self, system_prompt: str, text: str) -> str:
        payload = {
            "model": self.model,
            "stream": False,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": text},
            ],
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}/api/chat", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise EnhancerError(f"Ollama request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise EnhancerError(f"Ollama returned {e.response.status_code}") from e
        except (httpx.RequestError, ValueError) as e:
            raise EnhancerError(f"Ollama request failed: {e}") from e

        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise EnhancerError("Malformed Ollama response (no message content)")
        return content


class AnthropicBackend:
    """Rewrites text with a Claude model via the Anthropic SDK.

    Args:
        api_key: Anthropic API key.
        model: Model identifier.
        timeout: Request timeout in seconds.
        client: Optional pre-built ``AsyncAnthropic`` client (for tests).
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_ANTHROPIC_MODEL,
        timeout: float = 10.0,
        client: Any = None,
    ) -> None:
        if client is None:
            if not api_key:
                raise EnhancerError(
                    "Anthropic API key is required. Set ANTHROPIC_API_KEY or anthropic_api_key."
                )
            from anthropic import AsyncAnthropic

            client = AsyncAnthropic(api_key=api_key, timeout=timeout)
        self.client = client
        self.model = model

    async def rewrite(self, system_prompt: str, text: str) -> str:
        import anthropic

        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=200,
                temperature=0.7,
                system=system_prompt,
                messages=[{"role": "user", "content": text}],
            )
        except anthropic.APIError as e:
            raise EnhancerError(f"Anthropic API error: {e}") from e

        text_blocks = [block.text for block in message.content if hasattr(block, "text")]
        return "".join(text_blocks)


# ---------------------------------------------------------------------------
# Enhancer
# ---------------------------------------------------------------------------


def build_backend(settings: AnnouncementSettings) -> Optional[RewriteBackend]:
    """Create the rewrite backend selected by ``settings``, or None."""
    if not settings.llm_enabled or settings.llm_provider is None:
        return None

    if settings.llm_provider == LLMProviderType.OLLAMA:
        if not settings.ollama_url:
            logger.warning("Ollama enhancement enabled but no URL configured")
            return None
        return OllamaBackend(
            settings.ollama_url,
            model=settings.llm_model,
            timeout=settings.llm_timeout_seconds,
        )

    if settings.llm_provider == LLMProviderType.ANTHROPIC:
        model = settings.llm_model
        if not model.startswith("claude"):
            model = DEFAULT_ANTHROPIC_MODEL
        try:
            return AnthropicBackend(
                settings.anthropic_api_key,
                model=model,
                timeout=settings.llm_timeout_seconds,
            )
        except EnhancerError as exc:
            logger.warning("Anthropic enhancement unavailable: %s", exc)
            return None

    return None


class TextEnhancer:
    """Best-effort rewriting of announcement text.

    The backend is rebuilt whenever settings change, so toggling the LLM
    in the settings screen takes effect on the next announcement.

    Args:
        settings: Initial settings.
        backend: Explicit backend, overriding the one selected by settings.
    """

    def __init__(
        self,
        settings: AnnouncementSettings,
        backend: Optional[RewriteBackend] = None,
    ) -> None:
        self._explicit_backend = backend
        self._settings = settings
        self._backend = backend or build_backend(settings)

    @property
    def enabled(self) -> bool:
        return self._settings.llm_enabled and self._backend is not None

    def update_settings(self, settings: AnnouncementSettings) -> None:
        self._settings = settings
        self._backend = self._explicit_backend or build_backend(settings)

    async def enhance(self, text: str) -> str:
        """Rewrite ``text``; return it unchanged on any failure.

        Args:
            text: Fully resolved announcement text.

        Returns:
            The rewritten text, or ``text`` if enhancement is off or fails.
        """
        if not self.enabled or not text.strip():
            return text

        try:
            rewritten = await self._backend.rewrite(SYSTEM_PROMPT, text)
        except Exception as exc:
            logger.warning("Text enhancement failed, using original text: %s", exc)
            return text

        rewritten = rewritten.strip().strip('"').strip()
        if not rewritten:
            logger.warning("Text enhancement returned nothing, using original text")
            return text

        logger.debug("Enhanced announcement: %r -> %r", text, rewritten)
        return rewritten
