"""LLM content generation.

Calls the Gemini REST API through httpx and retries failed calls with a
linear backoff (attempt x delay).
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from marketplace.config.settings import get_settings

logger = logging.getLogger(__name__)

CONTENT_TYPE_ROLES: dict[str, tuple[str, ...]] = {
    "teaser": ("seller", "broker", "admin"),
    "im": ("seller", "broker", "admin"),
    "cim": ("seller", "broker", "admin"),
    "pitch_deck": ("seller", "broker", "admin"),
    "valuation": ("seller", "broker", "admin"),
    "due_diligence": ("buyer", "broker", "partner", "admin"),
    "risk_assessment": ("buyer", "partner", "admin"),
    "recommendation": ("buyer", "seller", "broker", "admin"),
    "organization_name": ("seller", "broker", "partner", "admin", "buyer", "visitor"),
    "organization_description": ("seller", "broker", "partner", "admin", "buyer", "visitor"),
}

ONBOARDING_TYPES = ("organization_name", "organization_description")

RESOURCE_TYPES = ("company", "deal")


class ContentGenerationError(Exception):
    """The model did not return content."""


def can_generate_content(role: Optional[str], content_type: str) -> bool:
    return role in CONTENT_TYPE_ROLES.get(content_type, ())


class GeminiClient:
    """Minimal client for the generateContent endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self.timeout = timeout or settings.ai_timeout_seconds
        self._transport = transport

    async def generate(self, prompt: str) -> str:
        """Send one prompt and return the generated text.

        Raises:
            ContentGenerationError: If no API key is configured or the reply has no text
            httpx.HTTPError: On transport errors or non-2xx replies
        """
        if not self.api_key:
            raise ContentGenerationError("Gemini API key is not configured")

        url = f"{self.base_url}/models/{self.model}:generateContent"
        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(url, params={"key": self.api_key}, json=payload)
            response.raise_for_status()
            data = response.json()

        candidates = data.get("candidates") or []
        if not candidates:
            raise ContentGenerationError("Model returned no candidates")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if not text.strip():
            raise ContentGenerationError("Model returned empty content")
        return text


async def generate_with_retry(
    client: GeminiClient,
    prompt: str,
    max_attempts: Optional[int] = None,
    retry_delay: Optional[float] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> str:
    """Generate content, retrying with linear backoff.

    Attempt n that fails waits n x retry_delay seconds before the next one.

    Args:
        client: LLM client
        prompt: Prompt text
        max_attempts: Attempts before giving up (settings.ai_max_attempts by default)
        retry_delay: Base delay in seconds (settings.ai_retry_delay_seconds by default)
        sleep: Awaitable sleep function

    Returns:
        Generated text

    Raises:
        ContentGenerationError: After the last failed attempt, or at once
            when the client has no API key
    """
    if isinstance(client, GeminiClient) and not client.api_key:
        raise ContentGenerationError("Gemini API key is not configured")

    settings = get_settings()
    attempts = max_attempts or settings.ai_max_attempts
    delay = settings.ai_retry_delay_seconds if retry_delay is None else retry_delay

    for attempt in range(1, attempts + 1):
        try:
            return await client.generate(prompt)
        except (httpx.HTTPError, ContentGenerationError) as e:
            logger.warning(f"AI generation attempt {attempt}/{attempts} failed: {e}")
            if attempt < attempts:
                await sleep(attempt * delay)

    raise ContentGenerationError("Content generation failed after multiple attempts")


def get_ai_client() -> GeminiClient:
    """FastAPI dependency returning the configured LLM client."""
    return GeminiClient()
