"""
Guild Desk - AI Provider
OpenAI-compatible chat completion client with rate-limit backoff.
"""

from openai import AsyncOpenAI, RateLimitError
from typing import Iterable, List, Optional
from config import PROVIDER, API_TIMEOUT, BOT_PERSONA_NAME, DEFAULT_TEMPERATURE, DEFAULT_MAX_TOKENS
from constants import MAX_GENERATION_ATTEMPTS, BACKOFF_BASE_SECONDS, BACKOFF_JITTER_SECONDS
from errors import RateLimited, Unrecoverable
from history import Turn, USER
from prometheus_metrics import metrics_manager
import asyncio
import logging
import random
import time

logger = logging.getLogger("providers")


def is_rate_limit_error(error: Exception) -> bool:
    """Recognise a rate-limit failure by type, status code or message."""
    if isinstance(error, RateLimitError):
        return True
    if getattr(error, "status_code", None) == 429 or getattr(error, "code", None) == 429:
        return True
    text = str(error)
    return "429" in text or "RESOURCE_EXHAUSTED" in text


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after the given (0-based) failed attempt."""
    return (2 ** attempt) * BACKOFF_BASE_SECONDS + random.random() * BACKOFF_JITTER_SECONDS


def to_chat_messages(turns: Iterable[Turn], persona_name: str = BOT_PERSONA_NAME) -> List[dict]:
    """Serialize structured turns into the text-only chat format.

    Speaker labels only exist here, at the API boundary.
    """
    messages = []
    for turn in turns:
        if turn.role == USER:
            name = turn.speaker_name or "Someone"
            messages.append({"role": "user", "content": f'User "{name}": "{turn.text}"'})
        else:
            messages.append({"role": "assistant", "content": f'{persona_name}: "{turn.text}"'})
    return messages


class ReplyGenerator:
    """Generates persona replies through one OpenAI-compatible provider."""

    def __init__(self, provider: dict = None, max_attempts: int = MAX_GENERATION_ATTEMPTS, client=None):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.provider = provider or PROVIDER
        self.max_attempts = max_attempts
        self.status = "unknown"
        self._client = client

    def _get_client(self):
        """Create the API client on first use."""
        if self._client is None:
            key = self.provider.get("key")
            if not key:
                raise Unrecoverable(f"No API key configured for {self.provider.get('name')}")
            logger.info(f"Creating client for {self.provider.get('name')} | url={self.provider.get('url')}")
            self._client = AsyncOpenAI(
                base_url=self.provider["url"],
                api_key=key,
                timeout=API_TIMEOUT
            )
        return self._client

    async def _complete(self, messages: List[dict]) -> str:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=self.provider["model"],
            messages=messages,
            temperature=DEFAULT_TEMPERATURE,
            max_tokens=DEFAULT_MAX_TOKENS
        )
        content = response.choices[0].message.content if response.choices else None
        return content or ""

    async def generate(self, turns: Iterable[Turn], persona_text: str) -> str:
        """Generate a reply to the transcript, retrying on rate limits.

        Raises:
            RateLimited: every attempt was rate limited.
            Unrecoverable: any other failure, raised on first occurrence.
        """
        messages = [{"role": "system", "content": persona_text}] + to_chat_messages(turns)
        last_error: Optional[RateLimited] = None

        for attempt in range(self.max_attempts):
            start = time.time()
            try:
                logger.debug(f"Sending {len(messages)} messages (attempt {attempt + 1}/{self.max_attempts})")
                text = await self._complete(messages)
                self.status = "ok"
                metrics_manager.record_api_request("ok", time.time() - start)
                logger.info(f"✓ Reply generated ({len(text)} chars)")
                return text
            except Unrecoverable:
                self.status = "error: no key"
                raise
            except Exception as e:
                if not is_rate_limit_error(e):
                    self.status = f"error: {str(e)[:50]}"
                    metrics_manager.record_api_request("error", time.time() - start)
                    logger.error(f"✗ Generation failed: {e}")
                    raise Unrecoverable(str(e), cause=e) from e

                self.status = "rate limited"
                metrics_manager.record_api_request("rate_limited", time.time() - start)
                last_error = RateLimited(str(e), cause=e)
                if attempt + 1 >= self.max_attempts:
                    break
                delay = backoff_delay(attempt)
                metrics_manager.record_generation_retry()
                logger.warning(
                    f"Rate limit exceeded. Retrying in {delay:.1f}s... "
                    f"(Attempt {attempt + 1}/{self.max_attempts})"
                )
                await asyncio.sleep(delay)

        logger.error("All retries failed after multiple attempts.")
        raise last_error

    def get_status(self) -> str:
        """Formatted provider status for /status-style output."""
        emoji = "✅" if self.status == "ok" else "❓" if self.status == "unknown" else "❌"
        return f"• {self.provider.get('name')} ({self.provider.get('model')}): {emoji} {self.status}"


# Global instance
provider_manager = ReplyGenerator()
