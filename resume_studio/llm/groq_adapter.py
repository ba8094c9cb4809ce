from __future__ import annotations

import logging
import os
from typing import AsyncIterator, Optional

from groq import APIConnectionError, AsyncGroq, AuthenticationError, InternalServerError, PermissionDeniedError, RateLimitError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from resume_studio.utils.logging import get_logger

from .adapter import BaseLLMAdapter

LOGGER = get_logger(__name__)


class GroqLLMAdapter(BaseLLMAdapter):

    def __init__(self, model: str = "llama-3.3-70b-versatile"):
        from resume_studio.settings import get_settings
        settings = get_settings()
        api_key = settings.groq_api_key or os.getenv("GROQ_API_KEY")
        if not api_key:
            LOGGER.warning("GROQ_API_KEY not found. Groq adapter will fail.")
        self.client = AsyncGroq(api_key=api_key)
        self.model = model
        self.temperature = settings.llm_temperature

    async def astream(self, prompt: str, system: Optional[str] = None) -> AsyncIterator[str]:
        LOGGER.info("Streaming from Groq with model '%s'", self.model)
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        try:
            # Only opening the stream is retried; once deltas flow they cannot be replayed
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type((RateLimitError, InternalServerError, APIConnectionError)),
                # Rate limits often require longer cool-downs than 20s.
                wait=wait_exponential(multiplier=1, min=2, max=60),
                stop=stop_after_attempt(5),
                before_sleep=before_sleep_log(LOGGER, logging.INFO),
                reraise=True,
            ):
                with attempt:
                    stream = await self.client.chat.completions.create(
                        messages=messages,
                        model=self.model,
                        temperature=self.temperature,
                        stream=True,
                    )
        except (AuthenticationError, PermissionDeniedError) as exc:
            LOGGER.critical("Groq authentication/permission error: %s. Check your GROQ_API_KEY.", exc)
            raise

        total = 0
        async for chunk in stream:
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            delta = choice.delta.content if choice.delta else None
            if delta:
                total += len(delta)
                yield delta
            if getattr(choice, "finish_reason", None) == "length":
                LOGGER.error("Groq response truncated due to token limit (finish_reason=length)")
        LOGGER.info("Groq stream finished (length=%d)", total)
