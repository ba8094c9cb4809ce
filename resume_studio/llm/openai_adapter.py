from __future__ import annotations

import logging
import os
from typing import AsyncIterator, Optional

from openai import APIConnectionError, AsyncOpenAI, InternalServerError, RateLimitError
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


class OpenAICompatibleAdapter(BaseLLMAdapter):
    """Any OpenAI-compatible chat endpoint (a LiteLLM proxy in local setups)."""

    def __init__(self, model: str, base_url: Optional[str] = None):
        from resume_studio.settings import get_settings
        settings = get_settings()
        api_key = settings.openai_api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            LOGGER.warning("OPENAI_API_KEY not found. OpenAI-compatible adapter may fail.")
        self.client = AsyncOpenAI(base_url=base_url, api_key=api_key or "sk-local")
        self.model = model
        self.temperature = settings.llm_temperature
        LOGGER.info("Initialized OpenAI-compatible adapter with model: %s (base_url=%s)", model, base_url)

    async def astream(self, prompt: str, system: Optional[str] = None) -> AsyncIterator[str]:
        LOGGER.info("Streaming from model '%s'", self.model)
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type((RateLimitError, InternalServerError, APIConnectionError)),
            wait=wait_exponential(multiplier=1, min=2, max=20),
            stop=stop_after_attempt(3),
            before_sleep=before_sleep_log(LOGGER, logging.INFO),
            reraise=True,
        ):
            with attempt:
                stream = await self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=self.temperature,
                    stream=True,
                )

        total = 0
        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                total += len(delta)
                yield delta
        LOGGER.info("Model stream finished (length=%d)", total)
