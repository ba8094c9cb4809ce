from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

from resume_studio.settings import get_settings


class BaseLLMAdapter(ABC):
    @abstractmethod
    def astream(self, prompt: str, system: Optional[str] = None) -> AsyncIterator[str]:
        """Yield the model's answer as text deltas, in order."""


_cached_adapter: Optional[BaseLLMAdapter] = None


def get_llm_adapter() -> BaseLLMAdapter:
    global _cached_adapter
    if _cached_adapter:
        return _cached_adapter

    settings = get_settings()
    if settings.llm_mode == "mock":
        from .mock_adapter import MockLLMAdapter
        _cached_adapter = MockLLMAdapter()

    elif settings.llm_mode == "groq":
        from .groq_adapter import GroqLLMAdapter
        _cached_adapter = GroqLLMAdapter(model=settings.groq_model)

    else:  # openai-compatible (LiteLLM proxy, OpenAI, Gemini gateway, ...)
        from .openai_adapter import OpenAICompatibleAdapter
        _cached_adapter = OpenAICompatibleAdapter(
            model=settings.openai_model,
            base_url=settings.openai_base_url,
        )

    return _cached_adapter


def reset_llm_adapter() -> None:
    global _cached_adapter
    _cached_adapter = None
