from __future__ import annotations

import asyncio
from typing import AsyncIterator, Optional

from .adapter import BaseLLMAdapter

MOCK_RESUME = (
    "\\documentclass[11pt]{article}\n"
    "\\usepackage[margin=0.75in]{geometry}\n"
    "\\begin{document}\n"
    "\\section*{Jane Doe}\n"
    "jane@example.com\n"
    "\\section*{Experience}\n"
    "Software Engineer, Example Corp (2021--present)\n"
    "\\section*{Education}\n"
    "B.Sc. Computer Science, Example University\n"
    "\\section*{Skills}\n"
    "Python, LaTeX, FastAPI\n"
    "\\end{document}"
)


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic offline model: always answers with the same resume."""

    def __init__(self, chunk_size: int = 24, delay: float = 0.0) -> None:
        self.chunk_size = chunk_size
        self.delay = delay
        self.prompts: list[str] = []

    async def astream(self, prompt: str, system: Optional[str] = None) -> AsyncIterator[str]:
        self.prompts.append(prompt)
        if system and "```latex" in system:
            # Chat turns answer in prose around a fenced block
            text = (
                "I'll create a professional LaTeX resume for you. Here it is:\n\n"
                f"```latex\n{MOCK_RESUME}\n```\n\n"
                "The resume keeps a single-column layout so ATS parsers read it in order."
            )
        else:
            text = MOCK_RESUME

        for start in range(0, len(text), self.chunk_size):
            if self.delay:
                await asyncio.sleep(self.delay)
            yield text[start : start + self.chunk_size]
