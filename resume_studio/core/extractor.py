"""Detection of fenced LaTeX blocks inside assistant text."""
from __future__ import annotations

import re
from typing import Optional

LATEX_FENCE_OPEN = "```latex\n"

# A block closes at the first "\n```"; while the model is still streaming the
# closer may be missing, so end of input also terminates the block.
_LATEX_BLOCK_PATTERN = re.compile(r"```latex\n([\s\S]*?)(?:\n```|\Z)")


def extract_latex(text: str) -> Optional[str]:
    """Return the body of the first ```latex block in ``text``, or None."""
    if not text:
        return None
    match = _LATEX_BLOCK_PATTERN.search(text)
    return match.group(1) if match else None


def has_latex(text: str) -> bool:
    return extract_latex(text) is not None


def strip_latex(text: str) -> str:
    """Remove the first LaTeX block so the chat transcript only shows prose."""
    if not text:
        return text
    return _LATEX_BLOCK_PATTERN.sub("", text, count=1)
