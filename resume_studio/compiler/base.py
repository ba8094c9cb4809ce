from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from resume_studio.settings import get_settings


class CompileError(Exception):
    """Compilation failed; ``log`` carries whatever diagnostics the backend produced."""

    def __init__(
        self,
        message: str,
        *,
        log: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.log = log
        self.status_code = status_code


class BaseLatexCompiler(ABC):
    @abstractmethod
    async def compile(self, source: str) -> bytes:
        """Return PDF bytes or raise CompileError."""

    async def aclose(self) -> None:
        return None


_cached_compiler: Optional[BaseLatexCompiler] = None


def get_compiler() -> BaseLatexCompiler:
    global _cached_compiler
    if _cached_compiler:
        return _cached_compiler

    settings = get_settings()
    if settings.compiler_mode == "mock":
        from .mock import MockLatexCompiler
        _cached_compiler = MockLatexCompiler()

    elif settings.compiler_mode == "tectonic":
        from .tectonic import TectonicCompiler
        _cached_compiler = TectonicCompiler(timeout_seconds=settings.compile_timeout_seconds)

    else:  # remote
        from .remote import RemoteLatexCompiler
        _cached_compiler = RemoteLatexCompiler(
            base_url=settings.pdflatex_base_url,
            timeout_seconds=settings.compile_timeout_seconds,
            max_attempts=settings.compile_max_attempts,
        )

    return _cached_compiler


async def reset_compiler() -> None:
    global _cached_compiler
    if _cached_compiler is not None:
        await _cached_compiler.aclose()
    _cached_compiler = None
