from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

from resume_studio.sandbox.executor import execute_safe
from resume_studio.utils.logging import get_logger

from .base import BaseLatexCompiler, CompileError

LOGGER = get_logger(__name__)


class TectonicCompiler(BaseLatexCompiler):
    """Compiles locally with tectonic; used when no compile service is running."""

    def __init__(self, *, timeout_seconds: float = 60.0, binary: str = "tectonic") -> None:
        self.timeout_seconds = timeout_seconds
        self.binary = binary

    async def compile(self, source: str) -> bytes:
        if shutil.which(self.binary) is None:
            raise CompileError(f"{self.binary} is not installed on server PATH")

        with tempfile.TemporaryDirectory(prefix="resume-studio-") as workdir:
            root = Path(workdir)
            (root / "main.tex").write_text(source, encoding="utf-8")

            result = await execute_safe(
                [self.binary, "main.tex"],
                timeout_seconds=self.timeout_seconds,
                cwd=root,
            )
            if result["timed_out"]:
                raise CompileError(
                    f"Compilation timed out after {self.timeout_seconds:g}s",
                    log=str(result["stderr"])[:2000] or None,
                )
            if result["exit_code"] != 0:
                stderr = str(result["stderr"])[:2000]
                stdout = str(result["stdout"])[:1000]
                # tectonic usually puts errors in stderr
                details = stderr or stdout or "Unknown compilation error"
                LOGGER.warning("tectonic exited with %s", result["exit_code"])
                raise CompileError("PDF compilation failed", log=details)

            pdf = root / "main.pdf"
            if not pdf.exists():
                raise CompileError("PDF was not produced by tectonic", log=str(result["stdout"])[:2000])
            return pdf.read_bytes()
