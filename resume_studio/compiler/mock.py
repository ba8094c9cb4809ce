from __future__ import annotations

from .base import BaseLatexCompiler, CompileError

# Minimal valid PDF (enough for preview wiring and download tests)
MOCK_PDF = (
    b"%PDF-1.4\n1 0 obj<</Type/Catalog/Pages 2 0 R>>endobj\n"
    b"2 0 obj<</Type/Pages/Count 0/Kids[]>>endobj\n"
    b"xref\n0 3\n0000000000 65535 f \n0000000010 00000 n \n0000000062 00000 n \n"
    b"trailer<</Size 3/Root 1 0 R>>\nstartxref\n116\n%%EOF\n"
)


class MockLatexCompiler(BaseLatexCompiler):

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def compile(self, source: str) -> bytes:
        self.calls.append(source)
        if "\\begin{document}" not in source:
            raise CompileError(
                "Missing \\begin{document}",
                log="! LaTeX Error: Missing \\begin{document}.",
            )
        return MOCK_PDF
