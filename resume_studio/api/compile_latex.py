from __future__ import annotations

import json
import time
import traceback

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from resume_studio.compiler.base import CompileError, get_compiler
from resume_studio.utils.logging import get_logger

LOGGER = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["compile"])


def _compile_failed(details: str, log) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": "PDF compilation failed", "details": details, "log": log},
    )


@router.post("/compile-latex")
async def compile_latex(request: Request) -> Response:
    try:
        payload = await request.json()
    except json.JSONDecodeError as exc:
        LOGGER.error("Malformed compile request: %s", exc)
        return _compile_failed(str(exc) or "Unknown error during compilation", None)

    source = payload.get("latexSource") if isinstance(payload, dict) else None
    if not source or not isinstance(source, str):
        return JSONResponse(status_code=400, content={"error": "Invalid LaTeX source provided"})

    LOGGER.info("Received LaTeX source for compilation (%d chars)", len(source))
    started = time.perf_counter()
    try:
        pdf = await get_compiler().compile(source)
    except CompileError as exc:
        LOGGER.error("LaTeX compilation failed: %s", exc.message)
        return _compile_failed(exc.message, exc.log)
    except Exception as exc:
        LOGGER.exception("Error during PDF compilation")
        return _compile_failed(
            str(exc) or "Unknown error during compilation",
            "".join(traceback.format_exception(exc)),
        )

    LOGGER.info("Compiled PDF (%d bytes) in %.0fms", len(pdf), (time.perf_counter() - started) * 1000)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": 'inline; filename="resume.pdf"'},
    )
