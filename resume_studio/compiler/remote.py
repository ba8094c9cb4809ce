from __future__ import annotations

import json
import logging
import time
import traceback
from typing import Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from resume_studio.utils.logging import get_logger

from .base import BaseLatexCompiler, CompileError

LOGGER = get_logger(__name__)


class RemoteLatexCompiler(BaseLatexCompiler):
    """Client for the external ``POST /compile {"source": ...}`` service."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 60.0,
        max_attempts: int = 2,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max_attempts
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def compile(self, source: str) -> bytes:
        started = time.monotonic()
        try:
            response = await self._post(source)
        except httpx.HTTPError as exc:
            LOGGER.error("LaTeX compilation request failed: %s", exc)
            raise CompileError(
                str(exc) or exc.__class__.__name__,
                log="".join(traceback.format_exception(exc)),
            ) from exc

        LOGGER.info(
            "Compile API request completed in %dms (status=%d)",
            (time.monotonic() - started) * 1000,
            response.status_code,
        )

        if not response.is_success:
            raise self._error_from_response(response)

        pdf = response.content
        if not pdf.startswith(b"%PDF"):
            raise CompileError(
                "Compilation service returned a malformed PDF",
                log=response.text[:2000] if pdf else None,
                status_code=response.status_code,
            )
        LOGGER.info("Received PDF from compile API (%d bytes)", len(pdf))
        return pdf

    async def _post(self, source: str) -> httpx.Response:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            stop=stop_after_attempt(self.max_attempts),
            before_sleep=before_sleep_log(LOGGER, logging.INFO),
            reraise=True,
        ):
            with attempt:
                return await self._client.post(
                    f"{self.base_url}/compile",
                    json={"source": source},
                )
        raise RuntimeError("unreachable")  # pragma: no cover

    @staticmethod
    def _error_from_response(response: httpx.Response) -> CompileError:
        try:
            error_data = response.json()
        except ValueError:
            LOGGER.error("Compile API error %d with unparseable body", response.status_code)
            return CompileError(
                f"HTTP error {response.status_code}: {response.reason_phrase}",
                log=response.text[:2000] or None,
                status_code=response.status_code,
            )

        message = None
        if isinstance(error_data, dict):
            message = error_data.get("message")
        LOGGER.error("LaTeX compilation API error: %s %s", response.status_code, error_data)
        return CompileError(
            str(message) if message else f"API returned status {response.status_code}",
            log=json.dumps(error_data),
            status_code=response.status_code,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
