from __future__ import annotations

import itertools
import time
import traceback
from typing import Callable, Optional

from pydantic import BaseModel, computed_field

from resume_studio.compiler.base import BaseLatexCompiler, CompileError
from resume_studio.core.handles import DisplayHandle, HandleRegistry, get_handle_registry
from resume_studio.core.scheduler import Debouncer, Scheduler
from resume_studio.utils.logging import get_logger

LOGGER = get_logger(__name__)

NO_CONTENT_ERROR = "No LaTeX content provided."


class PreviewState(BaseModel):
    loading: bool = False
    error: Optional[str] = None
    artifact_handle: Optional[str] = None
    log: Optional[str] = None
    page_number: int = 1
    total_pages: Optional[int] = None

    @computed_field  # type: ignore[misc]
    @property
    def pdf_url(self) -> Optional[str]:
        if self.artifact_handle is None:
            return None
        return f"/api/previews/{self.artifact_handle}"


class CompileJob(BaseModel):
    source_snapshot: str
    request_token: int
    started_at: float


PreviewListener = Callable[[PreviewState], None]


class CompilePreviewController:
    """Debounced compile pipeline that owns the preview's single display handle.

    Each compile is tagged with an increasing token; only the most recently
    issued token may write the preview state. Late results from superseded
    jobs are dropped before any handle is created for them.
    """

    def __init__(
        self,
        compiler: BaseLatexCompiler,
        *,
        registry: Optional[HandleRegistry] = None,
        debounce_seconds: float = 1.0,
        scheduler: Optional[Scheduler] = None,
        on_change: Optional[PreviewListener] = None,
    ) -> None:
        self._compiler = compiler
        self._registry = registry or get_handle_registry()
        self._on_change = on_change
        self._debouncer = Debouncer(
            debounce_seconds, self._run, scheduler=scheduler, name="compile-preview"
        )
        self._tokens = itertools.count(1)
        self._latest_token = 0
        self._last_source: Optional[str] = None
        self._compiled_source: Optional[str] = None
        self._handle: Optional[DisplayHandle] = None
        self._job: Optional[CompileJob] = None
        self._closed = False
        self._state = PreviewState()

    @property
    def state(self) -> PreviewState:
        return self._state

    @property
    def handle(self) -> Optional[DisplayHandle]:
        return self._handle

    @property
    def compiled_source(self) -> Optional[str]:
        """Source behind the live handle, if any."""
        if self._handle is None:
            return None
        return self._compiled_source

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    @property
    def closed(self) -> bool:
        return self._closed

    def schedule(self, content: str) -> None:
        """Restart the quiet window; the compile fires once content stops changing."""
        if self._closed:
            return
        self._debouncer.trigger(content)

    async def compile_now(self, content: str) -> PreviewState:
        self._debouncer.cancel()
        await self._run(content, force=True)
        return self._state

    async def wait_idle(self) -> None:
        await self._debouncer.drain()

    async def _run(self, content: str, force: bool = False) -> None:
        if self._closed:
            return

        if not content:
            self._latest_token = next(self._tokens)
            self._last_source = None
            self._job = None
            self._release_handle()
            self._set_state(
                loading=False,
                error=NO_CONTENT_ERROR,
                artifact_handle=None,
                log=None,
            )
            return

        if not force and content == self._last_source and self._state.error is None:
            LOGGER.debug("Skipping compile of unchanged content")
            return

        token = next(self._tokens)
        self._latest_token = token
        self._last_source = content
        self._job = CompileJob(source_snapshot=content, request_token=token, started_at=time.time())
        self._set_state(loading=True, error=None, log=None)

        try:
            pdf = await self._compiler.compile(content)
        except CompileError as exc:
            if self._is_stale(token):
                return
            self._fail(exc.message, exc.log or str(exc))
            return
        except Exception as exc:
            if self._is_stale(token):
                return
            LOGGER.error("Failed to fetch or compile LaTeX: %s", exc)
            self._fail(f"Failed to compile: {exc}", "".join(traceback.format_exception(exc)))
            return

        if self._is_stale(token):
            LOGGER.debug("Discarding stale compile result (token %d < %d)", token, self._latest_token)
            return

        new_handle = self._registry.create(pdf)
        self._compiled_source = content
        previous, self._handle = self._handle, new_handle
        if previous is not None:
            previous.close()
        self._job = None
        self._set_state(
            loading=False,
            error=None,
            log=None,
            artifact_handle=new_handle.key,
            page_number=1,
            total_pages=None,
        )

    def _is_stale(self, token: int) -> bool:
        return self._closed or token != self._latest_token

    def _fail(self, message: str, log: Optional[str]) -> None:
        self._job = None
        # A failed source must be recompilable without edits
        self._last_source = None
        self._release_handle()
        self._set_state(loading=False, error=message, log=log, artifact_handle=None)

    def _release_handle(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def _set_state(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)
        if self._on_change is None:
            return
        try:
            self._on_change(self._state)
        except Exception:
            LOGGER.exception("Preview listener failed")

    # Renderer callbacks

    def on_document_loaded(self, num_pages: int) -> PreviewState:
        self._set_state(total_pages=max(num_pages, 0), loading=False)
        return self._state

    def on_document_load_error(self, message: str) -> PreviewState:
        self._release_handle()
        self._set_state(
            error=f"Failed to load PDF: {message}",
            loading=False,
            artifact_handle=None,
        )
        return self._state

    def set_page(self, page_number: int) -> PreviewState:
        upper = self._state.total_pages or 1
        self._set_state(page_number=max(1, min(page_number, upper)))
        return self._state

    async def aclose(self) -> None:
        """Teardown: drop any pending compile and release the held handle."""
        if self._closed:
            return
        self._closed = True
        self._debouncer.cancel()
        self._release_handle()
        self._job = None
        self._state = self._state.model_copy(update={"loading": False, "artifact_handle": None})
        LOGGER.debug("Preview controller closed")
