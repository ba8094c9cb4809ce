from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional
from uuid import uuid4

from resume_studio.compiler.base import get_compiler
from resume_studio.core.event_bus import emit_session_event
from resume_studio.core.repository import DocumentRepository
from resume_studio.core.session import ArtifactSession
from resume_studio.settings import get_settings
from resume_studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class SessionNotFound(KeyError):
    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id


class SessionBusy(RuntimeError):
    pass


class SessionManager:
    """Registry of live sessions and the one background task each may run."""

    def __init__(self) -> None:
        self._sessions: Dict[str, ArtifactSession] = {}
        self._tasks: Dict[str, asyncio.Task[Any]] = {}

    async def create(
        self,
        *,
        repository: Optional[DocumentRepository] = None,
        document_id: Optional[str] = None,
        title: Optional[str] = None,
        kind: str = "resume",
        **overrides: Any,
    ) -> ArtifactSession:
        if repository is None:
            from resume_studio.memory.repository import SqlDocumentRepository
            repository = SqlDocumentRepository()

        settings = get_settings()
        options: Dict[str, Any] = {
            "compiler": get_compiler(),
            "compile_debounce_seconds": settings.compile_debounce_seconds,
            "persist_debounce_seconds": settings.persist_debounce_seconds,
        }
        options.update(overrides)

        session_id = str(uuid4())
        session = ArtifactSession(
            session_id,
            repository=repository,
            kind=kind,
            document_id=document_id,
            title=title,
            on_event=self._forward,
            **options,
        )
        if document_id:
            try:
                await session.refresh_history()
            except Exception:
                await session.aclose()
                raise
        self._sessions[session_id] = session
        LOGGER.info("Session %s opened for document %s", session_id, session.document_id)
        return session

    def get(self, session_id: str) -> ArtifactSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def list(self) -> List[ArtifactSession]:
        return list(self._sessions.values())

    def is_busy(self, session_id: str) -> bool:
        task = self._tasks.get(session_id)
        return task is not None and not task.done()

    def _forward(self, session_id: str, event_type: str, data: Dict[str, Any]) -> None:
        emit_session_event(session_id, event_type, type=event_type, data=data)

    def start_task(
        self,
        session_id: str,
        factory: Callable[[ArtifactSession], Awaitable[Any]],
        *,
        label: str,
    ) -> asyncio.Task[Any]:
        """Run a stream (chat, generate, revise) in the background for a session."""
        session = self.get(session_id)
        if self.is_busy(session_id):
            raise SessionBusy(f"Session {session_id} is already streaming")

        task = asyncio.create_task(self._run(session, factory, label))
        self._tasks[session_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(session_id, None))
        return task

    async def _run(
        self,
        session: ArtifactSession,
        factory: Callable[[ArtifactSession], Awaitable[Any]],
        label: str,
    ) -> Any:
        try:
            return await factory(session)
        except asyncio.CancelledError:
            LOGGER.info("%s cancelled for session %s", label, session.id)
            raise
        except Exception as e:
            LOGGER.exception("%s failed for session %s: %s", label, session.id, e)
            emit_session_event(
                session.id,
                f"{label} failed: {str(e)[:500]}",
                type="error",
                level="error",
            )
            return None

    async def wait(self, session_id: str) -> None:
        task = self._tasks.get(session_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def request_stop(self, session_id: str) -> bool:
        task = self._tasks.get(session_id)
        if task and not task.done():
            task.cancel()
            return True
        return False

    async def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(session_id)
        await self.request_stop(session_id)
        await self.wait(session_id)
        await session.aclose()

    async def shutdown(self) -> None:
        for session_id in list(self._sessions):
            try:
                await self.close(session_id)
            except Exception:
                LOGGER.exception("Failed to close session %s", session_id)


session_manager = SessionManager()
