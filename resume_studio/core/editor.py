from __future__ import annotations

from typing import Optional

from resume_studio.core.artifact_state import ArtifactStore
from resume_studio.core.repository import DocumentRepository, DocumentVersion
from resume_studio.core.scheduler import Debouncer, Scheduler
from resume_studio.core.versions import VersionNavigator
from resume_studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class EditorSurface:
    """Binds the free-text editor to the artifact store and the document history.

    Keystrokes land in a local buffer at once. Writing them back to the store
    and persisting a snapshot goes through a separate, slower debounce than
    the compile trigger.
    """

    def __init__(
        self,
        store: ArtifactStore,
        navigator: VersionNavigator,
        repository: DocumentRepository,
        *,
        debounce_seconds: float = 2.0,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._store = store
        self._navigator = navigator
        self._repository = repository
        self._buffer = store.get().content
        self._dirty = False
        self._last_persisted: Optional[str] = None
        self._last_error: Optional[str] = None
        self._debouncer = Debouncer(
            debounce_seconds, self._persist, scheduler=scheduler, name="editor-persist"
        )

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def content(self) -> str:
        """What the editor displays: a historical snapshot or the live buffer."""
        if not self._navigator.is_current_version:
            return self._navigator.effective_content()
        return self._buffer

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def last_persisted(self) -> Optional[str]:
        return self._last_persisted

    @property
    def read_only(self) -> bool:
        return (
            self._store.get().status == "streaming"
            or self._store.metadata.is_read_only
            or not self._navigator.is_current_version
        )

    def mark_persisted(self, content: Optional[str]) -> None:
        self._last_persisted = content

    def edit(self, text: str) -> bool:
        if self.read_only:
            LOGGER.debug("Ignoring edit while editor is read-only")
            return False
        self._buffer = text
        if text == self._last_persisted and text == self._store.get().content:
            self._dirty = False
            self._debouncer.cancel()
            return True
        self._dirty = True
        self._debouncer.trigger(text)
        return True

    def on_external_update(self, content: str) -> None:
        """Content changed outside the editor (stream, history load)."""
        if self._store.get().status == "streaming":
            # The stream owns the document until it finishes
            self._debouncer.cancel()
            self._dirty = False
            self._buffer = content
            return
        if self._dirty:
            return
        self._buffer = content

    async def _persist(self, text: str) -> Optional[DocumentVersion]:
        state = self._store.get()
        if state.status == "streaming":
            LOGGER.debug("Dropping local edit that raced with a model stream")
            return None

        self._store.patch(content=text)
        self._store.sync(text)

        if text == self._last_persisted:
            self._settle(text)
            return None
        if not state.document_id:
            LOGGER.debug("No document id yet; keeping edit in memory only")
            return None

        try:
            version = await self._repository.append_version(
                state.document_id,
                title=state.title,
                content=text,
                kind=state.kind,
            )
        except Exception as exc:
            # No automatic retry: the next debounce cycle persists the current buffer
            LOGGER.error("Failed to persist document %s: %s", state.document_id, exc)
            self._last_error = str(exc)
            return None

        self._last_error = None
        self._last_persisted = text
        self._settle(text)
        if version is not None:
            self._navigator.load([*self._navigator.history, version])
        return version

    def _settle(self, text: str) -> None:
        # A newer keystroke may have arrived while the write was in flight
        if self._buffer == text:
            self._dirty = False

    async def flush(self) -> None:
        """Persist a pending edit now and wait for writes already in flight."""
        task = self._debouncer.flush()
        if task is not None:
            await task
        await self._debouncer.drain()

    async def aclose(self) -> None:
        await self.flush()
