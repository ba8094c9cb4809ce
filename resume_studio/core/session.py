from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Literal, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field

from resume_studio.artifacts.handlers import get_document_handler
from resume_studio.compiler.base import BaseLatexCompiler
from resume_studio.core.artifact_state import ActiveTab, ArtifactMetadata, ArtifactState, ArtifactStore
from resume_studio.core.editor import EditorSurface
from resume_studio.core.extractor import strip_latex
from resume_studio.core.handles import HandleRegistry
from resume_studio.core.kinds import get_kind
from resume_studio.core.preview import CompilePreviewController, PreviewState
from resume_studio.core.reconciler import FINISH, TEXT_DELTA, EventSource, StreamEvent, StreamReconciler
from resume_studio.core.repository import DocumentRepository, DocumentVersion
from resume_studio.core.scheduler import Scheduler
from resume_studio.core.versions import VersionCursor, VersionDirection, VersionNavigator
from resume_studio.llm.adapter import BaseLLMAdapter, get_llm_adapter
from resume_studio.llm.prompts import CHAT_SYSTEM_PROMPT, chat_prompt
from resume_studio.utils.logging import get_logger

LOGGER = get_logger(__name__)

ExportFormat = Literal["pdf", "tex"]
SessionListener = Callable[[str, str, Dict[str, Any]], None]


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @computed_field  # type: ignore[misc]
    @property
    def display(self) -> str:
        """Transcript text; the LaTeX block is shown in the editor instead."""
        if self.role != "assistant":
            return self.content
        return strip_latex(self.content).strip()


class ArtifactSession:
    """Everything one chat session owns: store, history, stream, preview and editor.

    Sessions are independent objects; nothing here is process-global except
    the display handle registry they share.
    """

    def __init__(
        self,
        session_id: str,
        *,
        repository: DocumentRepository,
        compiler: BaseLatexCompiler,
        kind: str = "resume",
        document_id: Optional[str] = None,
        title: Optional[str] = None,
        registry: Optional[HandleRegistry] = None,
        scheduler: Optional[Scheduler] = None,
        compile_debounce_seconds: float = 1.0,
        persist_debounce_seconds: float = 2.0,
        llm_adapter: Optional[BaseLLMAdapter] = None,
        on_event: Optional[SessionListener] = None,
    ) -> None:
        self.id = session_id
        self.kind = get_kind(kind)
        self.repository = repository
        self._compiler = compiler
        self._llm_adapter = llm_adapter
        self._on_event = on_event
        self.messages: List[ChatMessage] = []

        self.store = ArtifactStore(
            ArtifactState(
                document_id=document_id or str(uuid4()),
                title=title or "Resume",
                kind=self.kind.kind,
            ),
            metadata=self.kind.initial_metadata,
        )
        self.navigator = VersionNavigator(self.store, is_latex=self.kind.is_latex)
        self.reconciler = StreamReconciler(self.store, self.kind)
        self.preview = CompilePreviewController(
            compiler,
            registry=registry,
            debounce_seconds=compile_debounce_seconds,
            scheduler=scheduler,
            on_change=self._on_preview_change,
        )
        self.editor = EditorSurface(
            self.store,
            self.navigator,
            repository,
            debounce_seconds=persist_debounce_seconds,
            scheduler=scheduler,
        )
        self._unsubscribe = [
            self.store.subscribe(self._on_artifact_change),
            self.store.subscribe_metadata(self._on_metadata_change),
        ]
        self._closed = False

    @property
    def document_id(self) -> str:
        return self.store.get().document_id or ""

    @property
    def llm_adapter(self) -> BaseLLMAdapter:
        return self._llm_adapter or get_llm_adapter()

    # Listeners

    def _on_artifact_change(self, old: ArtifactState, new: ArtifactState) -> None:
        if new.content != old.content:
            self.editor.on_external_update(new.content)
            if self.navigator.is_current_version:
                self.preview.schedule(new.content)
        self._notify("artifact", new.model_dump())

    def _on_metadata_change(self, old: ArtifactMetadata, new: ArtifactMetadata) -> None:
        self._notify("metadata", new.model_dump())

    def _on_preview_change(self, state: PreviewState) -> None:
        self._notify("preview", state.model_dump())

    def _notify(self, event_type: str, data: Dict[str, Any]) -> None:
        if self._on_event is None:
            return
        try:
            self._on_event(self.id, event_type, data)
        except Exception:
            LOGGER.exception("Session listener failed for %s", self.id)

    # History

    async def refresh_history(self) -> List[DocumentVersion]:
        """Reload snapshots; skipped while a stream still owns the document."""
        if self.store.get().status == "streaming":
            return self.navigator.history
        versions = await self.repository.list_versions(self.document_id)
        latest = self.navigator.load(versions)
        if latest is not None:
            self.editor.mark_persisted(latest.content)
            self.store.patch(content=latest.content, title=latest.title)
        self._notify("versions", self.navigator.cursor.model_dump())
        return versions

    async def navigate(self, direction: VersionDirection) -> VersionCursor:
        cursor = self.navigator.advance(direction)
        self.preview.schedule(self.navigator.effective_content())
        self._notify("versions", cursor.model_dump())
        return cursor

    async def restore_version(self) -> Optional[DocumentVersion]:
        """Make the snapshot under the cursor current by appending it again."""
        if self.navigator.is_current_version:
            return None
        state = self.store.get()
        version = await self.repository.append_version(
            self.document_id,
            title=state.title,
            content=self.navigator.effective_content(),
            kind=state.kind,
        )
        await self.refresh_history()
        return version

    # Streams

    async def run_stream(self, events: EventSource) -> ArtifactState:
        return await self.reconciler.consume(events)

    async def chat(self, message: str) -> ChatMessage:
        """Send a chat turn and fold the reply into the artifact as it streams."""
        self.messages.append(ChatMessage(role="user", content=message))
        prompt = chat_prompt(message, self.store.get().content)
        reply: List[str] = []

        async def events() -> AsyncIterator[StreamEvent]:
            async for delta in self.llm_adapter.astream(prompt, system=CHAT_SYSTEM_PROMPT):
                reply.append(delta)
                yield StreamEvent(type=TEXT_DELTA, content=delta)
            yield StreamEvent(type=FINISH)

        try:
            await self.reconciler.consume(events())
        finally:
            answer = ChatMessage(role="assistant", content="".join(reply))
            if answer.content:
                self.messages.append(answer)

        if self.kind.extract(answer.content) is not None:
            await self._persist_current()
        return answer

    async def generate(self, title: str) -> ArtifactState:
        """Create the document from a title through the kind's document handler."""
        handler = get_document_handler(self.kind.kind)
        self.store.patch(title=title, content="")
        await self.reconciler.consume(
            handler.create_document(
                document_id=self.document_id,
                title=title,
                repository=self.repository,
                adapter=self._llm_adapter,
            )
        )
        await self.refresh_history()
        return self.store.get()

    async def revise(self, description: str) -> ArtifactState:
        handler = get_document_handler(self.kind.kind)
        state = self.store.get()
        document = DocumentVersion(
            id=self.document_id,
            title=state.title,
            kind=state.kind,
            content=state.content,
            created_at=datetime.now(timezone.utc),
        )
        # Document deltas append, so the rewrite starts from an empty body
        self.store.patch(content="")
        await self.reconciler.consume(
            handler.update_document(
                document=document,
                description=description,
                repository=self.repository,
                adapter=self._llm_adapter,
            )
        )
        await self.refresh_history()
        return self.store.get()

    async def _persist_current(self) -> Optional[DocumentVersion]:
        state = self.store.get()
        try:
            version = await self.repository.append_version(
                self.document_id, title=state.title, content=state.content, kind=state.kind
            )
        except Exception as exc:
            LOGGER.error("Failed to persist streamed content for %s: %s", self.document_id, exc)
            return None
        await self.refresh_history()
        return version

    # Editor and user actions

    def edit(self, content: str) -> bool:
        return self.editor.edit(content)

    def copy(self) -> str:
        return self.navigator.effective_content()

    async def export(self, fmt: ExportFormat = "pdf") -> Tuple[bytes, str, str]:
        content = self.navigator.effective_content()
        if fmt == "tex":
            return content.encode("utf-8"), "application/x-tex", self.kind.source_filename
        handle = self.preview.handle
        if handle is not None and self.preview.compiled_source == content:
            data = handle.read()
        else:
            data = await self._compiler.compile(content)
        return data, "application/pdf", self.kind.preview_filename

    def show(self) -> ArtifactState:
        return self.store.show()

    def close(self) -> ArtifactState:
        return self.store.close(reset_sync=True)

    def toggle_fullscreen(self) -> ArtifactMetadata:
        return self.store.update_metadata(
            lambda m: m.model_copy(update={"is_fullscreen": not m.is_fullscreen})
        )

    def set_active_tab(self, tab: ActiveTab) -> ArtifactMetadata:
        return self.store.patch_metadata(active_tab=tab)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "session_id": self.id,
            "artifact": self.store.get().model_dump(),
            "metadata": self.store.metadata.model_dump(),
            "versions": self.navigator.cursor.model_dump(),
            "is_current_version": self.navigator.is_current_version,
            "editor": {
                "content": self.editor.content,
                "read_only": self.editor.read_only,
                "dirty": self.editor.dirty,
                "last_error": self.editor.last_error,
            },
            "preview": self.preview.state.model_dump(),
        }

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self.editor.aclose()
        finally:
            for unsubscribe in self._unsubscribe:
                unsubscribe()
            await self.preview.aclose()
        LOGGER.info("Session %s closed", self.id)
