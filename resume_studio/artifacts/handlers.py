from __future__ import annotations

from typing import AsyncIterator, Callable, Dict, Optional

from resume_studio.core.reconciler import FINISH, StreamEvent
from resume_studio.core.repository import DocumentRepository, DocumentVersion
from resume_studio.llm.adapter import BaseLLMAdapter, get_llm_adapter
from resume_studio.llm import prompts
from resume_studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DocumentHandler:
    """Server-side generation for one artifact kind.

    ``create_document`` and ``update_document`` stream the model's output as
    the kind's explicit delta events, then persist the finished draft as a new
    snapshot of the document.
    """

    def __init__(
        self,
        *,
        kind: str,
        delta_type: str,
        system_prompt: str,
        create_prompt: Callable[[str], str],
        update_system_prompt: Callable[[str], str],
        adapter: Optional[BaseLLMAdapter] = None,
    ) -> None:
        self.kind = kind
        self.delta_type = delta_type
        self._system_prompt = system_prompt
        self._create_prompt = create_prompt
        self._update_system_prompt = update_system_prompt
        self._adapter = adapter

    @property
    def adapter(self) -> BaseLLMAdapter:
        return self._adapter or get_llm_adapter()

    async def create_document(
        self,
        *,
        document_id: str,
        title: str,
        repository: DocumentRepository,
        adapter: Optional[BaseLLMAdapter] = None,
    ) -> AsyncIterator[StreamEvent]:
        stream = (adapter or self.adapter).astream(self._create_prompt(title), system=self._system_prompt)
        async for event in self._relay(stream, document_id, title, repository):
            yield event

    async def update_document(
        self,
        *,
        document: DocumentVersion,
        description: str,
        repository: DocumentRepository,
        adapter: Optional[BaseLLMAdapter] = None,
    ) -> AsyncIterator[StreamEvent]:
        stream = (adapter or self.adapter).astream(description, system=self._update_system_prompt(document.content))
        async for event in self._relay(stream, document.id, document.title, repository):
            yield event

    async def _relay(
        self,
        stream: AsyncIterator[str],
        document_id: str,
        title: str,
        repository: DocumentRepository,
    ) -> AsyncIterator[StreamEvent]:
        draft = ""
        async for delta in stream:
            draft += delta
            yield StreamEvent(type=self.delta_type, content=delta)

        if draft:
            await repository.append_version(document_id, title=title, content=draft, kind=self.kind)
            LOGGER.info("Document saved: %s, %s, %s", document_id, title, self.kind)
        yield StreamEvent(type=FINISH)


resume_document_handler = DocumentHandler(
    kind="resume",
    delta_type="latex-delta",
    system_prompt=prompts.RESUME_DOCUMENT_SYSTEM_PROMPT,
    create_prompt=prompts.create_resume_prompt,
    update_system_prompt=prompts.update_resume_system_prompt,
)

document_handlers_by_kind: Dict[str, DocumentHandler] = {
    resume_document_handler.kind: resume_document_handler,
}


def get_document_handler(kind: str) -> DocumentHandler:
    try:
        return document_handlers_by_kind[kind]
    except KeyError:
        raise KeyError(f"No document handler for kind: {kind}") from None
