from __future__ import annotations

import asyncio
from typing import Any, AsyncIterable, Iterable, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from resume_studio.core.artifact_state import ArtifactState, ArtifactStore
from resume_studio.core.kinds import ArtifactKind
from resume_studio.utils.logging import get_logger

LOGGER = get_logger(__name__)

TEXT_DELTA = "text-delta"
FINISH = "finish"


class StreamEvent(BaseModel):
    """One part of a model response: ``text-delta``, a kind-specific delta, or ``finish``."""

    type: str
    content: Any = Field(default=None)


def parse_stream_event(raw: Union[StreamEvent, Mapping[str, Any]]) -> Optional[StreamEvent]:
    if isinstance(raw, StreamEvent):
        return raw
    try:
        return StreamEvent.model_validate(raw)
    except ValidationError as exc:
        LOGGER.warning("Dropping malformed stream event: %s", exc)
        return None


EventSource = Union[AsyncIterable[Any], Iterable[Any]]


class StreamReconciler:
    """Folds a model stream into the artifact store, one event at a time.

    Free text is accumulated outside the store and re-scanned for a LaTeX
    block after every chunk; kind-specific deltas are appended verbatim.
    """

    def __init__(self, store: ArtifactStore, kind: ArtifactKind) -> None:
        self._store = store
        self._kind = kind
        self._buffer = ""

    @property
    def buffer(self) -> str:
        return self._buffer

    def reset(self) -> None:
        self._buffer = ""

    async def consume(self, events: EventSource) -> ArtifactState:
        self.reset()
        try:
            if hasattr(events, "__aiter__"):
                async for raw in events:  # type: ignore[union-attr]
                    self._apply_raw(raw)
            else:
                for raw in events:  # type: ignore[union-attr]
                    self._apply_raw(raw)
        except (Exception, asyncio.CancelledError):
            LOGGER.warning("Model stream aborted; keeping partial content")
            self._finish()
            raise
        # A stream that ends without an explicit finish still leaves the artifact idle
        if self._store.get().status == "streaming":
            self._finish()
        return self._store.get()

    def _apply_raw(self, raw: Any) -> None:
        event = parse_stream_event(raw)
        if event is not None:
            self.apply(event)

    def apply(self, event: StreamEvent) -> None:
        if event.type == TEXT_DELTA:
            self._on_text_delta(event.content)
        elif event.type == self._kind.delta_type:
            self._on_document_delta(event.content)
        elif event.type == FINISH:
            self._finish()
        else:
            LOGGER.debug("Ignoring stream event of type %s", event.type)

    def _on_text_delta(self, chunk: Any) -> None:
        if not isinstance(chunk, str) or not chunk:
            return
        self._buffer += chunk
        extracted = self._kind.extract(self._buffer)
        if extracted is None:
            return

        previous = self._store.get().content
        self._store.update(
            lambda current: current.model_copy(
                update={
                    "content": extracted,
                    "is_visible": True,
                    "status": "streaming",
                    "title": self._kind.title,
                    "kind": self._kind.kind,
                }
            )
        )
        self._store.patch_metadata(is_read_only=True, active_tab="latex")
        if extracted != previous:
            self._store.sync(extracted)

    def _on_document_delta(self, chunk: Any) -> None:
        if not isinstance(chunk, str):
            return
        state = self._store.update(
            lambda current: current.model_copy(
                update={
                    "content": current.content + chunk,
                    "is_visible": True,
                    "status": "streaming",
                }
            )
        )
        self._store.patch_metadata(is_read_only=True, active_tab="latex")
        if chunk:
            self._store.sync(state.content)

    def _finish(self) -> None:
        self._store.patch(status="idle")
        self._store.patch_metadata(is_read_only=False)
