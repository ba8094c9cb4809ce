from __future__ import annotations

from typing import Callable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from resume_studio.utils.logging import get_logger

LOGGER = get_logger(__name__)

ArtifactStatus = Literal["streaming", "idle"]
ActiveTab = Literal["latex", "preview"]
ViewMode = Literal["edit", "diff", "latex"]


class ArtifactState(BaseModel):
    model_config = ConfigDict(frozen=True)

    document_id: Optional[str] = None
    title: str = "Resume"
    kind: str = "resume"
    content: str = ""
    is_visible: bool = False
    status: ArtifactStatus = "idle"


class ArtifactMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_read_only: bool = False
    active_tab: ActiveTab = "latex"
    is_fullscreen: bool = False
    mode: ViewMode = "edit"


StateListener = Callable[[ArtifactState, ArtifactState], None]
MetadataListener = Callable[[ArtifactMetadata, ArtifactMetadata], None]
SyncCallback = Callable[[str], None]


class ArtifactStore:
    """Single mutable cell for a session's artifact.

    Every writer passes a transform that receives the current snapshot and
    returns the replacement, so concurrent writers never drop each other's
    fields. Snapshots are frozen; the swap happens in one step and listeners
    run afterwards with ``(old, new)``.
    """

    def __init__(
        self,
        initial: Optional[ArtifactState] = None,
        metadata: Optional[ArtifactMetadata] = None,
    ) -> None:
        self._state = initial or ArtifactState()
        self._metadata = metadata or ArtifactMetadata()
        self._listeners: List[StateListener] = []
        self._metadata_listeners: List[MetadataListener] = []
        self._sync_callback: Optional[SyncCallback] = None

    def get(self) -> ArtifactState:
        return self._state

    @property
    def metadata(self) -> ArtifactMetadata:
        return self._metadata

    def update(self, transform: Callable[[ArtifactState], ArtifactState]) -> ArtifactState:
        old = self._state
        new = transform(old)
        if new == old:
            return old
        self._state = new
        for listener in list(self._listeners):
            try:
                listener(old, new)
            except Exception:
                LOGGER.exception("Artifact listener failed")
        return new

    def patch(self, **changes) -> ArtifactState:
        return self.update(lambda current: current.model_copy(update=changes))

    def update_metadata(
        self, transform: Callable[[ArtifactMetadata], ArtifactMetadata]
    ) -> ArtifactMetadata:
        old = self._metadata
        new = transform(old)
        if new == old:
            return old
        self._metadata = new
        for listener in list(self._metadata_listeners):
            try:
                listener(old, new)
            except Exception:
                LOGGER.exception("Metadata listener failed")
        return new

    def patch_metadata(self, **changes) -> ArtifactMetadata:
        return self.update_metadata(lambda current: current.model_copy(update=changes))

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def subscribe_metadata(self, listener: MetadataListener) -> Callable[[], None]:
        self._metadata_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._metadata_listeners:
                self._metadata_listeners.remove(listener)

        return unsubscribe

    # Sync callback mirrors content into a second consumer (e.g. a parent editor)

    def set_sync_callback(self, callback: Optional[SyncCallback]) -> None:
        self._sync_callback = callback

    def sync(self, content: str) -> None:
        if self._sync_callback is None:
            return
        try:
            self._sync_callback(content)
        except Exception:
            LOGGER.exception("Content sync callback failed")

    # Visibility

    def show(self) -> ArtifactState:
        return self.patch(is_visible=True)

    def hide(self) -> ArtifactState:
        return self.patch(is_visible=False)

    def toggle(self) -> ArtifactState:
        return self.update(lambda current: current.model_copy(update={"is_visible": not current.is_visible}))

    def close(self, *, reset_sync: bool = True) -> ArtifactState:
        state = self.hide()
        if reset_sync:
            self.sync("")
        return state
