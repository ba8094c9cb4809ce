from __future__ import annotations

import difflib
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel

from resume_studio.core.artifact_state import ArtifactStore, ViewMode
from resume_studio.core.repository import DocumentVersion

VersionDirection = Literal["next", "prev", "toggle", "latest"]


class VersionCursor(BaseModel):
    index: int
    total: int


class VersionNavigator:
    """Cursor over a document's persisted history.

    The view mode lives in the store's metadata so the editor and the API read
    a single value. Indices are clamped rather than rejected because history
    can be refreshed while the user is navigating.
    """

    def __init__(self, store: ArtifactStore, *, is_latex: bool = True) -> None:
        self._store = store
        self._is_latex = is_latex
        self._history: List[DocumentVersion] = []
        self._index = -1

    @property
    def history(self) -> List[DocumentVersion]:
        return list(self._history)

    @property
    def total(self) -> int:
        return len(self._history)

    @property
    def index(self) -> int:
        return self._index

    @property
    def cursor(self) -> VersionCursor:
        return VersionCursor(index=self._index, total=self.total)

    @property
    def mode(self) -> ViewMode:
        return self._store.metadata.mode

    @property
    def is_current_version(self) -> bool:
        if not self._history:
            return True
        return self._index == len(self._history) - 1

    def load(self, history: Sequence[DocumentVersion]) -> Optional[DocumentVersion]:
        """Replace the history and jump to the most recent snapshot."""
        self._history = list(history)
        self._index = len(self._history) - 1
        return self._history[-1] if self._history else None

    def advance(self, direction: VersionDirection) -> VersionCursor:
        if direction == "latest":
            self._index = len(self._history) - 1
            self._store.patch_metadata(mode="edit")
        elif direction == "toggle":
            self._store.update_metadata(self._toggled)
        elif direction == "prev":
            if self._index > 0:
                self._index -= 1
        elif direction == "next":
            if self._index < len(self._history) - 1:
                self._index += 1
        self._index = self._clamp(self._index)
        return self.cursor

    def _toggled(self, metadata):
        if self._is_latex:
            mode = "edit" if metadata.mode == "latex" else "latex"
        else:
            mode = "edit" if metadata.mode == "diff" else "diff"
        return metadata.model_copy(update={"mode": mode})

    def _clamp(self, index: int) -> int:
        if not self._history:
            return -1
        return max(0, min(index, len(self._history) - 1))

    def content_at(self, index: int) -> str:
        if index < 0 or index >= len(self._history):
            return ""
        return self._history[index].content

    def effective_content(self, live: Optional[str] = None) -> str:
        if live is None:
            live = self._store.get().content
        if self.is_current_version:
            return live
        return self.content_at(self._index)

    def diff(self) -> str:
        """Unified diff between the previous snapshot and the one under the cursor."""
        if self._index <= 0:
            return ""
        old = self.content_at(self._index - 1)
        new = self.content_at(self._index)
        return "".join(
            difflib.unified_diff(
                old.splitlines(keepends=True),
                new.splitlines(keepends=True),
                fromfile=f"version-{self._index}",
                tofile=f"version-{self._index + 1}",
            )
        )
