from __future__ import annotations

from typing import Dict, Optional
from uuid import uuid4

from resume_studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DisplayHandle:
    """Releasable reference to compiled preview bytes (the object-URL analogue)."""

    def __init__(self, registry: "HandleRegistry", key: str, media_type: str) -> None:
        self._registry = registry
        self.key = key
        self.media_type = media_type
        self._closed = False

    @property
    def url(self) -> str:
        return f"/api/previews/{self.key}"

    @property
    def closed(self) -> bool:
        return self._closed

    def read(self) -> bytes:
        data = self._registry.get(self.key)
        if data is None:
            raise KeyError(self.key)
        return data

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._registry.release(self.key)

    def __enter__(self) -> "DisplayHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "live"
        return f"<DisplayHandle {self.key} {state}>"


class HandleRegistry:
    """Owns the bytes behind every live display handle."""

    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}

    def create(self, data: bytes, media_type: str = "application/pdf") -> DisplayHandle:
        key = uuid4().hex
        self._blobs[key] = data
        LOGGER.debug("Created display handle %s (%d bytes)", key, len(data))
        return DisplayHandle(self, key, media_type)

    def get(self, key: str) -> Optional[bytes]:
        return self._blobs.get(key)

    def release(self, key: str) -> None:
        if self._blobs.pop(key, None) is not None:
            LOGGER.debug("Released display handle %s", key)

    @property
    def live_count(self) -> int:
        return len(self._blobs)


_registry: Optional[HandleRegistry] = None


def get_handle_registry() -> HandleRegistry:
    global _registry
    if _registry is None:
        _registry = HandleRegistry()
    return _registry
