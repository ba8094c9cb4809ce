from __future__ import annotations

import asyncio
import itertools
import json
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Set, Tuple

from fastapi import WebSocket

from resume_studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class SessionChannel:
    """Watchers of one session and the outbox that feeds them in publish order."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self.sockets: Set[WebSocket] = set()
        self.outbox: asyncio.Queue[Tuple[str, Tuple[WebSocket, ...]]] = asyncio.Queue()
        self.sequence: Iterator[int] = itertools.count(1)
        self.sender: Optional[asyncio.Task[None]] = None

    def enqueue(self, payload: Mapping[str, Any], targets: Tuple[WebSocket, ...]) -> None:
        message = json.dumps({**payload, "seq": next(self.sequence)}, default=str)
        self.outbox.put_nowait((message, targets))


class WSManager:
    """Fans session events out to WebSocket watchers.

    Every frame for a session goes through one sender task, so each watcher
    sees events in the order they were published and a socket never has two
    sends in flight. Recipients are fixed at publish time: a watcher that joins
    later only gets what was published after its greeting.
    """

    def __init__(self, send_timeout: float = 2.0) -> None:
        self._channels: Dict[str, SessionChannel] = {}
        self._send_timeout = send_timeout

    async def connect(
        self,
        session_id: str,
        websocket: WebSocket,
        greeting: Optional[Callable[[], Mapping[str, Any]]] = None,
    ) -> None:
        """Accept the socket and queue its greeting, built once the socket is registered."""
        await websocket.accept()
        channel = self._channels.get(session_id)
        if channel is None:
            channel = self._channels[session_id] = SessionChannel(session_id)
        if channel.sender is None or channel.sender.done():
            channel.sender = asyncio.create_task(self._pump(channel))
        channel.sockets.add(websocket)
        if greeting is not None:
            channel.enqueue(greeting(), (websocket,))

    def disconnect(self, session_id: str, websocket: WebSocket) -> None:
        channel = self._channels.get(session_id)
        if channel is None:
            return
        channel.sockets.discard(websocket)
        if not channel.sockets:
            self._channels.pop(session_id, None)
            if channel.sender is not None:
                channel.sender.cancel()

    def publish(self, session_id: str, payload: Mapping[str, Any]) -> int:
        """Queue an event for everyone watching the session; returns the recipient count."""
        channel = self._channels.get(session_id)
        if channel is None or not channel.sockets:
            return 0
        targets = tuple(channel.sockets)
        channel.enqueue(payload, targets)
        return len(targets)

    def send(self, session_id: str, websocket: WebSocket, payload: Mapping[str, Any]) -> bool:
        """Queue a reply for a single watcher, behind everything already published."""
        channel = self._channels.get(session_id)
        if channel is None or websocket not in channel.sockets:
            return False
        channel.enqueue(payload, (websocket,))
        return True

    async def drain(self, session_id: str) -> None:
        channel = self._channels.get(session_id)
        if channel is not None:
            await channel.outbox.join()

    async def aclose(self) -> None:
        channels = list(self._channels.values())
        self._channels.clear()
        senders = [c.sender for c in channels if c.sender is not None]
        for sender in senders:
            sender.cancel()
        if senders:
            await asyncio.gather(*senders, return_exceptions=True)

    async def _pump(self, channel: SessionChannel) -> None:
        while True:
            message, targets = await channel.outbox.get()
            try:
                live = [ws for ws in targets if ws in channel.sockets]
                delivered = await asyncio.gather(*(self._send(ws, message) for ws in live))
                for ws, ok in zip(live, delivered):
                    if not ok:
                        channel.sockets.discard(ws)
            finally:
                channel.outbox.task_done()

    async def _send(self, websocket: WebSocket, message: str) -> bool:
        try:
            # A slow watcher must not stall the others
            await asyncio.wait_for(websocket.send_text(message), timeout=self._send_timeout)
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            LOGGER.debug("Dropping WS watcher after failed send: %s", e)
            return False


_ws_manager: Optional[WSManager] = None


def get_ws_manager() -> WSManager:
    global _ws_manager
    if _ws_manager is None:
        _ws_manager = WSManager()
    return _ws_manager
