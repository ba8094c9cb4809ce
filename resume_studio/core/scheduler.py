from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Optional, Protocol, Set

from resume_studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Schedules timers on the running asyncio loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class Debouncer:
    """Trailing debounce: fires ``callback`` once ``delay`` seconds after the last trigger.

    Every ``trigger`` cancels the pending timer and starts a new one, so N triggers
    inside the quiet window produce a single call with the latest arguments.
    Coroutine callbacks run as tasks tracked by the debouncer so owners can
    ``drain`` them on teardown.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[..., Any],
        *,
        scheduler: Optional[Scheduler] = None,
        name: str = "debounce",
    ) -> None:
        self.delay = delay
        self._callback = callback
        self._scheduler = scheduler or LoopScheduler()
        self._name = name
        self._handle: Optional[TimerHandle] = None
        self._args: tuple = ()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, *args: Any) -> None:
        self.cancel()
        self._args = args
        self._handle = self._scheduler.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> Optional[asyncio.Task]:
        """Run the pending call immediately, if any."""
        if self._handle is None:
            return None
        self.cancel()
        return self._invoke()

    def _fire(self) -> None:
        self._handle = None
        self._invoke()

    def _invoke(self) -> Optional[asyncio.Task]:
        result = self._callback(*self._args)
        if not inspect.isawaitable(result):
            return None
        task = asyncio.ensure_future(result)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("%s callback failed: %s", self._name, exc, exc_info=exc)

    async def drain(self) -> None:
        """Wait for callbacks that already fired."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

