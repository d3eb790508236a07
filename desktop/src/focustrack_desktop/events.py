"""Event surface from the core to the UI layer."""

import asyncio
import inspect
import logging
from enum import StrEnum
from typing import Any, Callable

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]


class EventName(StrEnum):
    TICK = "tick"
    DONE = "done"
    PAUSED = "paused"
    NEW_NOTIFICATION = "new_notification"
    NOTIFICATION_CLICKED = "notification_clicked"


class EventBus:
    """Named events with sync or async listeners.

    Async listeners are scheduled on the running loop. A failing listener is
    logged and never affects the emitter or the other listeners.
    """

    def __init__(self) -> None:
        self._listeners: dict[EventName, list[Listener]] = {}
        self._pending: set[asyncio.Task[None]] = set()

    def on(self, name: EventName, listener: Listener) -> None:
        if not callable(listener):
            raise ValueError("Listener must be callable")
        self._listeners.setdefault(name, []).append(listener)

    def off(self, name: EventName, listener: Listener) -> None:
        listeners = self._listeners.get(name, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, name: EventName, payload: Any = None) -> None:
        for listener in list(self._listeners.get(name, [])):
            try:
                result = listener(payload)
                if inspect.iscoroutine(result):
                    task = asyncio.get_running_loop().create_task(
                        self._safe_task(name, result)
                    )
                    self._pending.add(task)
                    task.add_done_callback(self._pending.discard)
            except Exception:
                logger.exception("Error in %s event listener", name)

    async def _safe_task(self, name: EventName, coro: Any) -> None:
        try:
            await coro
        except Exception:
            logger.exception("Unhandled exception in async %s listener", name)
