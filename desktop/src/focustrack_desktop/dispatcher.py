"""Notification queue and dispatcher.

Every notification producer submits here. The dispatcher filters requests
against the current settings, orders pending requests by priority, spaces
deliveries at least one second apart and delivers each id at most once.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable

from focustrack_shared import NotificationRequest

from .local_store import LocalStore
from .notify import DeliverySink
from .settings import NotificationSettings, is_quiet_time

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[None]]

MIN_DELIVERY_SPACING = timedelta(seconds=1)
PACING_DELAY_SECONDS = 0.5


def local_now() -> datetime:
    return datetime.now().astimezone()


class NotificationDispatcher:
    """Single entry point for notification requests."""

    def __init__(
        self,
        settings: NotificationSettings,
        sink: DeliverySink,
        store: LocalStore | None = None,
        clock: Clock = local_now,
        sleep: Sleep = asyncio.sleep,
    ):
        self._settings = settings
        self._sink = sink
        self._store = store
        self._clock = clock
        self._sleep = sleep
        self._queue: list[NotificationRequest] = []
        self._acknowledged: dict[str, None] = {}
        self._last_delivery: datetime | None = None
        self._drain_task: asyncio.Task[None] | None = None
        self._save_task: asyncio.Task[None] | None = None
        self._save_pending = False

        if store is not None:
            for notification_id in store.load_acknowledged_ids():
                self._acknowledged[notification_id] = None

    @property
    def pending(self) -> list[NotificationRequest]:
        return list(self._queue)

    def is_acknowledged(self, notification_id: str) -> bool:
        return notification_id in self._acknowledged

    def submit(self, request: NotificationRequest) -> bool:
        """Queue a request for delivery.

        Returns False if the request was dropped by the settings or because
        its id was already acknowledged. Must be called from the event loop.
        """
        config = self._settings.current
        if not config.enabled:
            logger.debug("Notifications disabled, dropping %s", request.id)
            return False
        if not config.type_enabled(request.type):
            logger.debug("Notification type %s disabled, dropping %s", request.type, request.id)
            return False
        if is_quiet_time(config.quiet_hours, self._clock().time()):
            logger.info("Quiet hours, dropping %s", request.id)
            return False
        if request.id in self._acknowledged:
            logger.debug("Notification %s already acknowledged, dropping", request.id)
            return False

        self._queue.append(request)
        logger.debug("Queued notification %s (%s, %s)", request.id, request.type, request.priority)
        self._schedule_drain()
        return True

    def acknowledge(self, notification_id: str) -> None:
        """Never deliver ``notification_id`` again, including pending copies."""
        self._remember(notification_id)
        before = len(self._queue)
        self._queue = [item for item in self._queue if item.id != notification_id]
        if len(self._queue) != before:
            logger.debug("Removed %d pending copies of %s", before - len(self._queue), notification_id)

    async def wait_idle(self) -> None:
        """Wait until the pending queue has been drained and acknowledgements saved."""
        while self._drain_task is not None or self._save_task is not None:
            await asyncio.wait({t for t in (self._drain_task, self._save_task) if t is not None})

    def _schedule_drain(self) -> None:
        if self._drain_task is not None:
            return
        self._drain_task = asyncio.get_running_loop().create_task(self._drain())
        self._drain_task.add_done_callback(self._on_drain_done)

    def _on_drain_done(self, task: asyncio.Task[None]) -> None:
        self._drain_task = None
        if not task.cancelled() and task.exception() is not None:
            logger.error("Notification drain failed", exc_info=task.exception())
        if self._queue and not task.cancelled():
            self._schedule_drain()

    def _select_next(self) -> int:
        best = 0
        for index, item in enumerate(self._queue):
            if item.priority.rank > self._queue[best].priority.rank:
                best = index
        return best

    async def _drain(self) -> None:
        while self._queue:
            index = self._select_next()
            request = self._queue[index]

            if self._last_delivery is not None:
                wait = MIN_DELIVERY_SPACING - (self._clock() - self._last_delivery)
                if wait > timedelta(0):
                    await self._sleep(wait.total_seconds())

            # The queue may have been changed by acknowledge() while sleeping.
            index = next((i for i, item in enumerate(self._queue) if item is request), None)
            if index is None:
                continue

            duplicate = next(
                (i for i, item in enumerate(self._queue) if i != index and item.id == request.id),
                None,
            )
            if duplicate is not None:
                del self._queue[duplicate]
                logger.debug("Dropped duplicate notification %s", request.id)
                continue

            del self._queue[index]
            self._deliver(request)
            self._last_delivery = self._clock()
            self._remember(request.id)

            if self._queue:
                await self._sleep(PACING_DELAY_SECONDS)

    def _deliver(self, request: NotificationRequest) -> None:
        try:
            self._sink.deliver(request, self._settings.current)
            logger.info("Delivered notification %s (%s)", request.id, request.priority)
        except Exception:
            logger.exception("Failed to deliver notification %s", request.id)

    def _remember(self, notification_id: str) -> None:
        if notification_id in self._acknowledged:
            return
        self._acknowledged[notification_id] = None
        if self._store is None:
            return
        self._save_pending = True
        self._schedule_save()

    def _schedule_save(self) -> None:
        if self._save_task is not None:
            return
        self._save_task = asyncio.get_running_loop().create_task(self._save_acknowledged())
        self._save_task.add_done_callback(self._on_save_done)

    def _on_save_done(self, task: asyncio.Task[None]) -> None:
        self._save_task = None
        if self._save_pending and not task.cancelled():
            self._schedule_save()

    async def _save_acknowledged(self) -> None:
        """Write the acknowledged ids off the loop, coalescing bursts into one write."""
        store = self._store
        if store is None:
            return
        while self._save_pending:
            self._save_pending = False
            ids = list(self._acknowledged)
            try:
                await asyncio.to_thread(store.save_acknowledged_ids, ids)
            except Exception:
                logger.exception("Failed to save acknowledged notification ids")
