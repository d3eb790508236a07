"""Application wiring and the command surface used by the UI layer."""

import asyncio
import logging
from typing import Any

from focustrack_shared import (
    InAppNotification,
    NotificationConfig,
    NotificationRequest,
    NotificationType,
    TimerMode,
)

from .checks import TaskChecks
from .config import Config
from .countdown import CountdownEngine
from .dispatcher import Clock, NotificationDispatcher, Sleep, local_now
from .events import EventBus
from .inactivity import InactivityTracker
from .local_store import LocalStore
from .notify import DeliverySink
from .scheduler import PeriodicChecks, Scheduler
from .settings import NotificationSettings
from .store import FirestoreStore

logger = logging.getLogger(__name__)


class FocusTrackApp:
    """Owns one instance of each core component for the process lifetime."""

    def __init__(
        self,
        config: Config,
        store: FirestoreStore,
        local_store: LocalStore | None = None,
        events: EventBus | None = None,
        sink: DeliverySink | None = None,
        clock: Clock = local_now,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self.events = events or EventBus()
        self.local_store = local_store or LocalStore(config.data_dir)
        self.settings = NotificationSettings(self.local_store)
        self.sink = sink or DeliverySink(self.events, launch_uri=config.notification_launch_uri)
        self.dispatcher = NotificationDispatcher(
            self.settings, self.sink, store=self.local_store, clock=clock, sleep=sleep
        )
        self.countdown = CountdownEngine(
            store,
            self.dispatcher,
            self.events,
            config.phase_durations_ms(),
            clock=clock,
            sleep=sleep,
            block_poll_seconds=config.block_poll_seconds or None,
        )
        self.scheduler = Scheduler(sleep=sleep)
        self.inactivity = InactivityTracker(
            store, self.local_store, self.dispatcher, self.settings, clock=clock
        )
        self.checks = PeriodicChecks(self.settings, self.scheduler, clock=clock)
        self.task_checks = TaskChecks(
            store,
            self.dispatcher,
            current_user=lambda: self.inactivity.current_user,
            focus_minutes=config.focus_minutes,
            clock=clock,
        )
        self.task_checks.register(self.checks)
        if config.inactivity_tracking_enabled:
            self.checks.register(NotificationType.INACTIVITY_WARNING, self.inactivity.evaluate)

    async def start(self) -> None:
        """Start background jobs. Must run on the event loop."""
        self.set_current_user(self.config.user_id)
        if self.config.periodic_checks_enabled:
            self.checks.start()
        if self.config.inactivity_tracking_enabled:
            self.inactivity.start(self.scheduler, self.config.inactivity_poll_minutes)
        logger.info("FocusTrack core started for user %s", self.config.user_id)

    async def shutdown(self) -> None:
        """Stop timers and wait for pending notifications."""
        self.checks.destroy()
        self.inactivity.destroy()
        self.scheduler.cancel_all()
        await self.countdown.shutdown()
        await self.dispatcher.wait_idle()
        logger.info("FocusTrack core stopped")

    def start_timer(
        self,
        mode: TimerMode,
        duration_ms: int | None = None,
        task_id: str | None = None,
    ) -> None:
        mode = TimerMode(mode)
        if duration_ms is None:
            duration_ms = self.config.phase_durations_ms()[mode]
        self.countdown.start(mode, duration_ms, task_id)
        self.inactivity.record_activity()

    def pause_timer(self) -> None:
        self.countdown.pause()

    def resume_timer(self) -> None:
        self.countdown.resume()
        self.inactivity.record_activity()

    def reset_timer(self) -> None:
        self.countdown.reset()

    def submit_notification(self, request: NotificationRequest | dict[str, Any]) -> bool:
        if not isinstance(request, NotificationRequest):
            request = NotificationRequest.model_validate(request)
        return self.dispatcher.submit(request)

    def acknowledge_notification(self, notification_id: str) -> None:
        self.dispatcher.acknowledge(notification_id)

    def update_notification_config(self, partial: dict[str, Any]) -> NotificationConfig:
        return self.settings.update(partial)

    def get_notification_config(self) -> NotificationConfig:
        return self.settings.current

    def record_user_activity(self, user_id: str | None = None) -> None:
        self.inactivity.record_activity(user_id)

    def set_current_user(self, user_id: str) -> None:
        self.inactivity.set_current_user(user_id)
        self.countdown.set_user(user_id)

    def notification_clicked(self, notification: InAppNotification) -> None:
        self.sink.notification_clicked(notification)
