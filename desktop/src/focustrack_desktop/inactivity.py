"""Inactivity tracking and warnings."""

import asyncio
import logging
from datetime import datetime, timedelta

from focustrack_shared import ActivityRecord, NotificationRequest, NotificationType, Priority, Task

from .dispatcher import Clock, NotificationDispatcher, local_now
from .local_store import LocalStore
from .scheduler import Scheduler
from .settings import NotificationSettings
from .store import FirestoreStore

logger = logging.getLogger(__name__)

MIN_RENOTIFY_HOURS = 4.0
PENDING_TASKS_SHOWN = 3
EVALUATE_JOB = "inactivity"


class InactivityTracker:
    """Tracks the current user's last activity and warns after long idle spells."""

    def __init__(
        self,
        store: FirestoreStore,
        local_store: LocalStore,
        dispatcher: NotificationDispatcher,
        settings: NotificationSettings,
        clock: Clock = local_now,
    ):
        self._store = store
        self._local_store = local_store
        self._dispatcher = dispatcher
        self._settings = settings
        self._clock = clock
        self._scheduler: Scheduler | None = None
        self._user_id: str | None = None
        self._state = ActivityRecord()
        self._evaluating = asyncio.Lock()

    @property
    def current_user(self) -> str | None:
        return self._user_id

    @property
    def state(self) -> ActivityRecord:
        return self._state.model_copy()

    def record_activity(self, user_id: str | None = None) -> None:
        """Mark ``user_id`` (default: the current user) as active now."""
        user_id = user_id or self._user_id
        if user_id is None:
            return
        now = self._clock()
        if user_id == self._user_id:
            self._state.last_activity_time = now
            state = self._state
        else:
            state = self._local_store.load_activity_state(user_id) or ActivityRecord()
            state.last_activity_time = now
        self._save(user_id, state)

    def set_current_user(self, user_id: str) -> None:
        """Switch tracking to ``user_id``, loading its stored timestamps."""
        self._user_id = user_id
        stored = self._local_store.load_activity_state(user_id)
        if stored is None or stored.last_activity_time is None:
            self._state = ActivityRecord(
                last_activity_time=self._clock(),
                last_notification_time=stored.last_notification_time if stored else None,
            )
            self._save(user_id, self._state)
        else:
            self._state = stored
        logger.info("Tracking activity for user %s", user_id)

    async def evaluate(self) -> bool:
        """Submit an inactivity warning if one is due. Returns True if submitted.

        Runs one at a time, so an overlapping call sees the notification time
        recorded by the previous one.
        """
        async with self._evaluating:
            return await self._evaluate()

    async def _evaluate(self) -> bool:
        user_id = self._user_id
        last_activity = self._state.last_activity_time
        if user_id is None or last_activity is None:
            return False

        threshold = self._settings.current.inactivity_threshold
        now = self._clock()
        diff_hours = (now - last_activity) / timedelta(hours=1)
        if diff_hours < threshold:
            return False

        last_notification = self._state.last_notification_time
        if last_notification is not None:
            since_hours = (now - last_notification) / timedelta(hours=1)
            if since_hours < max(threshold, MIN_RENOTIFY_HOURS):
                return False

        pending = await self._pending_tasks(user_id)
        sessions_today = await self._focus_sessions_today(user_id, now)
        if self._user_id != user_id:
            logger.debug("User changed while evaluating inactivity for %s", user_id)
            return False
        request = _inactivity_request(now, last_activity, diff_hours, pending, sessions_today)

        if not self._dispatcher.submit(request):
            logger.debug("Inactivity warning for %s not accepted", user_id)
            return False

        logger.info("Inactivity warning sent to %s after %.1f hours", user_id, diff_hours)
        self._state.last_notification_time = now
        self._save(user_id, self._state)
        return True

    def start(self, scheduler: Scheduler, interval_minutes: float = 15) -> None:
        self._scheduler = scheduler
        scheduler.register_recurring(EVALUATE_JOB, interval_minutes * 60, self.evaluate)

    def destroy(self) -> None:
        if self._scheduler is not None:
            self._scheduler.cancel(EVALUATE_JOB)
            self._scheduler = None

    async def _pending_tasks(self, user_id: str) -> list[Task]:
        try:
            tasks = await asyncio.to_thread(self._store.find_tasks, user_id)
        except Exception:
            logger.exception("Failed to load pending tasks for %s", user_id)
            return []
        return sorted(tasks, key=lambda task: task.priority, reverse=True)[:PENDING_TASKS_SHOWN]

    async def _focus_sessions_today(self, user_id: str, now: datetime) -> int | None:
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        try:
            return await asyncio.to_thread(self._store.count_focus_sessions_since, user_id, midnight)
        except Exception:
            logger.exception("Failed to count today's focus sessions for %s", user_id)
            return None

    def _save(self, user_id: str, state: ActivityRecord) -> None:
        try:
            self._local_store.save_activity_state(user_id, state)
        except Exception:
            logger.exception("Failed to save activity state for %s", user_id)


def _inactivity_request(
    now: datetime,
    last_activity: datetime,
    diff_hours: float,
    pending: list[Task],
    sessions_today: int | None,
) -> NotificationRequest:
    hours = int(diff_hours)
    body = f"You haven't started a Pomodoro session in the last {hours} hours."
    if pending:
        body += f" You have {len(pending)} pending tasks."
        body += f' Top priority: "{pending[0].title}".'
    if sessions_today == 0:
        body += " You haven't completed a focus session today."

    return NotificationRequest(
        id=f"inactivity-warning-{int(now.timestamp() * 1000)}",
        type=NotificationType.INACTIVITY_WARNING,
        title="Inactivity warning",
        body=body,
        priority=Priority.HIGH,
        timestamp=now,
        requires_confirmation=True,
        data={
            "inactiveSince": last_activity.isoformat(),
            "inactiveHours": hours,
            "pendingTasks": [{"id": task.id, "title": task.title} for task in pending],
        },
    )
