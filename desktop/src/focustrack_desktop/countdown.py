"""Focus/break countdown engine."""

import asyncio
import logging
from datetime import datetime, timedelta
from enum import StrEnum

from focustrack_shared import (
    NotificationRequest,
    NotificationType,
    Priority,
    Session,
    TaskStatus,
    TimerMode,
    TimerSession,
)

from .blocker import block_apps
from .dispatcher import Clock, NotificationDispatcher, Sleep, local_now
from .events import EventBus, EventName
from .store import FirestoreStore

logger = logging.getLogger(__name__)

TICK_SECONDS = 1.0


class TimerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class CountdownEngine:
    """Runs a single focus or break countdown with one-second ticks.

    On natural expiry the engine records the session, updates the task
    status for focus sessions and asks the dispatcher for a completion
    notification. Storage failures are logged and never affect the timer.
    While a focus countdown runs, blocked applications are closed every
    ``block_poll_seconds``, waiting on ``poll_sleep`` rather than the tick sleep.
    """

    def __init__(
        self,
        store: FirestoreStore,
        dispatcher: NotificationDispatcher,
        events: EventBus,
        phase_durations_ms: dict[TimerMode, int],
        clock: Clock = local_now,
        sleep: Sleep = asyncio.sleep,
        block_poll_seconds: float | None = 5.0,
        poll_sleep: Sleep = asyncio.sleep,
    ):
        self._store = store
        self._dispatcher = dispatcher
        self._events = events
        self._durations = phase_durations_ms
        self._clock = clock
        self._sleep = sleep
        self._block_poll_seconds = block_poll_seconds
        self._poll_sleep = poll_sleep

        self._state = TimerState.IDLE
        self._mode = TimerMode.FOCUS
        self._remaining_ms = phase_durations_ms[TimerMode.FOCUS]
        self._start_timestamp: datetime | None = None
        self._session_started_at: datetime | None = None
        self._active_ms = 0
        self._task_id: str | None = None
        self._user_id: str | None = None

        self._tick_task: asyncio.Task[None] | None = None
        self._block_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def session(self) -> TimerSession:
        """Snapshot of the current countdown."""
        remaining = self._remaining_ms
        if self._state == TimerState.RUNNING:
            remaining = max(0, remaining - self._elapsed_ms())
        return TimerSession(
            mode=self._mode,
            remaining_ms=remaining,
            start_timestamp=self._start_timestamp,
            task_id=self._task_id,
            user_id=self._user_id,
        )

    def set_user(self, user_id: str | None) -> None:
        self._user_id = user_id

    def start(self, mode: TimerMode, duration_ms: int, task_id: str | None = None) -> None:
        """Start a new countdown, replacing any running one."""
        if self._state == TimerState.RUNNING:
            logger.info("Replacing running %s countdown", self._mode)
        self._stop_ticking()

        now = self._clock()
        self._mode = TimerMode(mode)
        self._task_id = task_id if self._mode == TimerMode.FOCUS else None
        self._remaining_ms = duration_ms
        self._start_timestamp = now
        self._session_started_at = now
        self._active_ms = 0

        logger.info("Starting %s countdown for %d ms (task=%s)", self._mode, duration_ms, self._task_id)
        self._events.emit(EventName.TICK, duration_ms)
        self._arm()

    def pause(self) -> None:
        """Pause the running countdown. No-op if not running."""
        if self._state != TimerState.RUNNING:
            return
        elapsed = self._elapsed_ms()
        self._stop_ticking()
        self._state = TimerState.PAUSED
        self._remaining_ms = max(0, self._remaining_ms - elapsed)
        self._active_ms += elapsed
        self._start_timestamp = None
        logger.info("Paused %s countdown with %d ms remaining", self._mode, self._remaining_ms)
        self._events.emit(EventName.PAUSED, self._remaining_ms)

    def resume(self) -> None:
        """Resume a paused countdown. No-op unless paused with time left."""
        if self._state != TimerState.PAUSED or self._remaining_ms <= 0:
            return
        self._start_timestamp = self._clock()
        logger.info("Resuming %s countdown with %d ms remaining", self._mode, self._remaining_ms)
        self._arm()

    def reset(self) -> None:
        """Stop and rewind to the full duration of the current mode."""
        self._stop_ticking()
        self._state = TimerState.IDLE
        self._remaining_ms = self._durations[self._mode]
        self._start_timestamp = None
        self._session_started_at = None
        self._active_ms = 0

    async def join(self) -> None:
        """Wait for ticking and any completion side effects to finish."""
        while self._tasks:
            await asyncio.wait(set(self._tasks))

    async def shutdown(self) -> None:
        if self._state == TimerState.RUNNING:
            self.pause()
        await self.join()

    def _elapsed_ms(self) -> int:
        if self._start_timestamp is None:
            return 0
        return int((self._clock() - self._start_timestamp) / timedelta(milliseconds=1))

    def _arm(self) -> None:
        self._state = TimerState.RUNNING
        loop = asyncio.get_running_loop()
        self._tick_task = self._track(loop.create_task(self._run()))
        if self._mode == TimerMode.FOCUS and self._block_poll_seconds:
            self._block_task = self._track(loop.create_task(self._block_distractions()))

    def _track(self, task: asyncio.Task[None]) -> asyncio.Task[None]:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _stop_ticking(self) -> None:
        for task in (self._tick_task, self._block_task):
            if task is not None and not task.done():
                task.cancel()
        self._tick_task = None
        self._block_task = None

    async def _run(self) -> None:
        while True:
            await self._sleep(TICK_SECONDS)
            remaining = self._remaining_ms - self._elapsed_ms()
            if remaining <= 0:
                break
            self._events.emit(EventName.TICK, remaining)

        # Leave the running state before any await so completion runs once.
        mode = self._mode
        task_id = self._task_id
        user_id = self._user_id
        started_at = self._session_started_at or self._clock()
        active_ms = self._active_ms + self._elapsed_ms()
        ended_at = self._clock()

        if self._block_task is not None:
            self._block_task.cancel()
            self._block_task = None
        self._tick_task = None
        self._state = TimerState.IDLE
        self._mode = mode.other
        self._remaining_ms = self._durations[self._mode]
        self._start_timestamp = None
        self._session_started_at = None
        self._active_ms = 0
        self._task_id = None

        logger.info("%s countdown complete", mode.capitalize())
        self._events.emit(EventName.TICK, 0)
        self._events.emit(EventName.DONE, {"mode": mode.value})

        try:
            await self._complete(mode, task_id, user_id, started_at, ended_at, active_ms)
        except Exception:
            logger.exception("Error handling %s countdown completion", mode)

    async def _complete(
        self,
        mode: TimerMode,
        task_id: str | None,
        user_id: str | None,
        started_at: datetime,
        ended_at: datetime,
        active_ms: int,
    ) -> None:
        if user_id is None:
            logger.warning("No current user, not recording %s session", mode)
        else:
            session = Session(
                user_id=user_id,
                task_id=task_id,
                mode=mode,
                start_time=started_at,
                end_time=ended_at,
                duration=round(active_ms / 1000),
            )
            try:
                session_id = await asyncio.to_thread(self._store.create_session, session)
                logger.info("Recorded %s session %s (%d s)", mode, session_id, session.duration)
            except Exception:
                logger.exception("Failed to save %s session for user %s", mode, user_id)

        task_title = None
        if mode == TimerMode.FOCUS and task_id is not None:
            task_title = await self._update_task_status(task_id)

        self._dispatcher.submit(_completion_request(mode, task_title, ended_at))

    async def _update_task_status(self, task_id: str) -> str | None:
        """Recompute the task status from its focus sessions. Returns the task title."""
        try:
            task = await asyncio.to_thread(self._store.get_task, task_id)
            if task is None:
                logger.warning("Task %s not found, skipping status update", task_id)
                return None
            completed = await asyncio.to_thread(self._store.count_completed_focus_sessions, task_id)
            status = TaskStatus.DONE if completed >= task.estimated_pomodoros else TaskStatus.IN_PROGRESS
            await asyncio.to_thread(self._store.update_task_status, task_id, status)
            logger.debug(
                "Task %s: %d/%d focus sessions, status %s",
                task_id,
                completed,
                task.estimated_pomodoros,
                status,
            )
            return task.title
        except Exception:
            logger.exception("Failed to update status of task %s", task_id)
            return None

    async def _block_distractions(self) -> None:
        while True:
            user_id = self._user_id
            if user_id is not None:
                try:
                    names = await asyncio.to_thread(self._store.list_blocked_app_names, user_id)
                    if names:
                        await asyncio.to_thread(block_apps, names)
                except Exception:
                    logger.exception("Failed to block applications for user %s", user_id)
            await self._poll_sleep(self._block_poll_seconds or TICK_SECONDS)


def _completion_request(
    mode: TimerMode, task_title: str | None, ended_at: datetime
) -> NotificationRequest:
    stamp = int(ended_at.timestamp() * 1000)
    if mode == TimerMode.FOCUS:
        if task_title:
            body = f'You finished a focus session on "{task_title}". Time for a break!'
        else:
            body = "You finished a focus session. Time for a break!"
        return NotificationRequest(
            id=f"pomodoro-complete-{stamp}",
            type=NotificationType.POMODORO_COMPLETE,
            title="Pomodoro complete",
            body=body,
            priority=Priority.MEDIUM,
            timestamp=ended_at,
            data={"taskTitle": task_title} if task_title else {},
        )
    return NotificationRequest(
        id=f"break-complete-{stamp}",
        type=NotificationType.BREAK_COMPLETE,
        title="Break is over",
        body="Your break has ended. Ready for the next focus session?",
        priority=Priority.MEDIUM,
        timestamp=ended_at,
    )
