"""Recurring jobs and the periodic notification check sweep."""

import asyncio
import inspect
import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from focustrack_shared import NotificationConfig, NotificationType

from .dispatcher import Clock, Sleep, local_now
from .settings import NotificationSettings

logger = logging.getLogger(__name__)

Job = Callable[[], Any]

CHECK_ORDER = (
    NotificationType.TASK_OVERDUE,
    NotificationType.TASK_DEADLINE,
    NotificationType.PROJECT_DEADLINE,
    NotificationType.WORKLOAD_WARNING,
    NotificationType.INACTIVITY_WARNING,
)
INITIAL_SWEEP_DELAY_SECONDS = 5.0
# Timers may fire slightly early relative to the wall clock.
DUE_TOLERANCE = timedelta(seconds=1)
SWEEP_JOB = "periodic-checks"


class Scheduler:
    """Runs named recurring jobs on the event loop.

    A job may be a plain function or a coroutine function. Exceptions are
    logged and the job keeps its schedule.
    """

    def __init__(self, sleep: Sleep = asyncio.sleep):
        self._sleep = sleep
        self._jobs: dict[str, asyncio.Task[None]] = {}

    @property
    def job_names(self) -> list[str]:
        return list(self._jobs)

    def register_recurring(
        self,
        name: str,
        interval_seconds: float,
        fn: Job,
        initial_delay: float | None = None,
    ) -> None:
        """Run ``fn`` every ``interval_seconds``, replacing any job called ``name``."""
        self.cancel(name)
        delay = interval_seconds if initial_delay is None else initial_delay
        task = asyncio.get_running_loop().create_task(
            self._run(name, interval_seconds, fn, delay)
        )
        self._jobs[name] = task
        logger.debug("Registered job %s every %.0f s", name, interval_seconds)

    def cancel(self, name: str) -> None:
        task = self._jobs.pop(name, None)
        if task is not None:
            task.cancel()

    def cancel_all(self) -> None:
        for name in list(self._jobs):
            self.cancel(name)

    async def _run(self, name: str, interval_seconds: float, fn: Job, delay: float) -> None:
        await self._sleep(delay)
        while True:
            try:
                result = fn()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Error in scheduled job %s", name)
            await self._sleep(interval_seconds)


class PeriodicChecks:
    """Sweeps the registered notification checks on one timer.

    Each check is gated by its own last-run time, so a sweep only runs the
    checks whose interval has elapsed.
    """

    def __init__(
        self,
        settings: NotificationSettings,
        scheduler: Scheduler,
        clock: Clock = local_now,
    ):
        self._settings = settings
        self._scheduler = scheduler
        self._clock = clock
        self._checks: dict[NotificationType, Job] = {}
        self._last_run: dict[NotificationType, datetime] = {}
        self._started = False
        settings.add_listener(self._on_settings_changed)

    @property
    def last_run(self) -> dict[NotificationType, datetime]:
        return dict(self._last_run)

    def register(self, name: NotificationType, check: Job) -> None:
        self._checks[name] = check

    def is_due(self, name: NotificationType, now: datetime) -> bool:
        last = self._last_run.get(name)
        if last is None:
            return True
        interval = timedelta(minutes=self._settings.current.check_interval)
        return now - last >= interval - DUE_TOLERANCE

    async def tick(self) -> list[NotificationType]:
        """Run every due check. Returns the names of the checks that ran."""
        ran: list[NotificationType] = []
        for name in self._ordered_names():
            now = self._clock()
            if not self.is_due(name, now):
                continue
            try:
                result = self._checks[name]()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Error in %s check", name)
            self._last_run[name] = now
            ran.append(name)
        if ran:
            logger.debug("Ran checks: %s", ", ".join(ran))
        return ran

    def start(self) -> None:
        """Start the recurring sweep, first run shortly after startup."""
        self._started = True
        interval = self._settings.current.check_interval * 60
        self._scheduler.register_recurring(
            SWEEP_JOB, interval, self.tick, initial_delay=INITIAL_SWEEP_DELAY_SECONDS
        )
        logger.info("Periodic checks every %.1f minutes", self._settings.current.check_interval)

    def destroy(self) -> None:
        self._started = False
        self._scheduler.cancel(SWEEP_JOB)

    def _ordered_names(self) -> list[NotificationType]:
        known = [name for name in CHECK_ORDER if name in self._checks]
        extra = [name for name in self._checks if name not in CHECK_ORDER]
        return known + extra

    def _on_settings_changed(self, old: NotificationConfig, new: NotificationConfig) -> None:
        if self._started and old.check_interval != new.check_interval:
            logger.info("Check interval changed, restarting periodic checks")
            self.start()
