"""Tests for recurring jobs and the periodic check sweep."""

import asyncio

import pytest

from focustrack_shared import NotificationType
from focustrack_desktop.scheduler import SWEEP_JOB, PeriodicChecks, Scheduler
from focustrack_desktop.settings import NotificationSettings

from conftest import FakeClock


@pytest.fixture
def scheduler(clock: FakeClock) -> Scheduler:
    return Scheduler(sleep=clock.sleep)


@pytest.fixture
def checks(settings: NotificationSettings, scheduler: Scheduler, clock: FakeClock) -> PeriodicChecks:
    return PeriodicChecks(settings, scheduler, clock=clock)


class TestPeriodicChecks:
    @pytest.mark.asyncio
    async def test_first_tick_runs_everything(self, checks: PeriodicChecks) -> None:
        calls: list[str] = []
        checks.register(NotificationType.TASK_OVERDUE, lambda: calls.append("overdue"))
        checks.register(NotificationType.TASK_DEADLINE, lambda: calls.append("deadline"))

        ran = await checks.tick()

        assert calls == ["overdue", "deadline"]
        assert ran == [NotificationType.TASK_OVERDUE, NotificationType.TASK_DEADLINE]

    @pytest.mark.asyncio
    async def test_checks_gated_by_interval(self, checks: PeriodicChecks, clock: FakeClock) -> None:
        calls: list[str] = []
        checks.register(NotificationType.TASK_OVERDUE, lambda: calls.append("overdue"))

        await checks.tick()
        clock.advance(minutes=4)
        await checks.tick()
        assert calls == ["overdue"]

        clock.advance(minutes=1)
        await checks.tick()
        assert calls == ["overdue", "overdue"]

    @pytest.mark.asyncio
    async def test_sweep_firing_slightly_early_still_runs(
        self, checks: PeriodicChecks, clock: FakeClock
    ) -> None:
        calls: list[str] = []
        checks.register(NotificationType.TASK_OVERDUE, lambda: calls.append("overdue"))

        await checks.tick()
        clock.advance(minutes=4, seconds=59, milliseconds=985)
        await checks.tick()

        assert calls == ["overdue", "overdue"]

    @pytest.mark.asyncio
    async def test_async_checks_are_awaited(self, checks: PeriodicChecks) -> None:
        calls: list[str] = []

        async def check() -> None:
            await asyncio.sleep(0)
            calls.append("workload")

        checks.register(NotificationType.WORKLOAD_WARNING, check)
        await checks.tick()

        assert calls == ["workload"]

    @pytest.mark.asyncio
    async def test_failing_check_does_not_block_others(
        self, checks: PeriodicChecks, clock: FakeClock
    ) -> None:
        calls: list[str] = []

        def broken() -> None:
            raise RuntimeError("store offline")

        checks.register(NotificationType.TASK_OVERDUE, broken)
        checks.register(NotificationType.PROJECT_DEADLINE, lambda: calls.append("project"))

        ran = await checks.tick()

        assert calls == ["project"]
        assert NotificationType.TASK_OVERDUE in ran
        assert checks.last_run[NotificationType.TASK_OVERDUE] == clock.now

        # Not retried until its interval elapses again
        assert await checks.tick() == []

    @pytest.mark.asyncio
    async def test_checks_run_in_fixed_order(self, checks: PeriodicChecks) -> None:
        calls: list[str] = []
        checks.register(NotificationType.INACTIVITY_WARNING, lambda: calls.append("inactivity"))
        checks.register(NotificationType.TASK_OVERDUE, lambda: calls.append("overdue"))

        await checks.tick()

        assert calls == ["overdue", "inactivity"]

    @pytest.mark.asyncio
    async def test_interval_follows_settings(
        self, checks: PeriodicChecks, settings: NotificationSettings, clock: FakeClock
    ) -> None:
        calls: list[str] = []
        checks.register(NotificationType.TASK_OVERDUE, lambda: calls.append("overdue"))
        settings.update({"checkInterval": 30})

        await checks.tick()
        clock.advance(minutes=10)
        await checks.tick()

        assert calls == ["overdue"]

    @pytest.mark.asyncio
    async def test_start_and_destroy(self, checks: PeriodicChecks, scheduler: Scheduler) -> None:
        checks.start()
        assert SWEEP_JOB in scheduler.job_names

        checks.destroy()
        assert scheduler.job_names == []


class TestScheduler:
    @pytest.mark.asyncio
    async def test_recurring_job_runs_repeatedly(self, scheduler: Scheduler, clock: FakeClock) -> None:
        calls: list[int] = []
        scheduler.register_recurring("count", 60, lambda: calls.append(1), initial_delay=0)

        for _ in range(10):
            await asyncio.sleep(0)
        scheduler.cancel_all()

        assert len(calls) >= 2
        assert 60 in clock.sleeps

    @pytest.mark.asyncio
    async def test_failing_job_keeps_schedule(self, scheduler: Scheduler) -> None:
        attempts: list[int] = []

        def flaky() -> None:
            attempts.append(1)
            raise ValueError("boom")

        scheduler.register_recurring("flaky", 1, flaky, initial_delay=0)
        for _ in range(10):
            await asyncio.sleep(0)
        scheduler.cancel_all()

        assert len(attempts) >= 2

    @pytest.mark.asyncio
    async def test_register_replaces_same_name(self, scheduler: Scheduler) -> None:
        scheduler.register_recurring("job", 60, lambda: None)
        scheduler.register_recurring("job", 30, lambda: None)

        assert scheduler.job_names == ["job"]
        scheduler.cancel_all()
        assert scheduler.job_names == []
