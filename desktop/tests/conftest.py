"""Shared fakes for the core tests."""

import asyncio
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Callable

import pytest

from focustrack_shared import (
    NotificationConfig,
    NotificationRequest,
    NotificationType,
    Priority,
    Project,
    Session,
    Task,
    TaskStatus,
    TimerMode,
)
from focustrack_desktop.local_store import LocalStore
from focustrack_desktop.settings import NotificationSettings


class FakeClock:
    """Simulated wall clock; sleeping advances it instantly."""

    def __init__(self, now: datetime):
        self.now = now
        self.sleeps: list[float] = []

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)

    def set_time(self, hour: int, minute: int = 0) -> None:
        self.now = self.now.replace(hour=hour, minute=minute)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += timedelta(seconds=seconds)
        await asyncio.sleep(0)


class FakeStore:
    """In-memory stand-in for FirestoreStore."""

    def __init__(self) -> None:
        self.tasks: dict[str, Task] = {}
        self.projects: list[Project] = []
        self.sessions: list[Session] = []
        self.blocked_apps: dict[str, list[str]] = {}
        self.fail_sessions = False

    def add_task(self, task: Task) -> Task:
        assert task.id is not None
        self.tasks[task.id] = task
        return task

    def find_tasks(self, user_id: str, include_done: bool = False) -> list[Task]:
        tasks = [t for t in self.tasks.values() if t.user_id == user_id]
        if not include_done:
            tasks = [t for t in tasks if t.status != TaskStatus.DONE]
        return sorted(tasks, key=lambda t: t.priority, reverse=True)

    def find_projects(self, user_id: str) -> list[Project]:
        return [p for p in self.projects if p.user_id == user_id]

    def get_task(self, task_id: str) -> Task | None:
        return self.tasks.get(task_id)

    def create_session(self, session: Session) -> str:
        if self.fail_sessions:
            raise ConnectionError("store unavailable")
        self.sessions.append(session)
        return f"session-{len(self.sessions)}"

    def update_task_status(self, task_id: str, status: TaskStatus) -> None:
        self.tasks[task_id] = self.tasks[task_id].model_copy(update={"status": status})

    def count_completed_focus_sessions(self, task_id: str) -> int:
        return sum(1 for s in self.sessions if s.task_id == task_id and s.mode == TimerMode.FOCUS)

    def count_focus_sessions_since(self, user_id: str, since: datetime) -> int:
        return sum(
            1
            for s in self.sessions
            if s.user_id == user_id and s.mode == TimerMode.FOCUS and s.start_time >= since
        )

    def list_blocked_app_names(self, user_id: str) -> list[str]:
        return self.blocked_apps.get(user_id, [])


class RecordingSink:
    """Delivery sink that records what was delivered and when."""

    def __init__(self, clock: FakeClock, fail_ids: set[str] | None = None):
        self._clock = clock
        self._fail_ids = fail_ids or set()
        self.delivered: list[NotificationRequest] = []
        self.times: list[datetime] = []
        self.on_deliver: Callable[[NotificationRequest], None] | None = None

    @property
    def ids(self) -> list[str]:
        return [request.id for request in self.delivered]

    def deliver(self, request: NotificationRequest, config: NotificationConfig) -> None:
        if request.id in self._fail_ids:
            raise RuntimeError("notification service unavailable")
        self.delivered.append(request)
        self.times.append(self._clock())
        if self.on_deliver:
            self.on_deliver(request)


class FakeDispatcher:
    """Records submissions instead of delivering them."""

    def __init__(self, accept: bool = True):
        self.accept = accept
        self.submitted: list[NotificationRequest] = []

    def submit(self, request: NotificationRequest) -> bool:
        self.submitted.append(request)
        return self.accept


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 15, 9, 0, tzinfo=UTC))


@pytest.fixture
def local_store(tmp_path: Path) -> LocalStore:
    return LocalStore(tmp_path / "data")


@pytest.fixture
def settings(local_store: LocalStore) -> NotificationSettings:
    return NotificationSettings(local_store)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


def make_request(
    notification_id: str,
    priority: Priority = Priority.MEDIUM,
    notification_type: NotificationType = NotificationType.SYSTEM,
) -> NotificationRequest:
    return NotificationRequest(
        id=notification_id,
        type=notification_type,
        title=f"Title {notification_id}",
        body=f"Body {notification_id}",
        priority=priority,
        timestamp=datetime(2024, 1, 15, 9, 0, tzinfo=UTC),
    )
