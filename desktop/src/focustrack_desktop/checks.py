"""Task and project checks run by the periodic sweep."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable

from focustrack_shared import (
    NotificationRequest,
    NotificationType,
    Priority,
    ProjectStatus,
    Task,
)

from .dispatcher import Clock, NotificationDispatcher, local_now
from .scheduler import PeriodicChecks
from .store import FirestoreStore

logger = logging.getLogger(__name__)

DEADLINE_WINDOW = timedelta(hours=24)
PROJECT_DEADLINE_WINDOW_DAYS = 7
URGENT_PROJECT_DAYS = 2


def _format_minutes(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if mins else f"{hours}h"


def _as_local(value: datetime, now: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=now.tzinfo)
    return value.astimezone(now.tzinfo)


class TaskChecks:
    """Queries the store and submits deadline and workload notifications.

    Ids embed the subject and the local date, so each subject is reported at
    most once a day.
    """

    def __init__(
        self,
        store: FirestoreStore,
        dispatcher: NotificationDispatcher,
        current_user: Callable[[], str | None],
        focus_minutes: int = 25,
        clock: Clock = local_now,
    ):
        self._store = store
        self._dispatcher = dispatcher
        self._current_user = current_user
        self._focus_minutes = focus_minutes
        self._clock = clock

    def register(self, checks: PeriodicChecks) -> None:
        checks.register(NotificationType.TASK_OVERDUE, self.check_overdue_tasks)
        checks.register(NotificationType.TASK_DEADLINE, self.check_upcoming_deadlines)
        checks.register(NotificationType.PROJECT_DEADLINE, self.check_project_deadlines)
        checks.register(NotificationType.WORKLOAD_WARNING, self.check_workload)

    async def check_overdue_tasks(self) -> int:
        now = self._clock()
        submitted = 0
        for task in await self._open_tasks():
            if task.deadline is None:
                continue
            deadline = _as_local(task.deadline, now)
            if deadline >= now:
                continue
            days = (now - deadline).days
            overdue = f"{days} days" if days >= 1 else "less than a day"
            submitted += self._submit(
                NotificationRequest(
                    id=f"task-overdue-{task.id}-{now.date().isoformat()}",
                    type=NotificationType.TASK_OVERDUE,
                    title="Task overdue",
                    body=f'Task "{task.title}" is overdue by {overdue}.',
                    priority=Priority.HIGH,
                    timestamp=now,
                    requires_confirmation=True,
                    data={"relatedId": task.id, "relatedType": "task", "daysOverdue": days},
                )
            )
        return submitted

    async def check_upcoming_deadlines(self) -> int:
        now = self._clock()
        submitted = 0
        for task in await self._open_tasks():
            if task.deadline is None:
                continue
            deadline = _as_local(task.deadline, now)
            if not now <= deadline <= now + DEADLINE_WINDOW:
                continue
            hours = int((deadline - now) / timedelta(hours=1))
            submitted += self._submit(
                NotificationRequest(
                    id=f"task-deadline-{task.id}-{now.date().isoformat()}",
                    type=NotificationType.TASK_DEADLINE,
                    title="Deadline approaching",
                    body=f'Task "{task.title}" is due in {hours} hours.',
                    priority=Priority.MEDIUM,
                    timestamp=now,
                    data={"relatedId": task.id, "relatedType": "task"},
                )
            )
        return submitted

    async def check_project_deadlines(self) -> int:
        user_id = self._current_user()
        if user_id is None:
            return 0
        now = self._clock()
        projects = await asyncio.to_thread(self._store.find_projects, user_id)
        submitted = 0
        for project in projects:
            if project.status == ProjectStatus.COMPLETED or project.deadline is None:
                continue
            deadline = _as_local(project.deadline, now)
            days = (deadline.date() - now.date()).days
            if not 0 <= days <= PROJECT_DEADLINE_WINDOW_DAYS:
                continue
            submitted += self._submit(
                NotificationRequest(
                    id=f"project-deadline-{project.id}-{now.date().isoformat()}",
                    type=NotificationType.PROJECT_DEADLINE,
                    title="Project deadline approaching",
                    body=f'Project "{project.name}" is due in {days} days.',
                    priority=Priority.HIGH if days <= URGENT_PROJECT_DAYS else Priority.MEDIUM,
                    timestamp=now,
                    data={"relatedId": project.id, "relatedType": "project"},
                )
            )
        return submitted

    async def check_workload(self) -> int:
        """Warn when today's remaining tasks need more time than is left today."""
        now = self._clock()
        end_of_day = now.replace(hour=23, minute=59, second=59, microsecond=0)
        due_today = [
            task
            for task in await self._open_tasks()
            if task.deadline is not None and _as_local(task.deadline, now).date() == now.date()
        ]
        required = sum(task.estimated_pomodoros for task in due_today) * self._focus_minutes
        available = int((end_of_day - now) / timedelta(minutes=1))
        if required <= available:
            return 0

        return self._submit(
            NotificationRequest(
                id=f"workload-{now.date().isoformat()}",
                type=NotificationType.WORKLOAD_WARNING,
                title="Too much work for today",
                body=(
                    f"Today's tasks need {_format_minutes(required)} but only "
                    f"{_format_minutes(available)} remain. "
                    f"You are short {_format_minutes(required - available)}."
                ),
                priority=Priority.HIGH,
                timestamp=now,
                requires_confirmation=True,
                data={"requiredMinutes": required, "availableMinutes": available},
            )
        )

    async def _open_tasks(self) -> list[Task]:
        user_id = self._current_user()
        if user_id is None:
            return []
        return await asyncio.to_thread(self._store.find_tasks, user_id)

    def _submit(self, request: NotificationRequest) -> int:
        return 1 if self._dispatcher.submit(request) else 0
