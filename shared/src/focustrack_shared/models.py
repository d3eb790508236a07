"""Data models for FocusTrack.

Tasks, projects and sessions live in Firestore; notification settings and
activity state live in local JSON files. Stored field names are camelCase.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from .records import to_camel


class TimerMode(StrEnum):
    FOCUS = "focus"
    BREAK = "break"

    @property
    def other(self) -> "TimerMode":
        return TimerMode.BREAK if self is TimerMode.FOCUS else TimerMode.FOCUS


class TaskStatus(StrEnum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class ProjectStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"


class NotificationType(StrEnum):
    TASK_OVERDUE = "taskOverdue"
    TASK_DEADLINE = "taskDeadline"
    PROJECT_DEADLINE = "projectDeadline"
    WORKLOAD_WARNING = "workloadWarning"
    POMODORO_COMPLETE = "pomodoroComplete"
    BREAK_COMPLETE = "breakComplete"
    ACHIEVEMENT = "achievement"
    SYSTEM = "system"
    INACTIVITY_WARNING = "inactivityWarning"


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Dequeue rank, higher is delivered first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.LOW: 0,
    Priority.MEDIUM: 1,
    Priority.HIGH: 2,
    Priority.CRITICAL: 3,
}


class Task(BaseModel):
    """Firestore: tasks/{taskId}"""

    id: str | None = None
    user_id: str
    title: str
    deadline: datetime | None = None
    priority: int = 0
    status: TaskStatus = TaskStatus.TODO
    estimated_pomodoros: Annotated[int, Field(ge=1)] = 1


class Project(BaseModel):
    """Firestore: projects/{projectId}"""

    id: str | None = None
    user_id: str
    name: str
    deadline: datetime | None = None
    status: ProjectStatus = ProjectStatus.ACTIVE


class Session(BaseModel):
    """Firestore: sessions/{sessionId}

    Appended once per completed countdown phase.
    """

    id: str | None = None
    user_id: str
    task_id: str | None = None
    mode: TimerMode
    start_time: datetime
    end_time: datetime
    duration: Annotated[int, Field(ge=0)]  # seconds


class TimerSession(BaseModel):
    """Snapshot of the countdown engine state."""

    mode: TimerMode = TimerMode.FOCUS
    remaining_ms: Annotated[int, Field(ge=0)] = 0
    start_timestamp: datetime | None = None
    task_id: str | None = None
    user_id: str | None = None


class NotificationRequest(BaseModel):
    """A request to show a notification, submitted to the dispatcher."""

    id: str
    type: NotificationType
    title: str
    body: str
    priority: Priority = Priority.MEDIUM
    timestamp: datetime
    requires_confirmation: bool = False
    data: dict[str, Any] = Field(default_factory=dict)


class InAppNotification(BaseModel):
    """Notification entry pushed to the UI notification list."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    type: NotificationType
    title: str
    message: str
    timestamp: datetime
    read: bool = False
    priority: Priority
    related_id: str | None = None
    related_type: str | None = None
    action_required: bool = False


class QuietHours(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    enabled: bool = False
    start: Annotated[str, Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")] = "22:00"
    end: Annotated[str, Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")] = "08:00"


def _all_types_enabled() -> dict[NotificationType, bool]:
    return {notification_type: True for notification_type in NotificationType}


class NotificationConfig(BaseModel):
    """Process-wide notification settings.

    Stored in notification_config.json with camelCase keys.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    enabled: bool = True
    sound: bool = True
    os_notifications: bool = True
    types: dict[NotificationType, bool] = Field(default_factory=_all_types_enabled)
    check_interval: Annotated[float, Field(gt=0)] = 5  # minutes
    quiet_hours: QuietHours = Field(default_factory=QuietHours)
    inactivity_threshold: Annotated[float, Field(gt=0)] = 4  # hours

    def type_enabled(self, notification_type: NotificationType) -> bool:
        """Missing entries count as enabled."""
        return self.types.get(notification_type, True)


class ActivityRecord(BaseModel):
    """Per-user activity state, stored in activity/{userId}.json."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    last_activity_time: datetime | None = None
    last_notification_time: datetime | None = None
