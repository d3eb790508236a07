from .models import (
    ActivityRecord,
    InAppNotification,
    NotificationConfig,
    NotificationRequest,
    NotificationType,
    Priority,
    Project,
    ProjectStatus,
    QuietHours,
    Session,
    Task,
    TaskStatus,
    TimerMode,
    TimerSession,
)

__all__ = [
    "ActivityRecord",
    "InAppNotification",
    "NotificationConfig",
    "NotificationRequest",
    "NotificationType",
    "Priority",
    "Project",
    "ProjectStatus",
    "QuietHours",
    "Session",
    "Task",
    "TaskStatus",
    "TimerMode",
    "TimerSession",
]
