"""Notification delivery to the in-app list and Windows toast notifications."""

import logging
import sys
from enum import StrEnum

from focustrack_shared import InAppNotification, NotificationConfig, NotificationRequest, Priority

from .events import EventBus, EventName

logger = logging.getLogger(__name__)

APP_ID = "FocusTrack"


class Urgency(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    CRITICAL = "critical"


def os_urgency(priority: Priority) -> Urgency:
    """Map a notification priority to an OS urgency hint."""
    if priority == Priority.CRITICAL:
        return Urgency.CRITICAL
    elif priority == Priority.LOW:
        return Urgency.LOW
    return Urgency.NORMAL


def to_in_app(request: NotificationRequest) -> InAppNotification:
    """Build the entry shown in the UI notification list."""
    return InAppNotification(
        id=request.id,
        type=request.type,
        title=request.title,
        message=request.body,
        timestamp=request.timestamp,
        read=False,
        priority=request.priority,
        related_id=request.data.get("relatedId"),
        related_type=request.data.get("relatedType"),
        action_required=request.requires_confirmation,
    )


class DeliverySink:
    """Pushes notifications to the UI event surface and the OS."""

    def __init__(self, events: EventBus, launch_uri: str | None = None):
        self._events = events
        self._launch_uri = launch_uri

    def deliver(self, request: NotificationRequest, config: NotificationConfig) -> None:
        """Deliver to the UI, then to the OS if enabled in ``config``."""
        self.deliver_to_ui(request)
        if config.os_notifications:
            self.deliver_to_os(request, sound=config.sound)

    def deliver_to_ui(self, request: NotificationRequest) -> None:
        self._events.emit(EventName.NEW_NOTIFICATION, to_in_app(request))

    def deliver_to_os(self, request: NotificationRequest, sound: bool) -> bool:
        """Show a toast notification.

        Returns True if notification was shown successfully.
        """
        if sys.platform != "win32":
            logger.debug("OS notifications only supported on Windows")
            return False

        try:
            from winotify import Notification, audio

            urgency = os_urgency(request.priority)
            toast = Notification(
                app_id=APP_ID,
                title=request.title,
                msg=request.body,
                duration="long" if urgency == Urgency.CRITICAL else "short",
                launch=self._launch_uri or "",
            )
            toast.set_audio(audio.Default if sound else audio.Silent, loop=False)
            toast.show()

            logger.info("Showed %s notification %s", urgency, request.id)
            return True

        except Exception:
            logger.exception("Failed to show OS notification %s", request.id)
            return False

    def notification_clicked(self, notification: InAppNotification) -> None:
        """Forward a click on a notification back to the UI layer."""
        logger.info("Notification %s clicked", notification.id)
        self._events.emit(EventName.NOTIFICATION_CLICKED, notification)
