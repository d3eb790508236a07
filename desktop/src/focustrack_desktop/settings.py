"""Process-wide notification settings with copy-on-write updates."""

import logging
from datetime import time
from typing import Any, Callable

from focustrack_shared import NotificationConfig, QuietHours
from focustrack_shared.records import to_camel

from .local_store import LocalStore

logger = logging.getLogger(__name__)

SettingsListener = Callable[[NotificationConfig, NotificationConfig], None]


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def is_quiet_time(quiet_hours: QuietHours, now: time) -> bool:
    """Check if ``now`` falls inside the quiet hours window.

    Both ends are inclusive at minute resolution. A window whose start is
    later than its end wraps past midnight.
    """
    if not quiet_hours.enabled:
        return False

    current = now.replace(second=0, microsecond=0)
    start = _parse_hhmm(quiet_hours.start)
    end = _parse_hhmm(quiet_hours.end)

    if start > end:
        return current >= start or current <= end
    return start <= current <= end


def _camel_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {to_camel(key): value for key, value in data.items()}


class NotificationSettings:
    """Holds the current NotificationConfig.

    Updates replace the whole object, so a reader holding the previous
    config keeps a consistent snapshot.
    """

    def __init__(self, store: LocalStore):
        self._store = store
        self._listeners: list[SettingsListener] = []
        loaded = store.load_notification_config()
        if loaded is None:
            logger.info("No stored notification config, using defaults")
            loaded = NotificationConfig()
        self._config = loaded

    @property
    def current(self) -> NotificationConfig:
        return self._config

    def add_listener(self, listener: SettingsListener) -> None:
        """Register a callback invoked with (old, new) after each update."""
        self._listeners.append(listener)

    def update(self, partial: dict[str, Any]) -> NotificationConfig:
        """Merge a partial config (snake_case or camelCase keys) and persist it.

        Nested ``types`` and ``quietHours`` mappings are merged key by key.
        Raises pydantic.ValidationError on invalid values or unknown keys.
        """
        old = self._config
        merged = old.model_dump(mode="json", by_alias=True)
        for key, value in _camel_keys(partial).items():
            if key in ("types", "quietHours") and isinstance(value, dict):
                nested = value if key == "types" else _camel_keys(value)
                merged[key] = {**merged[key], **nested}
            else:
                merged[key] = value

        new = NotificationConfig.model_validate(merged)
        self._config = new

        try:
            self._store.save_notification_config(new)
        except Exception:
            logger.exception("Failed to save notification config")

        for listener in list(self._listeners):
            try:
                listener(old, new)
            except Exception:
                logger.exception("Error in notification settings listener")

        return new
