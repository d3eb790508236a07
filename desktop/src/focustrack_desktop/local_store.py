"""Local JSON storage for notification settings and activity state."""

import json
import logging
import re
from pathlib import Path

from focustrack_shared import ActivityRecord, NotificationConfig

logger = logging.getLogger(__name__)

MAX_ACKNOWLEDGED_IDS = 1000


class LocalStore:
    """Manages the per-installation JSON files. Not transactional."""

    def __init__(self, data_dir: Path):
        self._data_dir = data_dir
        self._data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def _config_path(self) -> Path:
        return self._data_dir / "notification_config.json"

    @property
    def _acknowledged_path(self) -> Path:
        return self._data_dir / "acknowledged.json"

    def _activity_path(self, user_id: str) -> Path:
        safe_id = re.sub(r"[^A-Za-z0-9_.-]", "_", user_id)
        return self._data_dir / "activity" / f"{safe_id}.json"

    def save_notification_config(self, config: NotificationConfig) -> None:
        """Persist notification settings."""
        self._config_path.write_text(config.model_dump_json(by_alias=True, indent=2))
        logger.debug("Saved notification config")

    def load_notification_config(self) -> NotificationConfig | None:
        """Load notification settings. Returns None if none are stored."""
        if not self._config_path.exists():
            return None
        try:
            return NotificationConfig.model_validate_json(self._config_path.read_text())
        except Exception:
            logger.exception("Failed to load notification config")
            return None

    def save_activity_state(self, user_id: str, state: ActivityRecord) -> None:
        """Persist activity timestamps for a user."""
        path = self._activity_path(user_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(state.model_dump_json(by_alias=True, indent=2))

    def load_activity_state(self, user_id: str) -> ActivityRecord | None:
        """Load activity timestamps for a user. Returns None if none are stored."""
        path = self._activity_path(user_id)
        if not path.exists():
            return None
        try:
            return ActivityRecord.model_validate_json(path.read_text())
        except Exception:
            logger.exception("Failed to load activity state for user %s", user_id)
            return None

    def save_acknowledged_ids(self, ids: list[str]) -> None:
        """Persist the most recent acknowledged notification ids."""
        recent = ids[-MAX_ACKNOWLEDGED_IDS:]
        self._acknowledged_path.write_text(json.dumps(recent, indent=2))
        logger.debug("Saved %d acknowledged notification ids", len(recent))

    def load_acknowledged_ids(self) -> list[str]:
        """Load acknowledged notification ids, oldest first."""
        if not self._acknowledged_path.exists():
            return []
        try:
            data = json.loads(self._acknowledged_path.read_text())
            return [str(item) for item in data]
        except Exception:
            logger.exception("Failed to load acknowledged notification ids")
            return []
