"""Configuration for the desktop client."""

from pathlib import Path

from pydantic import BaseModel, Field

from focustrack_shared import TimerMode


class Config(BaseModel):
    """Local configuration for this installation."""

    user_id: str
    firebase_credentials_path: Path
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".focustrack")
    focus_minutes: int = 25
    break_minutes: int = 5
    block_poll_seconds: int = 5
    inactivity_poll_minutes: int = 15
    periodic_checks_enabled: bool = True
    inactivity_tracking_enabled: bool = True
    notification_launch_uri: str | None = None

    def phase_durations_ms(self) -> dict[TimerMode, int]:
        """Full duration of each countdown phase in milliseconds."""
        return {
            TimerMode.FOCUS: self.focus_minutes * 60_000,
            TimerMode.BREAK: self.break_minutes * 60_000,
        }


def load_config(path: Path) -> Config:
    """Load configuration from a JSON file."""
    return Config.model_validate_json(path.read_text())
