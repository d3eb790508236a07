"""System tray icon showing the countdown."""

import logging
import math
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from PIL import Image, ImageDraw, ImageFont

from focustrack_shared import TimerMode

from .countdown import TimerState

logger = logging.getLogger(__name__)


class TrayColor(Enum):
    """Color states for the tray icon."""

    RED = (229, 57, 53)      # Focus running
    GREEN = (76, 175, 80)    # Break running
    YELLOW = (255, 193, 7)   # Paused
    GRAY = (158, 158, 158)   # Idle


def get_tray_color(mode: TimerMode, state: TimerState) -> TrayColor:
    """Determine tray icon color from the countdown state."""
    if state == TimerState.IDLE:
        return TrayColor.GRAY
    if state == TimerState.PAUSED:
        return TrayColor.YELLOW
    if mode == TimerMode.FOCUS:
        return TrayColor.RED
    return TrayColor.GREEN


def minutes_left(remaining_ms: int) -> int:
    """Whole minutes shown on the icon, rounded up while time remains."""
    return max(0, math.ceil(remaining_ms / 60_000))


def create_tray_icon_image(
    minutes_remaining: int,
    color: TrayColor,
    size: int = 64,
) -> Image.Image:
    """Create a tray icon image showing remaining minutes."""
    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)

    padding = 2
    draw.ellipse(
        [padding, padding, size - padding, size - padding],
        fill=color.value,
    )

    mins = max(0, int(minutes_remaining))
    text = str(mins) if mins < 100 else "99+"

    font_size = size // 2 if len(text) <= 2 else size // 3
    try:
        font = ImageFont.truetype("arial.ttf", font_size)
    except OSError:
        font = ImageFont.load_default()

    bbox = draw.textbbox((0, 0), text, font=font)
    text_width = bbox[2] - bbox[0]
    text_height = bbox[3] - bbox[1]
    x = (size - text_width) // 2
    y = (size - text_height) // 2 - bbox[1]

    draw.text((x, y), text, fill=(255, 255, 255), font=font)

    return img


@dataclass
class TrayState:
    """State displayed in the tray icon."""

    mode: TimerMode = TimerMode.FOCUS
    state: TimerState = TimerState.IDLE
    remaining_ms: int = 0
    unread: int = 0


class TrayManager:
    """Manages the system tray icon.

    Menu callbacks run on the tray thread; callers are responsible for
    handing them to the event loop.
    """

    def __init__(
        self,
        on_start: Callable[[TimerMode], None] | None = None,
        on_pause: Callable[[], None] | None = None,
        on_resume: Callable[[], None] | None = None,
        on_quit: Callable[[], None] | None = None,
    ):
        self._state = TrayState()
        self._icon: Any = None
        self._on_start = on_start
        self._on_pause = on_pause
        self._on_resume = on_resume
        self._on_quit = on_quit
        self._lock = threading.Lock()

    def start(self) -> None:
        """Start the tray icon in a background thread."""
        from pystray import Icon

        self._icon = Icon(
            name="FocusTrack",
            icon=self._create_icon(),
            title=self._get_tooltip(),
            menu=self._create_menu(),
        )
        thread = threading.Thread(target=self._icon.run, daemon=True)
        thread.start()
        logger.info("Tray icon started")

    def stop(self) -> None:
        if self._icon:
            self._icon.stop()
            self._icon = None
            logger.info("Tray icon stopped")

    def update(
        self,
        mode: TimerMode,
        state: TimerState,
        remaining_ms: int,
    ) -> None:
        """Update the tray icon state."""
        with self._lock:
            previous = self._state
            self._state = TrayState(
                mode=mode,
                state=state,
                remaining_ms=remaining_ms,
                unread=previous.unread,
            )
            changed = (
                previous.state != state
                or previous.mode != mode
                or minutes_left(previous.remaining_ms) != minutes_left(remaining_ms)
            )

        if self._icon and changed:
            self._icon.icon = self._create_icon()
            self._icon.title = self._get_tooltip()
            self._icon.menu = self._create_menu()

    def notification_received(self) -> None:
        with self._lock:
            self._state.unread += 1
        if self._icon:
            self._icon.title = self._get_tooltip()

    def _create_icon(self) -> Image.Image:
        with self._lock:
            color = get_tray_color(self._state.mode, self._state.state)
            return create_tray_icon_image(minutes_left(self._state.remaining_ms), color)

    def _get_tooltip(self) -> str:
        with self._lock:
            state = self._state
        if state.state == TimerState.IDLE:
            text = "FocusTrack: idle"
        else:
            mins = minutes_left(state.remaining_ms)
            suffix = " (paused)" if state.state == TimerState.PAUSED else ""
            text = f"FocusTrack: {state.mode} {mins} min left{suffix}"
        if state.unread:
            text += f" | {state.unread} new"
        return text

    def _create_menu(self) -> Any:
        from pystray import Menu, MenuItem

        with self._lock:
            state = self._state.state

        items = [
            MenuItem("Start focus", lambda: self._start(TimerMode.FOCUS)),
            MenuItem("Start break", lambda: self._start(TimerMode.BREAK)),
            Menu.SEPARATOR,
            MenuItem("Pause", self._pause, enabled=state == TimerState.RUNNING),
            MenuItem("Resume", self._resume, enabled=state == TimerState.PAUSED),
            Menu.SEPARATOR,
            MenuItem("Quit", self._on_quit_clicked),
        ]
        return Menu(*items)

    def _start(self, mode: TimerMode) -> None:
        logger.info("Start %s requested from tray", mode)
        if self._on_start:
            self._on_start(mode)

    def _pause(self) -> None:
        if self._on_pause:
            self._on_pause()

    def _resume(self) -> None:
        if self._on_resume:
            self._on_resume()

    def _on_quit_clicked(self) -> None:
        logger.info("Quit requested from tray")
        if self._on_quit:
            self._on_quit()
        self.stop()
