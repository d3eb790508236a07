"""Tests for the application command surface."""

import asyncio
from datetime import UTC, datetime
from pathlib import Path

import pytest

from focustrack_shared import InAppNotification, NotificationType, TimerMode
from focustrack_desktop.app import FocusTrackApp
from focustrack_desktop.config import Config
from focustrack_desktop.countdown import TimerState
from focustrack_desktop.events import EventName
from focustrack_desktop.local_store import LocalStore
from focustrack_desktop.scheduler import SWEEP_JOB
from focustrack_desktop.inactivity import EVALUATE_JOB

from conftest import FakeClock, FakeStore


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        user_id="u1",
        firebase_credentials_path=tmp_path / "credentials.json",
        data_dir=tmp_path / "data",
        block_poll_seconds=0,
    )


@pytest.fixture
def app(config: Config, store: FakeStore, clock: FakeClock) -> FocusTrackApp:
    app = FocusTrackApp(config, store, clock=clock, sleep=clock.sleep)
    app.set_current_user("u1")
    return app


@pytest.mark.asyncio
async def test_completed_focus_reaches_ui(app: FocusTrackApp, store: FakeStore) -> None:
    received: list[InAppNotification] = []
    app.events.on(EventName.NEW_NOTIFICATION, received.append)

    app.start_timer(TimerMode.FOCUS, 3000)
    await app.countdown.join()
    await app.dispatcher.wait_idle()

    assert [n.type for n in received] == [NotificationType.POMODORO_COMPLETE]
    assert len(store.sessions) == 1
    assert app.countdown.state == TimerState.IDLE
    assert app.countdown.session.mode == TimerMode.BREAK
    assert app.countdown.session.remaining_ms == 5 * 60_000


@pytest.mark.asyncio
async def test_start_timer_defaults_to_configured_duration(app: FocusTrackApp) -> None:
    ticks: list[int] = []
    app.events.on(EventName.TICK, ticks.append)

    app.start_timer("break")
    app.pause_timer()

    assert ticks[0] == 5 * 60_000
    assert app.countdown.state == TimerState.PAUSED
    await app.shutdown()


@pytest.mark.asyncio
async def test_acknowledged_notification_is_not_resubmitted(app: FocusTrackApp) -> None:
    request = {
        "id": "n1",
        "type": "system",
        "title": "Hello",
        "body": "World",
        "timestamp": datetime(2024, 1, 15, 9, 0, tzinfo=UTC),
    }
    app.acknowledge_notification("n1")

    assert app.submit_notification(request) is False
    assert app.submit_notification({**request, "id": "n2"}) is True
    await app.dispatcher.wait_idle()


def test_config_update_is_persisted(app: FocusTrackApp, config: Config) -> None:
    updated = app.update_notification_config({"checkInterval": 10, "quietHours": {"enabled": True}})

    assert updated.check_interval == 10
    assert updated.quiet_hours.enabled is True
    assert updated.quiet_hours.start == "22:00"
    assert app.get_notification_config() == updated

    stored = LocalStore(config.data_dir).load_notification_config()
    assert stored is not None
    assert stored.check_interval == 10


@pytest.mark.asyncio
async def test_start_and_shutdown_manage_jobs(app: FocusTrackApp) -> None:
    await app.start()
    assert set(app.scheduler.job_names) == {SWEEP_JOB, EVALUATE_JOB}

    await app.shutdown()
    await asyncio.sleep(0)

    assert app.scheduler.job_names == []


@pytest.mark.asyncio
async def test_disabled_background_features(config: Config, store: FakeStore, clock: FakeClock) -> None:
    config = config.model_copy(
        update={"periodic_checks_enabled": False, "inactivity_tracking_enabled": False}
    )
    app = FocusTrackApp(config, store, clock=clock, sleep=clock.sleep)

    await app.start()

    assert app.scheduler.job_names == []
    assert NotificationType.INACTIVITY_WARNING not in await app.checks.tick()
    await app.shutdown()
