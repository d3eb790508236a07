"""Entry point for the FocusTrack desktop core."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

import firebase_admin  # type: ignore[import-untyped]
from firebase_admin import credentials, firestore  # type: ignore[import-untyped]

from focustrack_shared import TimerMode

from .app import FocusTrackApp
from .config import Config, load_config
from .events import EventName
from .store import FirestoreStore
from .tray import TrayManager

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool, log_file: Path | None = None) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def init_firebase(config: Config) -> firestore.Client:
    """Initialize Firebase Admin SDK and return Firestore client."""
    cred = credentials.Certificate(str(config.firebase_credentials_path))
    firebase_admin.initialize_app(cred)
    return firestore.client()


async def run_app(app: FocusTrackApp, enable_tray: bool = True) -> None:
    """Run the core until interrupted or quit from the tray."""
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()

    tray: TrayManager | None = None
    if enable_tray:
        tray = TrayManager(
            on_start=lambda mode: loop.call_soon_threadsafe(app.start_timer, mode),
            on_pause=lambda: loop.call_soon_threadsafe(app.pause_timer),
            on_resume=lambda: loop.call_soon_threadsafe(app.resume_timer),
            on_quit=lambda: loop.call_soon_threadsafe(stop.set),
        )

        def refresh_tray(_: object) -> None:
            session = app.countdown.session
            tray.update(session.mode, app.countdown.state, session.remaining_ms)

        for name in (EventName.TICK, EventName.DONE, EventName.PAUSED):
            app.events.on(name, refresh_tray)
        app.events.on(EventName.NEW_NOTIFICATION, lambda _: tray.notification_received())
        tray.start()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

    await app.start()
    try:
        await stop.wait()
    finally:
        await app.shutdown()
        if tray:
            tray.stop()


def cmd_run(args: argparse.Namespace) -> None:
    """Run the FocusTrack core interactively."""
    setup_logging(args.verbose, args.log_file)

    config_path: Path = args.config
    if not config_path.exists():
        logger.error("Configuration file not found: %s", config_path)
        sys.exit(1)

    config = load_config(config_path)
    logger.info("Loaded configuration for user: %s", config.user_id)

    db = init_firebase(config)
    logger.info("Firebase initialized")

    app = FocusTrackApp(config, FirestoreStore(db))

    async def main_async() -> None:
        if args.start_focus:
            loop = asyncio.get_running_loop()
            loop.call_soon(app.start_timer, TimerMode.FOCUS, args.start_focus * 60_000)
        await run_app(app, enable_tray=not args.no_tray)

    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        logger.info("Interrupted")


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=Path("config.json"),
        help="Path to configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file",
    )
    parser.add_argument(
        "--no-tray",
        action="store_true",
        help="Disable system tray icon",
    )
    parser.add_argument(
        "--start-focus",
        type=int,
        metavar="MINUTES",
        default=None,
        help="Start a focus session of MINUTES right away",
    )


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="FocusTrack focus timer and notification service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  focustrack                     Run with tray icon
  focustrack --no-tray           Run without tray icon
  focustrack --start-focus 50    Start a 50 minute focus session
""",
    )

    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run interactively")
    _add_run_arguments(run_parser)
    run_parser.set_defaults(func=cmd_run)

    _add_run_arguments(parser)

    args = parser.parse_args()

    if args.command is None:
        cmd_run(args)
    else:
        args.func(args)


if __name__ == "__main__":
    main()
