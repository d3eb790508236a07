"""Closing distracting applications during focus sessions."""

import logging

import psutil

logger = logging.getLogger(__name__)


def terminate_processes_by_name(name: str) -> int:
    """Terminate every process whose executable name matches ``name``.

    Matching is case-insensitive. Returns the number of processes signalled.
    """
    target = name.lower()
    terminated = 0
    for process in psutil.process_iter(["name"]):
        process_name = process.info.get("name")
        if not process_name or process_name.lower() != target:
            continue
        try:
            process.terminate()
            terminated += 1
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            logger.debug("Could not terminate %s (pid %s)", process_name, process.pid)
    return terminated


def block_apps(app_names: list[str]) -> int:
    """Terminate all running blocked applications. Failures are logged."""
    total = 0
    for name in app_names:
        try:
            count = terminate_processes_by_name(name)
        except Exception:
            logger.exception("Failed to block application %s", name)
            continue
        if count:
            logger.info("Closed %d %s process(es) during focus session", count, name)
        total += count
    return total
