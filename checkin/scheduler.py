"""
Periodic re-evaluation of tracking windows.

The evaluators are pure; this module owns the only timers. A watcher
re-reads the latest session snapshot every poll interval, evaluates it
against a fresh ``now`` and stores the result.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from checkin.config import Settings, get_settings
from checkin.database import Database, get_db
from checkin.eligibility import evaluate_window_with_settings
from checkin.models import TrackingWindow, TrackingWindowStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_TERMINAL = {TrackingWindowStatus.STARTED, TrackingWindowStatus.EXPIRED}


def utc_now() -> datetime:
    return datetime.now(UTC)


class SessionWatcher:
    """Re-evaluates one session's tracking window until stopped."""

    def __init__(
        self,
        session_id: int,
        *,
        db: Database | None = None,
        settings: Settings | None = None,
        clock: Clock = utc_now,
        interval_seconds: float | None = None,
    ) -> None:
        self.session_id = session_id
        self._db = db or get_db()
        self._settings = settings or get_settings()
        self._clock = clock
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else self._settings.poll_interval_seconds
        )
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def evaluate(self) -> TrackingWindow:
        session = self._db.sessions.get(self.session_id)
        window = evaluate_window_with_settings(session, self._clock(), self._settings)
        self._db.windows.put(self.session_id, window)
        return window

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(
            "Watching session %s every %ss", self.session_id, self.interval_seconds
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Stopped watching session %s", self.session_id)

    async def _run(self) -> None:
        while True:
            try:
                window = self.evaluate()
            except Exception:
                logger.exception("Evaluation failed for session %s", self.session_id)
            else:
                # Nothing changes once a window is terminal
                if window.status in _TERMINAL:
                    logger.info(
                        "Session %s reached %s", self.session_id, window.status
                    )
                    return
            await asyncio.sleep(self.interval_seconds)


_watchers: dict[int, SessionWatcher] = {}


def get_watcher(session_id: int) -> SessionWatcher | None:
    return _watchers.get(session_id)


def start_watcher(session_id: int, **kwargs) -> SessionWatcher:
    """Start (or return the running) watcher for a session."""
    watcher = _watchers.get(session_id)
    if watcher is None or not watcher.running:
        watcher = SessionWatcher(session_id, **kwargs)
        _watchers[session_id] = watcher
        watcher.start()
    return watcher


async def stop_watcher(session_id: int) -> bool:
    watcher = _watchers.pop(session_id, None)
    if watcher is None:
        return False
    await watcher.stop()
    return True


async def stop_all_watchers() -> None:
    for session_id in list(_watchers):
        await stop_watcher(session_id)
