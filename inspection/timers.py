"""
inspection/timers.py

Cancellable, keyed one-shot timers used to debounce auto-save.

Scheduling a key that is already pending replaces it, which is what turns
repeated edits into a single flush after the last one.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)


class DebounceTimers(Protocol):
    def schedule(self, key: str, delay_seconds: float, callback: Callable[[], None]) -> None:
        ...

    def cancel(self, key: str) -> bool:
        ...

    def cancel_all(self) -> None:
        ...


class SchedulerDebounceTimers:
    """
    DebounceTimers backed by an APScheduler ``BackgroundScheduler``.

    Each key maps to one ``date`` job; ``replace_existing=True`` resets the
    countdown. Callbacks run on the scheduler's thread pool.
    """

    def __init__(
        self,
        *,
        scheduler: BackgroundScheduler | None = None,
        job_prefix: str = "autosave",
    ) -> None:
        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler or BackgroundScheduler(timezone=timezone.utc)
        self._job_prefix = job_prefix
        self._keys: set[str] = set()
        self._lock = threading.Lock()

    def schedule(self, key: str, delay_seconds: float, callback: Callable[[], None]) -> None:
        self._ensure_started()
        run_date = datetime.now(timezone.utc) + timedelta(seconds=max(0.0, delay_seconds))
        with self._lock:
            self._keys.add(key)
        self._scheduler.add_job(
            self._fire,
            trigger="date",
            run_date=run_date,
            args=(key, callback),
            id=self._job_id(key),
            replace_existing=True,
            misfire_grace_time=None,
        )

    def cancel(self, key: str) -> bool:
        with self._lock:
            self._keys.discard(key)
        try:
            self._scheduler.remove_job(self._job_id(key))
        except JobLookupError:
            return False
        return True

    def cancel_all(self) -> None:
        with self._lock:
            keys = list(self._keys)
        for key in keys:
            self.cancel(key)

    def shutdown(self) -> None:
        self.cancel_all()
        if self._owns_scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    def _fire(self, key: str, callback: Callable[[], None]) -> None:
        with self._lock:
            self._keys.discard(key)
        callback()

    def _ensure_started(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.debug("Debounce scheduler started prefix=%s", self._job_prefix)

    def _job_id(self, key: str) -> str:
        return f"{self._job_prefix}:{key}"
