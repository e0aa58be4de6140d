"""
app/services/cleanup.py — Periodic rate-limit store sweep
The sweeper is owned by the application lifespan: started at startup,
stopped at shutdown. It is never triggered by request traffic.
"""
from __future__ import annotations

import threading
from typing import Any, Optional

from loguru import logger

from app.config import get_settings
from app.core.logging import log_error, log_sweep
from app.core.rate_limiter import RateLimitStore, rate_limit_store

settings = get_settings()

_HOUR_MS = 60 * 60 * 1000


def run_rate_limit_sweep(
    store: RateLimitStore,
    stale_after_ms: Optional[int] = None,
) -> dict[str, Any]:
    """
    One sweep pass: drop identifiers with no active block and no request
    newer than `stale_after_ms` (default: rate_limit_stale_after_hours).
    Returns summary dict.
    """
    if stale_after_ms is None:
        stale_after_ms = settings.rate_limit_stale_after_hours * _HOUR_MS
    removed = store.cleanup_expired(stale_after_ms)
    remaining = len(store)
    log_sweep(removed, remaining)
    return {"removed": removed, "remaining": remaining}


class RateLimitSweeper:
    """Background daemon thread running run_rate_limit_sweep every `interval_seconds`."""

    def __init__(
        self,
        store: RateLimitStore = rate_limit_store,
        interval_seconds: Optional[float] = None,
    ) -> None:
        self.store = store
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else settings.rate_limit_cleanup_interval_seconds
        )
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _worker(self) -> None:
        # Event.wait doubles as the sleep so stop() interrupts it immediately
        while not self._stop_event.wait(self.interval_seconds):
            try:
                run_rate_limit_sweep(self.store)
            except Exception as exc:
                log_error("rate_limiter", "sweep", exc)

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._worker,
            daemon=True,
            name="rate-limit-sweeper",
        )
        self._thread.start()
        logger.info(f"Rate-limit sweeper started (every {self.interval_seconds}s).")

    def stop(self, timeout: float = 5.0) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout)
        self._thread = None
        logger.info("Rate-limit sweeper stopped.")
