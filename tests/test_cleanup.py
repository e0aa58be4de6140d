"""
tests/test_cleanup.py — Unit tests for the periodic rate-limit sweep
"""
from __future__ import annotations

import time

from app.services.cleanup import RateLimitSweeper, run_rate_limit_sweep

DAY_MS = 24 * 60 * 60 * 1000


def test_sweep_summary(store, small_config, clock):
    store.check("old", small_config)
    clock.advance(DAY_MS + 1)
    store.check("new", small_config)

    summary = run_rate_limit_sweep(store)
    assert summary == {"removed": 1, "remaining": 1}


def test_sweeper_runs_until_stopped(store, small_config, clock):
    store.check("old", small_config)
    clock.advance(DAY_MS + 1)

    sweeper = RateLimitSweeper(store, interval_seconds=0.01)
    sweeper.start()
    try:
        assert sweeper.is_running
        deadline = time.monotonic() + 2.0
        while len(store) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert len(store) == 0
    finally:
        sweeper.stop()
    assert not sweeper.is_running


def test_stop_interrupts_long_interval(store):
    sweeper = RateLimitSweeper(store, interval_seconds=3600)
    sweeper.start()
    started = time.monotonic()
    sweeper.stop()
    assert time.monotonic() - started < 2.0
    assert not sweeper.is_running


def test_stop_without_start_is_noop(store):
    RateLimitSweeper(store).stop()
