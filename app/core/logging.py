"""
app/core/logging.py — loguru structured JSON logging setup
Every record carries {timestamp, component, operation} plus event fields.
"""
from __future__ import annotations

import json
import sys
import traceback
from typing import Any, Optional

from loguru import logger

from app.utils.timezone import utc_now


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure loguru for structured JSON output to stdout.
    The hosting platform collects stdout; no file sinks are configured.
    """
    # Remove default loguru handler
    logger.remove()

    logger.add(
        sys.stdout,
        level=log_level.upper(),
        format="{message}",  # Raw message (we format as JSON ourselves)
        serialize=True,       # loguru built-in JSON serialization
        backtrace=True,
        diagnose=False,       # Never dump local variables (may hold credentials)
        colorize=False,
    )


def _build_log_record(
    component: str,
    operation: str,
    extra: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Build a base structured log record."""
    record: dict[str, Any] = {
        "timestamp": utc_now().isoformat(),
        "component": component,
        "operation": operation,
    }
    if extra:
        record.update(extra)
    return record


# ──────────────────────────────────────────────────────────────────────────────
# Event helpers
# ──────────────────────────────────────────────────────────────────────────────

def log_rate_limit_denied(
    identifier: str,
    rule: str,
    reset_time: int,
    endpoint: str,
) -> None:
    """Every rate-limit denial is logged with the identifier that tripped it."""
    record = _build_log_record("rate_limiter", "denied", {
        "identifier": identifier,
        "rule": rule,
        "reset_time": reset_time,
        "endpoint": endpoint,
    })
    logger.warning(json.dumps(record))


def log_selection(
    endpoint: str,
    month: int,
    day: int,
    index: Optional[int],
    total_people: int,
    is_preview: bool = False,
) -> None:
    record = _build_log_record("daily_selector", "select", {
        "endpoint": endpoint,
        "month": month,
        "day": day,
        "index": index,
        "total_people": total_people,
        "is_preview": is_preview,
    })
    logger.debug(json.dumps(record))


def log_progress_update(
    user_id: str,
    person_id: str,
    view_date: str,
    newly_viewed: bool,
    duration_ms: float,
) -> None:
    """Every successful progress write is logged."""
    record = _build_log_record("progress_service", "record_view", {
        "user_id": user_id,
        "person_id": person_id,
        "view_date": view_date,
        "newly_viewed": newly_viewed,
        "duration_ms": round(duration_ms, 2),
    })
    logger.info(json.dumps(record))


def log_sweep(removed: int, remaining: int) -> None:
    record = _build_log_record("rate_limiter", "sweep", {
        "removed": removed,
        "remaining": remaining,
    })
    logger.info(json.dumps(record))


def log_error(
    component: str,
    operation: str,
    error: Exception,
    context: Optional[dict[str, Any]] = None,
) -> None:
    """Every unexpected error is logged with full context."""
    tb = "".join(
        traceback.format_exception(type(error), error, error.__traceback__)
    )
    record = _build_log_record(component, operation, {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "stack_trace": tb[:2000],
        "context": context or {},
    })
    logger.error(json.dumps(record, default=str))
