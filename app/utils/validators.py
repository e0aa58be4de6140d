"""
app/utils/validators.py — Request value validation and safe JSON parsing
Date path parameters, progress-update fields and persisted JSON files.
"""
from __future__ import annotations

import json
import re
from datetime import date
from typing import Any, Optional, Type, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from app.core.errors import ValidationFailure

T = TypeVar("T", bound=BaseModel)

DATE_PARAM_RE = re.compile(r"^(?:(\d{4})-)?(\d{2})-(\d{2})$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
PERSON_ID_RE = re.compile(r"^[A-Za-z0-9-]{3,50}$")
OFFSET_RE = re.compile(r"^[+-]?\d+$")


def safe_parse_json(text: str) -> Optional[dict[str, Any]]:
    """
    Safely parse JSON text. Returns None on failure (no exception raised).
    Logs the parse error for debugging.
    """
    text = text.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        logger.debug(f"JSON parse failed: {exc} | Text: {text[:200]!r}")
        return None


def parse_model_safe(
    model_class: Type[T],
    data: dict[str, Any],
    context: str = "",
) -> Optional[T]:
    """
    Parse and validate a dict into a Pydantic model. Returns None on validation failure.
    Logs the validation errors for debugging.
    """
    try:
        return model_class.model_validate(data)
    except ValidationError as exc:
        logger.error(
            f"Schema validation failed for {model_class.__name__} "
            f"(context: {context}): {exc}"
        )
        return None


# ──────────────────────────────────────────────────────────────────────────────
# Great-people path parameters
# ──────────────────────────────────────────────────────────────────────────────

def parse_date_param(value: str) -> tuple[int, int]:
    """
    Accept MM-DD or YYYY-MM-DD and return (month, day).
    The year, when given, does not take part in selection.
    """
    match = DATE_PARAM_RE.match(value or "")
    if not match:
        raise ValidationFailure(
            "Invalid date format. Use MM-DD or YYYY-MM-DD."
        )
    month, day = int(match.group(2)), int(match.group(3))
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        raise ValidationFailure(f"Invalid date: {value!r}.")
    return month, day


def parse_offset_param(value: str) -> int:
    if not OFFSET_RE.match((value or "").strip()):
        raise ValidationFailure("Offset must be an integer.")
    return int(value)


# ──────────────────────────────────────────────────────────────────────────────
# Progress update body
# ──────────────────────────────────────────────────────────────────────────────

def is_valid_person_id(person_id: Any) -> bool:
    """3–50 characters of letters, digits and hyphens."""
    return isinstance(person_id, str) and bool(PERSON_ID_RE.match(person_id))


def parse_view_date(value: str, today: date) -> date:
    """YYYY-MM-DD, a real calendar date, and not after `today`."""
    if not ISO_DATE_RE.match(value):
        raise ValidationFailure("Invalid date format. Use YYYY-MM-DD.")
    try:
        parsed = date.fromisoformat(value)
    except ValueError:
        raise ValidationFailure(f"Invalid date: {value!r}.") from None
    if parsed > today:
        raise ValidationFailure("Future dates cannot be recorded.")
    return parsed


def validate_progress_update(
    person_id: Any,
    view_date: Any,
    today: date,
) -> tuple[str, date]:
    if not person_id or not view_date:
        raise ValidationFailure("personId and date are required.")
    if not isinstance(person_id, str) or not isinstance(view_date, str):
        raise ValidationFailure("personId and date must be strings.")
    person_id = person_id.strip()
    if not is_valid_person_id(person_id):
        raise ValidationFailure("Invalid personId.")
    return person_id, parse_view_date(view_date.strip(), today)
