"""
app/services/daily_selector.py — Deterministic great-person-of-the-day selection

The day key is (month - 1) * 31 + day. It is not a true ordinal day (months
shorter than 31 days leave gaps) but existing views and stored progress depend
on this exact mapping, so it must not change.

Future dates only ever yield a PersonPreview (hint + category).
"""
from __future__ import annotations

import random
import re
from datetime import date
from typing import Optional

from app.config import get_settings
from app.core.errors import ValidationFailure
from app.models import GreatPerson, OffsetSelection, PersonPreview
from app.utils.timezone import shift_days

settings = get_settings()

# ── Era thresholds (birth year, exclusive upper bound) ───────────────────────
ERA_THRESHOLDS: list[tuple[int, str]] = [
    (1500, "classical"),
    (1800, "early-modern"),
    (1900, "19th-century"),
]
MODERN_ERA = "modern"

# ── Profession word → category label (first match wins, whole words only) ─────
CATEGORY_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\b(scien\w*|physicist|physics|chemi\w*)\b"), "scientist"),
    (re.compile(r"\b(painter|art|artist)\b"), "artist"),
    (re.compile(r"\b(invent\w*)\b"), "inventor"),
]

HINT_TEMPLATES: list[str] = [
    "Tomorrow brings a {category} from the {era} era",
    "A great person who made their mark as a {category} is tomorrow's guest",
    "Look forward to a great {category} who lived in the {era} era",
]


def compute_day_of_year(month: int, day: int) -> int:
    if not 1 <= month <= 12:
        raise ValidationFailure(f"Month must be between 1 and 12 (got {month}).")
    if not 1 <= day <= 31:
        raise ValidationFailure(f"Day must be between 1 and 31 (got {day}).")
    return (month - 1) * 31 + day


def select_for_date(month: int, day: int, entry_count: int) -> Optional[int]:
    """
    Index of the entry for a month/day. Pure: same inputs, same index.
    Returns None when there are no entries (no data for any date).
    """
    day_of_year = compute_day_of_year(month, day)
    if entry_count <= 0:
        return None
    return day_of_year % entry_count


def validate_offset(offset: int, max_offset: Optional[int] = None) -> int:
    if max_offset is None:
        max_offset = settings.max_offset_days
    if isinstance(offset, bool) or not isinstance(offset, int):
        raise ValidationFailure("Offset must be an integer.")
    if not -max_offset <= offset <= max_offset:
        raise ValidationFailure(
            f"Offset must be between -{max_offset} and {max_offset}."
        )
    return offset


def select_for_offset(
    offset: int,
    today: date,
    entry_count: int,
) -> Optional[OffsetSelection]:
    """
    Selection for `today + offset` days. Offsets outside the allowed range are
    rejected before any date arithmetic. Positive offsets are previews.
    """
    validate_offset(offset)
    if entry_count <= 0:
        return None

    target = shift_days(today, offset)
    day_of_year = compute_day_of_year(target.month, target.day)
    return OffsetSelection(
        offset=offset,
        target_date=target,
        month=target.month,
        day=target.day,
        day_of_year=day_of_year,
        index=day_of_year % entry_count,
        is_preview=offset > 0,
    )


# ──────────────────────────────────────────────────────────────────────────────
# Preview hints for future dates
# ──────────────────────────────────────────────────────────────────────────────

def era_label(birth_year: int) -> str:
    for upper, label in ERA_THRESHOLDS:
        if birth_year < upper:
            return label
    return MODERN_ERA


def primary_profession(profession: str) -> str:
    return profession.split(settings.profession_delimiter)[0].strip()


def category_label(profession: str) -> str:
    lowered = profession.lower()
    for pattern, label in CATEGORY_PATTERNS:
        if pattern.search(lowered):
            return label
    return primary_profession(profession)


def generate_hint(person: GreatPerson, rng: Optional[random.Random] = None) -> str:
    """Pick one hint template at random. Pass a seeded Random for repeatable output."""
    rng = rng or random.Random()
    template = rng.choice(HINT_TEMPLATES)
    return template.format(
        era=era_label(person.birth_year),
        category=category_label(person.profession),
    )


def build_preview(
    person: GreatPerson, rng: Optional[random.Random] = None
) -> PersonPreview:
    """Reduced projection of a future entry. Never copies identifying fields."""
    return PersonPreview(
        hint=generate_hint(person, rng),
        category=primary_profession(person.profession),
    )
