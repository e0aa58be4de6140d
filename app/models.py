"""
app/models.py — All Pydantic data schemas
Reference data (great people), rate-limit state/decisions, selector results,
user progress and request bodies.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.utils.timezone import utc_now


class CamelModel(BaseModel):
    """Base for models exchanged with the front end (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ──────────────────────────────────────────────────────────────────────────────
# Reference data: data/great_people.json
# ──────────────────────────────────────────────────────────────────────────────

class GreatPerson(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str
    name: str
    birth_year: int
    death_year: Optional[int] = None
    profession: str
    description: str
    quote: str
    nationality: Optional[str] = None
    achievements: list[str] = []
    image_url: Optional[str] = None


class GreatPeopleFile(CamelModel):
    version: str = "1.0"
    last_updated: Optional[str] = None
    people: list[GreatPerson] = []


# ──────────────────────────────────────────────────────────────────────────────
# Rate limiting
# ──────────────────────────────────────────────────────────────────────────────

class RateLimitConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    window_ms: int = Field(gt=0)
    max_requests: int = Field(gt=0)
    block_duration_ms: int = Field(ge=0)
    message: str = "Too many requests."


class RateLimitState(BaseModel):
    requests: list[int] = []  # epoch ms, oldest first
    blocked_until: Optional[int] = None


class RateLimitResult(BaseModel):
    allowed: bool
    remaining_requests: int
    reset_time: int  # epoch ms
    message: Optional[str] = None


class MultiRateLimitResult(RateLimitResult):
    failed_rule: Optional[str] = None


class RateLimitInfo(CamelModel):
    """Admin view of one identifier (camelCase on the wire)."""

    requests: int
    is_blocked: bool
    blocked_until: Optional[int] = None


# ──────────────────────────────────────────────────────────────────────────────
# Daily selection
# ──────────────────────────────────────────────────────────────────────────────

class OffsetSelection(BaseModel):
    offset: int
    target_date: date
    month: int
    day: int
    day_of_year: int
    index: int
    is_preview: bool


class PersonPreview(CamelModel):
    hint: str
    category: str
    is_preview: bool = True


# ──────────────────────────────────────────────────────────────────────────────
# User progress
# ──────────────────────────────────────────────────────────────────────────────

class ProgressRecord(BaseModel):
    user_id: str
    viewed: dict[str, date] = {}  # person_id → first view date, insertion ordered
    last_viewed_date: Optional[date] = None
    todays_person_id: Optional[str] = None
    updated_at: datetime = Field(default_factory=utc_now)


class ProgressStoreFile(BaseModel):
    schema_version: str = "1.0"
    users: dict[str, ProgressRecord] = {}


class UserProgress(CamelModel):
    user_id: str
    total_viewed: int
    total_people: int
    progress_percentage: int
    this_week_count: int
    this_month_count: int
    last_viewed_date: Optional[date] = None
    todays_person_id: Optional[str] = None
    viewed_people_ids: list[str] = []


class ProgressUpdateRequest(CamelModel):
    # Loosely typed: type and format checks produce VALIDATION envelopes
    person_id: Any = None
    date: Any = None
