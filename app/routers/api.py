"""
app/routers/api.py — Great-people and user-progress endpoints
Every data endpoint runs rate limiting first, then authentication.
Future-date (offset > 0) responses carry only a hint and a category.
"""

import random
import time
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request

from app.core.auth import require_user
from app.core.errors import NoDataError, NotFoundError
from app.core.logging import log_progress_update, log_selection
from app.core.rate_limiter import (
    rate_limit_store,
    rate_limited,
    rate_limited_multi,
)
from app.models import ProgressUpdateRequest
from app.services import daily_selector
from app.services.people_catalog import get_catalog
from app.services.progress_service import get_progress_service
from app.utils.timezone import month_day_key, today_local, today_local_str
from app.utils.validators import (
    parse_date_param,
    parse_offset_param,
    validate_progress_update,
)

router = APIRouter()

_hint_rng = random.Random()


def get_hint_rng() -> random.Random:
    """Random source for preview hints. Overridden in tests for repeatable phrasing."""
    return _hint_rng


def success_response(
    data: Any,
    message: Optional[str] = None,
    meta: Optional[dict[str, Any]] = None,
    **extra: Any,
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    if meta is not None:
        body["meta"] = meta
    body.update(extra)
    return body


# ──────────────────────────────────────────────────────────────────────────────
# GET /api/great-people: full reference list
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/great-people")
async def list_great_people(
    _limit=Depends(rate_limited("general")),
    _user: str = Depends(require_user),
) -> dict[str, Any]:
    catalog = get_catalog()
    return success_response(
        [p.model_dump(by_alias=True) for p in catalog.people],
        count=catalog.count,
        version=catalog.version,
        lastUpdated=catalog.last_updated,
    )


# ──────────────────────────────────────────────────────────────────────────────
# GET /api/great-people/relative/{offset}: yesterday / today / tomorrow ...
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/great-people/relative/{offset}")
async def great_person_relative(
    offset: str,
    request: Request,
    _limit=Depends(rate_limited("general")),
    _user: str = Depends(require_user),
    rng: random.Random = Depends(get_hint_rng),
) -> dict[str, Any]:
    """
    offset <= 0 → full entry; offset > 0 → preview only (hint + category).
    Offsets outside ±max_offset_days are rejected with 400.
    """
    offset_num = parse_offset_param(offset)
    catalog = get_catalog()
    selection = daily_selector.select_for_offset(offset_num, today_local(), catalog.count)
    if selection is None:
        raise NoDataError()

    person = catalog.get(selection.index)
    date_key = month_day_key(selection.target_date)
    log_selection(
        request.url.path, selection.month, selection.day,
        selection.index, catalog.count, selection.is_preview,
    )

    if selection.is_preview:
        preview = daily_selector.build_preview(person, rng)
        return success_response(
            preview.model_dump(by_alias=True),
            meta={
                "date": date_key,
                "offset": offset_num,
                "message": "Upcoming great people are revealed on their day. Stay tuned!",
            },
        )

    return success_response(
        person.model_dump(by_alias=True),
        meta={
            "date": date_key,
            "offset": offset_num,
            "dayOfYear": selection.day_of_year,
            "personIndex": selection.index,
            "totalPeople": catalog.count,
        },
    )


# ──────────────────────────────────────────────────────────────────────────────
# GET /api/great-people/{date}: MM-DD or YYYY-MM-DD
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/great-people/{date}")
async def great_person_for_date(
    date: str,
    request: Request,
    _limit=Depends(rate_limited("general")),
    _user: str = Depends(require_user),
) -> dict[str, Any]:
    month, day = parse_date_param(date)
    catalog = get_catalog()
    index = daily_selector.select_for_date(month, day, catalog.count)
    log_selection(request.url.path, month, day, index, catalog.count)
    if index is None:
        raise NoDataError()

    person = catalog.get(index)
    return success_response(
        person.model_dump(by_alias=True),
        meta={
            "date": date,
            "dayOfYear": daily_selector.compute_day_of_year(month, day),
            "personIndex": index,
            "totalPeople": catalog.count,
        },
    )


# ──────────────────────────────────────────────────────────────────────────────
# /api/user/progress: viewing progress of the authenticated user
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/user/progress")
async def get_progress(
    _limit=Depends(rate_limited("progress", key="progress-get")),
    user_id: str = Depends(require_user),
) -> dict[str, Any]:
    progress = get_progress_service().get_user_progress(user_id, today_local())
    return success_response(
        progress.model_dump(mode="json", by_alias=True),
        message="Progress loaded.",
    )


@router.post("/user/progress")
async def record_view(
    body: ProgressUpdateRequest,
    _limit=Depends(rate_limited_multi(("general", "general"), ("progress-post", "progress"))),
    user_id: str = Depends(require_user),
) -> dict[str, Any]:
    """
    Record that the user viewed a great person on a date (YYYY-MM-DD, not in
    the future). Re-recording an already viewed person is a no-op.
    """
    start = time.monotonic()
    today = today_local()
    person_id, view_date = validate_progress_update(body.person_id, body.date, today)

    if person_id not in get_catalog():
        raise NotFoundError(f"Unknown personId: {person_id!r}.")

    service = get_progress_service()
    newly_viewed = service.record_person_view(user_id, person_id, view_date)
    log_progress_update(
        user_id, person_id, view_date.isoformat(), newly_viewed,
        (time.monotonic() - start) * 1000,
    )

    progress = service.get_user_progress(user_id, today)
    return success_response(
        progress.model_dump(mode="json", by_alias=True),
        message="View recorded." if newly_viewed else "Already viewed.",
    )


@router.post("/user/progress/today")
async def mark_todays_person(
    _limit=Depends(rate_limited("progress", key="progress-post")),
    user_id: str = Depends(require_user),
) -> dict[str, Any]:
    """Set today's selected great person as the user's person of the day."""
    today = today_local()
    catalog = get_catalog()
    index = daily_selector.select_for_date(today.month, today.day, catalog.count)
    person = catalog.get(index)

    service = get_progress_service()
    service.set_todays_person(user_id, person.id, today)
    progress = service.get_user_progress(user_id, today)
    return success_response(
        progress.model_dump(mode="json", by_alias=True),
        message="Today's great person set.",
        meta={"personId": person.id, "date": today_local_str()},
    )


@router.post("/user/progress/reset")
async def reset_progress(
    _limit=Depends(rate_limited("progress", key="progress-post")),
    user_id: str = Depends(require_user),
) -> dict[str, Any]:
    """Start over, e.g. after every great person has been viewed."""
    service = get_progress_service()
    service.reset_user_progress(user_id)
    progress = service.get_user_progress(user_id, today_local())
    return success_response(
        progress.model_dump(mode="json", by_alias=True),
        message="Progress reset.",
    )


# ──────────────────────────────────────────────────────────────────────────────
# GET /api/health: public, no auth
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/health")
async def health_check(
    request: Request,
    _limit=Depends(rate_limited("general")),
) -> dict[str, Any]:
    catalog = get_catalog()
    sweeper = getattr(request.app.state, "sweeper", None)
    checks = {
        "catalog_loaded": catalog.count > 0,
        "total_people": catalog.count,
        "tracked_identifiers": len(rate_limit_store),
        "sweeper_running": bool(sweeper and sweeper.is_running),
    }
    healthy = checks["catalog_loaded"]
    return {
        "status": "healthy" if healthy else "degraded",
        "checks": checks,
        "timestamp": today_local_str(),
    }
