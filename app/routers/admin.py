"""
app/routers/admin.py — Rate-limit administration
Inspect, reset and clear rate-limit state. Protected by X-API-Key.
"""

from typing import Any

from fastapi import APIRouter, Depends
from loguru import logger

from app.core.auth import require_api_key
from app.core.rate_limiter import (
    clear_all_rate_limits,
    get_rate_limit_info,
    rate_limit_store,
    reset_rate_limit,
)
from app.services.cleanup import run_rate_limit_sweep

router = APIRouter(dependencies=[Depends(require_api_key)])


@router.get("/rate-limits/{identifier:path}")
async def rate_limit_info(identifier: str) -> dict[str, Any]:
    """Read-only view of one identifier (e.g. `progress-post:203.0.113.7`)."""
    info = get_rate_limit_info(identifier)
    return {"success": True, "data": {"identifier": identifier, **info.model_dump(by_alias=True)}}


@router.delete("/rate-limits/{identifier:path}")
async def reset_identifier(identifier: str) -> dict[str, Any]:
    existed = reset_rate_limit(identifier)
    logger.info(f"Admin reset rate limit for {identifier!r} (existed={existed}).")
    return {"success": True, "data": {"identifier": identifier, "reset": existed}}


@router.delete("/rate-limits")
async def clear_all() -> dict[str, Any]:
    cleared = clear_all_rate_limits()
    logger.warning(f"Admin cleared all rate limits ({cleared} identifiers).")
    return {"success": True, "data": {"cleared": cleared}}


@router.post("/rate-limits/sweep")
async def sweep_now() -> dict[str, Any]:
    """Run the periodic stale-identifier sweep immediately."""
    return {"success": True, "data": run_rate_limit_sweep(rate_limit_store)}
