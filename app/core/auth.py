"""
app/core/auth.py — Authentication gate for the calendar API
Accepts either:
  - X-API-Key + X-User-Id (trusted front end acting for a signed-in user), or
  - HTTP Basic Auth (the configured calendar user).
Failed Basic Auth attempts are throttled with the "auth" rate-limit profile.
"""
from __future__ import annotations

import base64
import binascii
import re
import secrets
from typing import Optional

from fastapi import Request

from app.config import get_settings
from app.core.errors import AdmissionDenied, AuthenticationError
from app.core.logging import log_rate_limit_denied
from app.core.rate_limiter import (
    check_rate_limit,
    get_client_ip,
    get_rate_limit_config,
    get_rate_limit_info,
    rate_limit_store,
    retry_after_seconds,
)

settings = get_settings()

USER_ID_RE = re.compile(r"^[A-Za-z0-9@._+-]{1,100}$")


def _matches(supplied: str, expected: str) -> bool:
    return secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def is_api_key_request(request: Request) -> bool:
    """Returns True if the request carries the configured API key."""
    api_key = request.headers.get("X-API-Key")
    return bool(api_key and _matches(api_key, settings.api_key))


def _parse_basic_auth(authorization: Optional[str]) -> Optional[tuple[str, str]]:
    """Decode an `Authorization: Basic ...` header into (username, password)."""
    if not authorization or not authorization.startswith("Basic "):
        return None
    try:
        decoded = base64.b64decode(authorization[6:], validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


def _deny_login(identifier: str, reset_time: int, message: Optional[str], endpoint: str) -> AdmissionDenied:
    now = rate_limit_store.now()
    log_rate_limit_denied(identifier, "auth", reset_time, endpoint)
    return AdmissionDenied(
        message,
        retry_after=retry_after_seconds(reset_time, now),
        remaining_requests=0,
        reset_time=reset_time,
    )


def _check_basic_auth(request: Request, credentials: tuple[str, str]) -> str:
    """
    Validate Basic credentials under login throttling. A blocked client gets
    429 even with correct credentials; each failure counts toward the block.
    """
    identifier = f"auth:{get_client_ip(request)}"
    config = get_rate_limit_config("auth")
    endpoint = request.url.path

    info = get_rate_limit_info(identifier)
    if info.is_blocked:
        raise _deny_login(identifier, info.blocked_until, config.message, endpoint)

    username, password = credentials
    correct_username = _matches(username, settings.dashboard_user)
    correct_password = _matches(password, settings.dashboard_pass)
    if correct_username and correct_password:
        return username

    result = check_rate_limit(identifier, config)
    if not result.allowed:
        raise _deny_login(identifier, result.reset_time, result.message, endpoint)
    raise AuthenticationError("Invalid credentials.")


async def require_user(request: Request) -> str:
    """
    Resolve the calling user's id or raise AuthenticationError.
    Used by every /api/great-people and /api/user endpoint.
    """
    # Method 1: API key from a trusted front end, user named in X-User-Id
    if is_api_key_request(request):
        user_id = (request.headers.get("X-User-Id") or "").strip()
        if not USER_ID_RE.match(user_id):
            raise AuthenticationError("X-User-Id header required with API key access.")
        return user_id

    # Method 2: HTTP Basic Auth
    credentials = _parse_basic_auth(request.headers.get("Authorization"))
    if credentials is not None:
        return _check_basic_auth(request, credentials)

    raise AuthenticationError(
        "Authentication required. Provide X-API-Key and X-User-Id headers or HTTP Basic Auth."
    )


async def require_api_key(request: Request) -> bool:
    """Validate X-API-Key header for administrative access."""
    if not request.headers.get("X-API-Key"):
        raise AuthenticationError("X-API-Key header required.")
    if not is_api_key_request(request):
        raise AuthenticationError("Invalid API key.")
    return True
