"""
app/core/rate_limiter.py — Sliding-window rate limiting with punitive blocks

Each identifier (operation name + client IP) keeps a list of request
timestamps inside the configured window. Once the window is full the
identifier is blocked for `block_duration_ms`; every request during the block
is denied and not recorded. When the block ends the history is wiped.

State lives in a process-local RateLimitStore. It does not synchronise across
workers; a horizontally scaled deployment needs a shared atomic counter store.
"""
from __future__ import annotations

import math
import threading
from typing import Callable, Optional, Sequence

from fastapi import Request, Response
from slowapi.util import get_remote_address

from app.config import get_settings
from app.core.errors import AdmissionDenied
from app.core.logging import log_rate_limit_denied
from app.models import (
    MultiRateLimitResult,
    RateLimitConfig,
    RateLimitInfo,
    RateLimitResult,
    RateLimitState,
)
from app.utils.timezone import now_ms

settings = get_settings()

STALE_AFTER_MS = 24 * 60 * 60 * 1000

Clock = Callable[[], int]
Rule = tuple[str, RateLimitConfig]


class RateLimitStore:
    """
    Identifier → RateLimitState map guarded by a single lock.
    `clock` returns epoch milliseconds and is injectable for tests.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock: Clock = clock or now_ms
        self._lock = threading.Lock()
        self._states: dict[str, RateLimitState] = {}

    def now(self) -> int:
        return self._clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)

    # ── Admission check ───────────────────────────────────────────────────────

    def check(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            state = self._states.get(identifier) or RateLimitState()

            if state.blocked_until is not None and now < state.blocked_until:
                return RateLimitResult(
                    allowed=False,
                    remaining_requests=0,
                    reset_time=state.blocked_until,
                    message=config.message,
                )

            # Block served: start over with an empty history
            if state.blocked_until is not None:
                state.blocked_until = None
                state.requests = []

            window_start = now - config.window_ms
            state.requests = [ts for ts in state.requests if ts > window_start]

            if len(state.requests) >= config.max_requests:
                state.blocked_until = now + config.block_duration_ms
                self._states[identifier] = state
                return RateLimitResult(
                    allowed=False,
                    remaining_requests=0,
                    reset_time=state.blocked_until,
                    message=config.message,
                )

            state.requests.append(now)
            self._states[identifier] = state
            return RateLimitResult(
                allowed=True,
                remaining_requests=config.max_requests - len(state.requests),
                reset_time=window_start + config.window_ms,
            )

    def check_multiple(
        self,
        identifier: str,
        rules: Sequence[Rule],
    ) -> MultiRateLimitResult:
        """
        Check each (name, config) rule against `name:identifier` in order.
        Stops at the first denial; on success returns the first rule's numbers.
        """
        if not rules:
            raise ValueError("check_multiple requires at least one rule")

        first: Optional[RateLimitResult] = None
        for name, config in rules:
            result = self.check(f"{name}:{identifier}", config)
            if not result.allowed:
                return MultiRateLimitResult(
                    **result.model_dump(), failed_rule=name
                )
            if first is None:
                first = result

        return MultiRateLimitResult(
            allowed=True,
            remaining_requests=first.remaining_requests,
            reset_time=first.reset_time,
        )

    # ── Administrative operations ─────────────────────────────────────────────

    def info(self, identifier: str) -> RateLimitInfo:
        """Read-only snapshot; does not prune or touch the state."""
        with self._lock:
            state = self._states.get(identifier)
            if state is None:
                return RateLimitInfo(requests=0, is_blocked=False)
            now = self._clock()
            is_blocked = state.blocked_until is not None and now < state.blocked_until
            return RateLimitInfo(
                requests=len(state.requests),
                is_blocked=is_blocked,
                blocked_until=state.blocked_until,
            )

    def reset(self, identifier: str) -> bool:
        with self._lock:
            return self._states.pop(identifier, None) is not None

    def clear(self) -> int:
        with self._lock:
            count = len(self._states)
            self._states.clear()
            return count

    def cleanup_expired(self, stale_after_ms: int = STALE_AFTER_MS) -> int:
        """
        Drop identifiers whose block is over (or never set) and whose every
        recorded request is older than `stale_after_ms`. Returns count removed.
        """
        with self._lock:
            now = self._clock()
            expired = [
                key
                for key, state in self._states.items()
                if (state.blocked_until is None or now >= state.blocked_until)
                and all(now - ts > stale_after_ms for ts in state.requests)
            ]
            for key in expired:
                del self._states[key]
            return len(expired)


# Process-wide store shared by the routers, auth dependencies and the sweeper
rate_limit_store = RateLimitStore()


def _resolve(store: Optional[RateLimitStore]) -> RateLimitStore:
    # RateLimitStore defines __len__, so an empty store is falsy
    return store if store is not None else rate_limit_store


# ──────────────────────────────────────────────────────────────────────────────
# Module-level API over the shared store
# ──────────────────────────────────────────────────────────────────────────────

def check_rate_limit(
    identifier: str,
    config: RateLimitConfig,
    store: Optional[RateLimitStore] = None,
) -> RateLimitResult:
    return _resolve(store).check(identifier, config)


def check_multiple_rate_limits(
    identifier: str,
    rules: Sequence[Rule],
    store: Optional[RateLimitStore] = None,
) -> MultiRateLimitResult:
    return _resolve(store).check_multiple(identifier, rules)


def get_rate_limit_info(
    identifier: str, store: Optional[RateLimitStore] = None
) -> RateLimitInfo:
    return _resolve(store).info(identifier)


def reset_rate_limit(identifier: str, store: Optional[RateLimitStore] = None) -> bool:
    return _resolve(store).reset(identifier)


def clear_all_rate_limits(store: Optional[RateLimitStore] = None) -> int:
    return _resolve(store).clear()


def cleanup_expired_rate_limits(
    stale_after_ms: int = STALE_AFTER_MS,
    store: Optional[RateLimitStore] = None,
) -> int:
    return _resolve(store).cleanup_expired(stale_after_ms)


# ──────────────────────────────────────────────────────────────────────────────
# Profiles and request helpers
# ──────────────────────────────────────────────────────────────────────────────

def get_rate_limit_config(name: str) -> RateLimitConfig:
    """Return the named profile (general, auth, signup, password_reset, progress)."""
    try:
        profile = settings.rate_limit_profiles[name]
    except KeyError:
        raise KeyError(f"Unknown rate limit profile: {name!r}") from None
    return RateLimitConfig(**profile)


def retry_after_seconds(reset_time: int, now: int) -> int:
    """Whole seconds until `reset_time`, rounded up."""
    return max(0, math.ceil((reset_time - now) / 1000))


def get_client_ip(request: Request) -> str:
    """
    Client IP for rate-limit keys. Proxy headers first (first hop of
    X-Forwarded-For), then the socket peer address.
    """
    headers = request.headers

    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    client_ip = headers.get("x-client-ip")
    if client_ip:
        return client_ip.strip()

    return get_remote_address(request) or "unknown"


# ──────────────────────────────────────────────────────────────────────────────
# FastAPI dependencies: run before authentication on every protected route
# ──────────────────────────────────────────────────────────────────────────────

def _admit(
    request: Request,
    response: Response,
    identifier: str,
    result: RateLimitResult,
    rule: str,
) -> RateLimitResult:
    if not result.allowed:
        log_rate_limit_denied(identifier, rule, result.reset_time, request.url.path)
        raise AdmissionDenied(
            result.message or "Access is temporarily restricted by rate limiting.",
            retry_after=retry_after_seconds(result.reset_time, rate_limit_store.now()),
            remaining_requests=result.remaining_requests,
            reset_time=result.reset_time,
            context={"identifier": identifier, "rule": rule},
        )
    response.headers["X-RateLimit-Remaining"] = str(result.remaining_requests)
    response.headers["X-RateLimit-Reset"] = str(result.reset_time)
    return result


def rate_limited(profile: str, key: Optional[str] = None):
    """
    Dependency factory: check `{key or profile}:{client_ip}` against the named
    profile; raise AdmissionDenied (HTTP 429) when denied.
    """
    name = key or profile

    async def _dependency(request: Request, response: Response) -> RateLimitResult:
        identifier = f"{name}:{get_client_ip(request)}"
        result = check_rate_limit(identifier, get_rate_limit_config(profile))
        return _admit(request, response, identifier, result, name)

    return _dependency


def rate_limited_multi(*rules: tuple[str, str]):
    """
    Dependency factory over several (key, profile) rules, checked in order
    with check_multiple_rate_limits. The first failing key is reported.
    """
    async def _dependency(request: Request, response: Response) -> RateLimitResult:
        client_ip = get_client_ip(request)
        resolved = [(key, get_rate_limit_config(profile)) for key, profile in rules]
        result = check_multiple_rate_limits(client_ip, resolved)
        failed = result.failed_rule or resolved[0][0]
        return _admit(request, response, f"{failed}:{client_ip}", result, failed)

    return _dependency
