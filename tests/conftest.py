"""
tests/conftest.py — Shared pytest fixtures
"""
from __future__ import annotations

import base64

import pytest
from fastapi.testclient import TestClient

from app.config import get_settings
from app.core.rate_limiter import RateLimitStore, rate_limit_store
from app.models import GreatPeopleFile, GreatPerson, RateLimitConfig
from app.services.people_catalog import PeopleCatalog
from app.services.progress_service import get_progress_service


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> RateLimitStore:
    return RateLimitStore(clock=clock)


@pytest.fixture
def small_config() -> RateLimitConfig:
    return RateLimitConfig(
        window_ms=60_000,
        max_requests=3,
        block_duration_ms=300_000,
        message="Too many requests.",
    )


@pytest.fixture
def people() -> list[GreatPerson]:
    return [
        GreatPerson(
            id="albert-einstein", name="Albert Einstein", birth_year=1879,
            death_year=1955, profession="Physicist/Philosopher",
            description="Relativity.", quote="Imagination is more important than knowledge.",
        ),
        GreatPerson(
            id="leonardo-da-vinci", name="Leonardo da Vinci", birth_year=1452,
            death_year=1519, profession="Painter/Engineer",
            description="Renaissance polymath.", quote="Simplicity is the ultimate sophistication.",
        ),
        GreatPerson(
            id="thomas-edison", name="Thomas Edison", birth_year=1847,
            death_year=1931, profession="Inventor/Businessman",
            description="Phonograph.", quote="Genius is one percent inspiration.",
        ),
        GreatPerson(
            id="wolfgang-mozart", name="Wolfgang Amadeus Mozart", birth_year=1756,
            death_year=1791, profession="Composer/Musician",
            description="Classical composer.", quote="Music is not in the notes.",
        ),
        GreatPerson(
            id="nelson-mandela", name="Nelson Mandela", birth_year=1918,
            death_year=2013, profession="Politician/Activist",
            description="Anti-apartheid leader.", quote="It always seems impossible until it's done.",
        ),
    ]


@pytest.fixture
def catalog(people) -> PeopleCatalog:
    return PeopleCatalog(GreatPeopleFile(version="test", people=people))


# ──────────────────────────────────────────────────────────────────────────────
# API fixtures
# ──────────────────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def _isolate_shared_state():
    rate_limit_store.clear()
    get_progress_service.cache_clear()
    yield
    rate_limit_store.clear()
    get_progress_service.cache_clear()


@pytest.fixture
def client():
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api_headers() -> dict[str, str]:
    return {
        "X-API-Key": get_settings().api_key,
        "X-User-Id": "user-1",
        "X-Forwarded-For": "203.0.113.7",
    }


@pytest.fixture
def basic_auth():
    """Build an `Authorization: Basic ...` header value."""

    def _header(username: str, password: str) -> str:
        token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        return f"Basic {token}"

    return _header
