"""
app/main.py — FastAPI application entry point
Includes: lifespan management (catalog load, rate-limit sweeper), CORS,
security headers, error envelopes, startup validation, ping endpoint.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from app.config import get_settings
from app.core.errors import AppError, ValidationFailure
from app.core.logging import log_error, setup_logging
from app.routers import admin, api
from app.services.cleanup import RateLimitSweeper
from app.services.people_catalog import get_catalog

settings = get_settings()

_PLACEHOLDER_SECRETS = ("change-me-immediately", "your-api-key-here")


# ──────────────────────────────────────────────────────────────────────────────
# Application Lifespan
# ──────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    FastAPI lifespan: startup → yield → shutdown.
    Startup: logging, secret check, reference data load, sweeper start.
    Shutdown: sweeper stop.
    """
    setup_logging(settings.log_level)
    logger.info("Great Person Calendar starting up...")

    _validate_env()

    catalog = get_catalog()
    if catalog.count == 0:
        logger.critical("No great-person data loaded. Selection endpoints will answer 404.")

    sweeper = RateLimitSweeper()
    sweeper.start()
    app.state.sweeper = sweeper

    logger.info("Startup complete.")
    try:
        yield
    finally:
        sweeper.stop()
        logger.info("Shutting down Great Person Calendar.")


def _validate_env() -> None:
    """Warn loudly when secrets are unset or still placeholders."""
    required = [
        ("api_key", "API_KEY"),
        ("dashboard_user", "DASHBOARD_USER"),
        ("dashboard_pass", "DASHBOARD_PASS"),
    ]
    missing = []
    for attr, env_name in required:
        val = getattr(settings, attr, None)
        if not val or val in _PLACEHOLDER_SECRETS:
            missing.append(env_name)

    if missing:
        msg = f"Missing or placeholder env vars: {', '.join(missing)}"
        if settings.is_production:
            logger.critical(msg)
        else:
            logger.warning(msg)


# ──────────────────────────────────────────────────────────────────────────────
# FastAPI App
# ──────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Great Person Calendar",
    description="One great person from history for every day of the year.",
    version="1.0.0",
    docs_url="/docs" if not settings.is_production else None,
    redoc_url=None,
    lifespan=lifespan,
)


# ── Error envelopes ───────────────────────────────────────────────────────────
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        log_error("api", request.url.path, exc, exc.context)
    else:
        logger.warning(
            f"{request.method} {request.url.path} → {exc.status_code} "
            f"{exc.error_type.value}: {exc.message}"
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    error = ValidationFailure("Request body or parameters are malformed.")
    logger.warning(f"{request.method} {request.url.path} → 400 VALIDATION: {exc.errors()}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log_error("api", request.url.path, exc)
    error = AppError("Something went wrong. Please try again later.")
    return JSONResponse(status_code=500, content=error.to_dict())


# ── CORS ──────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)


# ── Security headers middleware ───────────────────────────────────────────────
@app.middleware("http")
async def add_security_headers(request: Request, call_next) -> Response:
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
    return response


# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(api.router, prefix="/api", tags=["api"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])


@app.get("/api/ping", tags=["health"])
async def ping():
    """Liveness probe. Touches no state."""
    return {"status": "ok", "version": "1.0.0"}
