"""
api/main.py -- FastAPI application entry point for the campus blog service.

Run with:  python main.py
           uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware    -- adds CORS headers for the configured browser origins
  2. SlowAPIMiddleware -- slowapi request hook; the limits themselves are the
                          per-route group decorators in api.limiter

Lifespan builds the Engine and the stores from Settings on startup and
disposes the Engine on shutdown. Every expected failure is an AppError from
core.errors; the handlers below are the only place an ErrorKind becomes an
HTTP status.
"""

import logging
import math
import time
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.blogs import router as blogs_router
from api.routes.comments import router as comments_router
from api.routes.notifications import router as notifications_router
from api.routes.profile import router as profile_router
from auth.service import AccountService
from auth.store import UserStore
from blog.store import BlogStore
from core.config import get_settings
from core.database import create_db_engine, ping
from core.errors import AppError, ErrorKind

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("campusblog.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create shared resources on startup and release them on shutdown.

    Startup order: Engine first, then the stores that create their tables on
    it, then AccountService which wraps UserStore.
    """
    logger.info("Campus blog API starting up")
    engine = create_db_engine(_settings.database_url, timeout=_settings.db_timeout_seconds)
    app.state.settings = _settings
    app.state.engine = engine
    app.state.user_store = UserStore(engine)
    app.state.blog_store = BlogStore(engine)
    app.state.accounts = AccountService(app.state.user_store, _settings)
    Path(_settings.upload_dir).mkdir(parents=True, exist_ok=True)
    logger.info("Stores initialized (uploads in %s)", _settings.upload_dir)

    yield

    engine.dispose()
    logger.info("Campus blog API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Campus Blog API",
    description="Accounts, profiles, blogs and comments for the college blogging platform.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(profile_router, tags=["Profile"])
app.include_router(blogs_router, tags=["Blogs"])
app.include_router(comments_router, tags=["Comments"])
app.include_router(notifications_router, tags=["Notifications"])

# Uploaded avatars. check_dir=False: the lifespan creates the directory.
app.mount("/uploads", StaticFiles(directory=_settings.upload_dir, check_dir=False), name="uploads")

# ---------------------------------------------------------------------------
# Exception handlers
#
# Every handler returns the ErrorResponse envelope:
#   {"error": str, "details"?: [str], "reason"?: str, "field"?: str}
# ---------------------------------------------------------------------------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    status = exc.kind.status_code
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status, content=exc.to_payload())


# Plain def: Starlette runs sync exception handlers in its thread pool.
@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After set to the seconds left in the current window."""
    limit = getattr(exc, "limit", None)
    message = getattr(limit, "error_message", None) or "Too many requests"
    logger.warning("Rate limit hit on %s %s (%s)", request.method, request.url.path, exc.detail)
    response = JSONResponse(
        status_code=ErrorKind.RATE_LIMITED.status_code,
        content=ErrorResponse(error=message, details=["Please try again later"]).model_dump(exclude_none=True),
    )
    response.headers["Retry-After"] = str(_retry_after(request, limit))
    return response


def _retry_after(request: Request, limit) -> int:
    """Seconds until the exceeded window resets, from the limiter's own counters.

    slowapi records the limit it just evaluated (and its storage key) on
    request.state.view_rate_limit. Without it, fall back to the window length.
    """
    current = getattr(request.state, "view_rate_limit", None)
    if current is not None:
        item, key = current
        reset_at, _ = limiter.limiter.get_window_stats(item, *key)
        return max(1, math.ceil(reset_at - time.time()))
    try:
        return int(limit.limit.get_expiry())
    except AttributeError:
        return 60


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and out-of-range query params are a 400, same shape as field validation."""
    details = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        details.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(error="Validation failed", details=details).model_dump(exclude_none=True),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods and the like."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The traceback is always logged. It is echoed in the response only when
    DEBUG is on.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    details = None
    if _settings.debug:
        details = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Internal server error", details=details).model_dump(exclude_none=True),
    )


# ---------------------------------------------------------------------------
# Health endpoint -- never rate limited
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse, tags=["Health"])
@limiter.exempt
def health(request: Request) -> HealthResponse:
    """Return liveness, version and whether the database answers."""
    db_ok = ping(request.app.state.engine)
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=__version__,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
