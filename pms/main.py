"""
Placement Management System - Main Application

FastAPI backend with:
- MongoDB for every record
- S3 for profile images
- JWT authentication with role capabilities
- Bulk staff/student roster imports

Run: uvicorn pms.main:app --reload
"""

import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException

from pms.api.routes import api_router
from pms.core.config import get_settings
from pms.core.exceptions import PMSError, RateLimitExceeded
from pms.core.rate_limit import FixedWindowRateLimiter
from pms.db.mongodb import init_mongo_indexes, test_mongo_connection
from pms.services.mongo_service import duplicate_field

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("pms")

# Create FastAPI app
app = FastAPI(
    title="Placement Management System",
    description="""
    Back office for a college placement cell.

    ## Features
    - **Authentication**: JWT auth, role capabilities, throttled login
    - **Course categories & departments**: CRUD with status toggles
    - **Administrators**: own profile, admin listing and stats
    - **Staff profiles**: department HOD and placement staff profiles
    - **Roster import**: spreadsheet preview and idempotent bulk creation
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Login throttle, owned by the app and swept by a background task
app.state.login_limiter = FixedWindowRateLimiter(
    max_attempts=settings.login_max_attempts,
    window_seconds=settings.login_window_seconds,
)

# Include API routes
app.include_router(api_router, prefix="/api")


# ============================================================
# ERROR HANDLERS
# ============================================================

def error_response(status_code: int, message: str, errors=None, headers=None, **extra) -> JSONResponse:
    content = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(PMSError)
async def pms_error_handler(request: Request, exc: PMSError):
    if isinstance(exc, RateLimitExceeded):
        return error_response(
            exc.status_code, exc.message,
            headers={"Retry-After": str(exc.retry_after)},
            retryAfter=exc.retry_after,
        )
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc.status_code, exc.message, exc.errors)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(location), "message": error.get("msg", "Invalid value")})
    return error_response(400, "Validation failed", errors)


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    field = duplicate_field(exc)
    return error_response(400, f"{field} already exists. Please use a different value.")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if settings.is_development:
        return error_response(500, "Internal server error", error=str(exc))
    return error_response(500, "Internal server error")


# ============================================================
# LIFECYCLE
# ============================================================

async def sweep_login_limiter(limiter: FixedWindowRateLimiter, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        removed = limiter.sweep()
        if removed:
            logger.debug("Swept %s expired login windows", removed)


@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes and start the login limiter sweep."""
    try:
        init_mongo_indexes()
        logger.info("MongoDB indexes initialized")
    except PyMongoError as e:
        logger.warning("MongoDB index initialization failed: %s", e)

    app.state.sweep_task = asyncio.create_task(
        sweep_login_limiter(app.state.login_limiter, settings.login_sweep_interval_seconds)
    )


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "sweep_task", None)
    if task is not None:
        task.cancel()


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "mongodb": "connected" if test_mongo_connection() else "disconnected",
    }
