"""
FastAPI service for the job-application tracker.

Serves a single JSON job collection: replace it from a JSON body or an
uploaded file, and read it back. The store is constructed once at startup
and owned by the app; see store.py for the persistence contract.
"""

import asyncio
import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import validate_config_on_startup
from .errors import TrackerError
from .models import HealthResponse, WriteResponse
from .rate_limit import SlidingWindowLimiter
from .routes import jobs_router
from .store import JobStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

# Validate configuration at import so CORS and log level come from checked values
_import_settings = validate_config_on_startup()
logging.getLogger().setLevel(_import_settings.log_level)

app = FastAPI(title="Job Tracker", version=__version__)

if _import_settings.cors_origins_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_import_settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(jobs_router)


@app.on_event("startup")
async def startup_job_store():
    """Validate configuration, then build and rehydrate the job store."""
    settings = validate_config_on_startup()

    store = JobStore(settings.jobs_path, strict_records=settings.strict_records)
    store.load()

    app.state.settings = settings
    app.state.store = store
    app.state.rate_limiter = (
        SlidingWindowLimiter(
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
        if settings.rate_limit_enabled
        else None
    )


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    """Every store/upload failure reaches the caller as a 400 envelope."""
    logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    body = WriteResponse(success=False, message=exc.message)
    return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed form fields and parameters use the same 400 envelope."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "request"
        message = f"Invalid request: {location}: {first.get('msg')}"
    else:
        message = "Invalid request"
    logger.warning(f"{request.method} {request.url.path} rejected: {message}")
    body = WriteResponse(success=False, message=message)
    return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint for container orchestration.

    Returns service status and the size of the current collection.
    """
    store: JobStore = app.state.store
    collection = await asyncio.to_thread(store.current)
    return HealthResponse(
        status="healthy",
        row_count=len(collection["rows"]),
        backing_file_present=store.path.exists(),
        timestamp=datetime.utcnow(),
    )
