"""
Job Collection Routes

REST endpoints over the job store:
- POST /api/jobs: replace the collection from a raw JSON body
- GET /api/jobs: read the current collection
- POST /api/upload: replace the collection from an uploaded JSON file

There is no authentication; any caller may overwrite the collection.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from ..config import TrackerSettings
from ..errors import MalformedInput
from ..models import JobCollection, WriteResponse
from ..rate_limit import enforce_rate_limit
from ..store import JobStore
from ..upload import handle_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["jobs"], dependencies=[Depends(enforce_rate_limit)])


def get_store(request: Request) -> JobStore:
    """Job store owned by the running app."""
    return request.app.state.store


def get_app_settings(request: Request) -> TrackerSettings:
    return request.app.state.settings


@router.post("/jobs", response_model=WriteResponse, response_model_exclude_none=True)
async def replace_jobs(request: Request, store: JobStore = Depends(get_store)) -> WriteResponse:
    """
    Replace the whole job collection.

    The body must be a JSON object with a ``rows`` array. Unknown root keys
    are ignored.
    """
    logger.info("Received POST request with jobs data")
    try:
        body = await request.json()
    except ValueError as e:
        raise MalformedInput(f"Invalid JSON: {e}")

    count = await asyncio.to_thread(store.replace, body)
    return WriteResponse(success=True, message="Jobs data received", count=count)


@router.get("/jobs", response_model=JobCollection)
async def list_jobs(store: JobStore = Depends(get_store)) -> Dict[str, Any]:
    """Return the current collection verbatim."""
    logger.debug("Sending jobs data to frontend")
    return await asyncio.to_thread(store.current)


@router.post("/upload", response_model=WriteResponse, response_model_exclude_none=True)
async def upload_jobs(
    file: Optional[UploadFile] = File(None),
    store: JobStore = Depends(get_store),
    settings: TrackerSettings = Depends(get_app_settings),
) -> WriteResponse:
    """
    Replace the job collection from an uploaded JSON file.

    The file must be JSON by media type or extension and within the size
    cap. A file that fails validation is deleted; the accepted file becomes
    the new backing file.
    """
    count = await handle_upload(
        file,
        store,
        landing_path=settings.upload_landing_path,
        max_bytes=settings.max_upload_bytes,
    )
    return WriteResponse(success=True, message="File uploaded successfully", count=count)
