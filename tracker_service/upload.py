"""
Upload handler.

Lands a multipart JSON upload on disk, then hands it to the job store,
which moves it onto the fixed landing name, validates it and adopts it as
the new backing file.
"""

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

from fastapi import UploadFile

from .errors import IOFailure, MalformedInput
from .store import JobStore

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPES = {"application/json", "text/json"}
CHUNK_SIZE = 64 * 1024


def is_json_upload(filename: Optional[str], content_type: Optional[str]) -> bool:
    """Accept by declared media type or by .json extension."""
    media_type = (content_type or "").split(";")[0].strip().lower()
    if media_type in JSON_MEDIA_TYPES:
        return True
    return bool(filename) and filename.lower().endswith(".json")


def land_upload(source: BinaryIO, landing_path: Path, max_bytes: int) -> Path:
    """
    Copy an upload into a private temp file next to the landing path.

    Each request gets its own file, so overlapping uploads never share
    bytes before the store takes over.

    Returns:
        Path of the temp file holding the upload

    Raises:
        MalformedInput: upload exceeds max_bytes (partial file is removed)
        IOFailure: temp file could not be written
    """
    written = 0
    tmp_path = None
    try:
        landing_path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "wb",
            dir=landing_path.parent,
            prefix=f".{landing_path.name}.",
            suffix=".part",
            delete=False,
        ) as out:
            tmp_path = Path(out.name)
            while True:
                chunk = source.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise MalformedInput(f"File exceeds maximum size of {max_bytes} bytes")
                out.write(chunk)
    except MalformedInput:
        if tmp_path:
            tmp_path.unlink(missing_ok=True)
        raise
    except OSError as e:
        if tmp_path:
            tmp_path.unlink(missing_ok=True)
        raise IOFailure(f"Failed to store uploaded file: {e}")

    logger.debug(f"Landed {written} bytes in {tmp_path.name}")
    return tmp_path


async def handle_upload(
    file: Optional[UploadFile],
    store: JobStore,
    landing_path: Path,
    max_bytes: int,
) -> int:
    """
    Validate and adopt an uploaded jobs file.

    Blocking file work runs in worker threads; the store lock serializes
    the hand-over, so the last upload to finish wins.

    Args:
        file: The multipart ``file`` field (None when missing)
        store: Job store that takes over the landed file
        landing_path: Fixed path the upload is moved to before validation
        max_bytes: Upload size cap

    Returns:
        Number of rows now stored
    """
    if file is None or not file.filename:
        raise MalformedInput("No file uploaded")

    if not is_json_upload(file.filename, file.content_type):
        logger.warning(
            f"Rejected upload {file.filename!r} with content type {file.content_type!r}"
        )
        raise MalformedInput("Only JSON files are allowed")

    try:
        tmp_path = await asyncio.to_thread(land_upload, file.file, landing_path, max_bytes)
    finally:
        await file.close()

    logger.info(f"Received upload {file.filename!r}")
    return await asyncio.to_thread(store.adopt_file, tmp_path, landing_path)
