"""
Job Store

Holds the current job collection and mirrors it to a single JSON backing
file. Replacement is whole-collection only; reads prefer the backing file
and fall back to the last in-memory collection when the file is missing
or unreadable.
"""

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as SchemaError

from .errors import IOFailure, MalformedInput
from .models import JobRecord

logger = logging.getLogger(__name__)

INVALID_BODY_MESSAGE = "Invalid request body"
MISSING_ROWS_MESSAGE = 'Request body must contain a "rows" array'


class JobStore:
    """
    File-backed store for the job collection.

    One instance is constructed at startup and shared by all requests.
    Every mutation (and every read that refreshes from disk) runs under a
    single lock, so concurrent replacements are serialized and the last
    completed write wins.
    """

    def __init__(self, path: Union[str, Path], strict_records: bool = False):
        self.path = Path(path)
        self.strict_records = strict_records
        self._rows: List[Any] = []
        # Set while memory holds rows the backing file does not
        self._dirty = False
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    def load(self) -> int:
        """
        Rehydrate the in-memory collection from the backing file.

        Returns:
            Number of rows loaded (0 when there is no usable file)
        """
        with self._lock:
            rows = self._read_or_fallback()
            if rows is not None:
                self._rows = rows
            logger.info(f"Job store ready with {len(self._rows)} rows ({self.path})")
            return len(self._rows)

    def replace(self, candidate: Any) -> int:
        """
        Replace the whole collection with ``candidate["rows"]``.

        Args:
            candidate: Parsed JSON value (expected to be an object with a
                ``rows`` list)

        Returns:
            Number of rows now stored

        Raises:
            MalformedInput: candidate is not an object or rows is not a list.
                The stored collection is left unchanged.
        """
        rows = self._validate(candidate)

        with self._lock:
            self._rows = copy.deepcopy(rows)
            self._persist_rows()

        logger.info(f"Updated jobs data with {len(rows)} jobs")
        return len(rows)

    def current(self) -> Dict[str, List[Any]]:
        """
        Return the current collection as ``{"rows": [...]}``.

        The backing file wins when it exists and parses, unless the last
        accepted collection never reached disk; otherwise the last in-memory
        collection is returned. Read failures never propagate.
        """
        with self._lock:
            rows = self._read_or_fallback()
            if rows is not None:
                self._rows = rows
            return {"rows": copy.deepcopy(self._rows)}

    def adopt_file(
        self,
        uploaded_path: Union[str, Path],
        landing_path: Optional[Union[str, Path]] = None,
    ) -> int:
        """
        Validate an uploaded file and make it the new backing file.

        The whole hand-over runs under the store lock, so overlapping
        uploads are serialized and the last one to finish wins. When
        ``landing_path`` is given, the uploaded file is first moved onto
        that fixed name. The landed file is parsed and validated exactly
        like a ``replace`` body. On success it is renamed over the backing
        file; on failure it is deleted and the stored collection is
        untouched.

        Args:
            uploaded_path: File holding the uploaded bytes
            landing_path: Fixed landing name to move the upload to first

        Returns:
            Number of rows now stored

        Raises:
            MalformedInput: the file is not JSON or fails validation
            IOFailure: the uploaded file could not be moved or read
        """
        uploaded_path = Path(uploaded_path)

        with self._lock:
            if landing_path is None:
                landed = uploaded_path
            else:
                landed = Path(landing_path)
                try:
                    os.replace(uploaded_path, landed)
                except OSError as e:
                    _remove_quietly(uploaded_path)
                    raise IOFailure(f"Failed to store uploaded file: {e}")

            rows = self._parse_landed(landed)

            self._rows = rows
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                os.replace(landed, self.path)
                self._dirty = False
            except OSError as e:
                logger.error(f"Moving uploaded file into place failed, rewriting instead: {e}")
                _remove_quietly(landed)
                self._persist_rows()

        logger.info(f"Uploaded file accepted with {len(rows)} jobs")
        return len(rows)

    def _parse_landed(self, landed: Path) -> List[Any]:
        """Read and validate a landed upload, deleting it when rejected."""
        try:
            try:
                text = landed.read_text(encoding="utf-8")
            except UnicodeDecodeError as e:
                raise MalformedInput(f"Invalid JSON: {e}")
            except OSError as e:
                raise IOFailure(f"Failed to read uploaded file: {e}")

            try:
                candidate = json.loads(text)
            except json.JSONDecodeError as e:
                raise MalformedInput(f"Invalid JSON: {e}")

            return self._validate(candidate)
        except (MalformedInput, IOFailure) as e:
            logger.warning(f"Rejected uploaded file {landed.name}: {e.message}")
            _remove_quietly(landed)
            raise

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self, candidate: Any) -> List[Any]:
        """Check the collection shape and return its rows."""
        if not isinstance(candidate, dict):
            raise MalformedInput(INVALID_BODY_MESSAGE)

        rows = candidate.get("rows")
        if not isinstance(rows, list):
            raise MalformedInput(MISSING_ROWS_MESSAGE)

        unknown_keys = sorted(key for key in candidate if key != "rows")
        if unknown_keys:
            logger.warning(f"Ignoring unknown root keys: {', '.join(unknown_keys)}")

        if self.strict_records:
            _validate_records(rows)

        return rows

    # ------------------------------------------------------------------
    # Persistence (call with the lock held)
    # ------------------------------------------------------------------

    def _persist_rows(self) -> None:
        """Best-effort write of the in-memory rows; failures only log."""
        try:
            self._write_backing_file(self._rows)
            self._dirty = False
        except IOFailure as e:
            # Memory stays authoritative until a later write succeeds
            self._dirty = True
            logger.error(f"Persisting jobs failed, keeping in-memory copy: {e}")

    def _read_or_fallback(self) -> Optional[List[Any]]:
        """Read rows from disk, or None when the caller should keep memory."""
        if self._dirty:
            return None
        try:
            return self._read_backing_file()
        except IOFailure as e:
            logger.warning(f"Falling back to in-memory jobs: {e}")
            return None

    def _read_backing_file(self) -> Optional[List[Any]]:
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise IOFailure(f"Could not read {self.path}: {e}")

        if not isinstance(data, dict) or not isinstance(data.get("rows"), list):
            raise IOFailure(f"{self.path} does not contain a rows array")

        return data["rows"]

    def _write_backing_file(self, rows: List[Any]) -> None:
        """Write to a temp sibling then rename into place."""
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                json.dump({"rows": rows}, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            logger.debug(f"Persisted {len(rows)} jobs to {self.path}")
        except (OSError, TypeError, ValueError) as e:
            if tmp_name:
                _remove_quietly(Path(tmp_name))
            raise IOFailure(f"Could not write {self.path}: {e}")


def _validate_records(rows: List[Any]) -> None:
    """Strict mode: every row must match the JobRecord schema."""
    for index, row in enumerate(rows):
        try:
            JobRecord.model_validate(row)
        except SchemaError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ())) or "row"
            raise MalformedInput(
                f"Row {index} is not a valid job record: {location}: {first.get('msg')}"
            )


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")
