from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from contextlib import AbstractContextManager
from functools import partial
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import httpx
from fastapi import APIRouter, FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config.loader import ImportConfig
from ..db.connection import db_connection
from ..excel.reader import (
    EmptyDatasetError,
    InputError,
    UnsupportedFileTypeError,
    check_extension,
)
from ..logging.init import setup_logging
from ..models.import_result import ImportResult
from ..services.pipeline import import_file

"""HTTP surface for the import pipeline.

- ``POST /api/nuttab/upload``      multipart ``file`` (.xlsx/.xls/.csv, max 10 MB)
- ``POST /api/nuttab/import-url``  JSON ``{"file_url": ...}``, downloaded with httpx
- ``GET  /health``

Errors come back as ``{"success": false, "error": ..., "message": ...}``; the
message is the underlying exception text, never a traceback.
"""

__all__ = [
    "SAMPLE_SIZE",
    "ImportResponse",
    "ImportUrlRequest",
    "DownloadError",
    "create_app",
    "download_spreadsheet",
]

SAMPLE_SIZE = 10

logger = logging.getLogger(__name__)

CursorFactory = Callable[[], AbstractContextManager[Any]]

router = APIRouter(prefix="/api/nuttab", tags=["NUTTAB"])


class ImportResponse(BaseModel):
    success: bool = True
    message: str
    total_processed: int
    inserted: int
    skipped: int
    errors: int
    foods: list[dict[str, Any]] = Field(default_factory=list)


class ImportUrlRequest(BaseModel):
    file_url: str = Field(min_length=1)


class DownloadError(Exception):
    """Raised when a remote spreadsheet cannot be fetched."""


class _RequestError(Exception):
    def __init__(self, status_code: int, error: str, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "message": message},
    )


def download_spreadsheet(
    url: str,
    max_bytes: int,
    transport: httpx.BaseTransport | None = None,
) -> bytes:
    """Fetch ``url`` into memory, refusing bodies larger than ``max_bytes``."""
    try:
        with httpx.Client(transport=transport, follow_redirects=True, timeout=30.0) as client:
            with client.stream("GET", url) as resp:
                resp.raise_for_status()
                buf = bytearray()
                for chunk in resp.iter_bytes():
                    buf.extend(chunk)
                    if len(buf) > max_bytes:
                        raise DownloadError(f"remote file exceeds {max_bytes} bytes")
    except httpx.HTTPError as e:
        raise DownloadError(f"failed to download file: {e}") from e
    return bytes(buf)


def _import_bytes(request: Request, data: bytes, suffix: str) -> ImportResult:
    """Spool ``data`` to the upload directory, import it, then delete it."""
    config: ImportConfig = request.app.state.config
    cursor_factory: CursorFactory = request.app.state.cursor_factory

    upload_dir = Path(config.upload.directory)
    upload_dir.mkdir(parents=True, exist_ok=True)
    spool = upload_dir / f"file-{uuid.uuid4().hex}{suffix}"
    spool.write_bytes(data)
    try:
        with cursor_factory() as cur:
            return import_file(spool, cur, config)
    finally:
        try:
            spool.unlink()
        except OSError:
            logger.warning("failed to delete temporary upload %s", spool)


def _run_import(request: Request, data: bytes, suffix: str) -> ImportResponse:
    config: ImportConfig = request.app.state.config
    try:
        result = _import_bytes(request, data, suffix)
    except EmptyDatasetError as e:
        raise _RequestError(400, "Excel file contains no data", str(e)) from e
    except InputError as e:
        raise _RequestError(400, "Unable to read the spreadsheet", str(e)) from e
    except Exception as e:
        logger.exception("import failed")
        raise _RequestError(500, "Failed to process the uploaded file", str(e)) from e

    if result.valid_rows == 0:
        raise _RequestError(
            400,
            "No valid food data could be processed",
            f"{result.total_rows} rows read, none had a name and nutrient values",
        )
    source = config.brand or "NUTTAB"
    return ImportResponse(
        message=f"Successfully imported {result.inserted} foods from {source}",
        total_processed=result.valid_rows,
        inserted=result.inserted,
        skipped=result.skipped,
        errors=result.errors,
        foods=[r.to_dict() for r in result.inserted_records[:SAMPLE_SIZE]],
    )


@router.post("/upload", status_code=201, response_model=ImportResponse)
def upload_nuttab(request: Request, file: UploadFile = File(...)):
    config: ImportConfig = request.app.state.config
    max_bytes = config.upload.max_bytes
    try:
        suffix = check_extension(file.filename or "")
    except UnsupportedFileTypeError as e:
        return _error_response(400, "Only Excel and CSV files are allowed", str(e))

    data = file.file.read(max_bytes + 1)
    if len(data) > max_bytes:
        return _error_response(413, "File too large", f"maximum upload size is {max_bytes} bytes")

    logger.info("processing upload %s (%d bytes)", file.filename, len(data))
    try:
        return _run_import(request, data, suffix)
    except _RequestError as e:
        return _error_response(e.status_code, e.error, e.message)


@router.post("/import-url", status_code=201, response_model=ImportResponse)
def import_from_url(payload: ImportUrlRequest, request: Request):
    config: ImportConfig = request.app.state.config
    try:
        suffix = check_extension(urlparse(payload.file_url).path)
    except UnsupportedFileTypeError as e:
        return _error_response(400, "Only Excel and CSV files are allowed", str(e))

    try:
        data = download_spreadsheet(
            payload.file_url,
            config.upload.max_bytes,
            transport=request.app.state.http_transport,
        )
    except DownloadError as e:
        return _error_response(400, "Failed to download file", str(e))

    try:
        return _run_import(request, data, suffix)
    except _RequestError as e:
        return _error_response(e.status_code, e.error, e.message)


def create_app(
    config: ImportConfig,
    cursor_factory: CursorFactory | None = None,
    http_transport: httpx.BaseTransport | None = None,
) -> FastAPI:
    """Create the FastAPI app.

    ``cursor_factory`` returns a context manager yielding a DB cursor; it
    defaults to a fresh autocommit connection per request.
    """
    setup_logging()
    app = FastAPI(title="NUTTAB nutrient import")
    app.state.config = config
    app.state.cursor_factory = cursor_factory or partial(db_connection, config.database)
    app.state.http_transport = http_transport

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(router)
    return app
