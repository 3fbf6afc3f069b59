"""
Exception handlers turning repository errors into JSON error envelopes.

HTTPException keeps FastAPI's default ``{"detail": ...}`` body.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.repositories.errors import (
    BackendError,
    BackendUnavailableError,
    DuplicateRecordError,
    RelatedRecordMissingError,
)
from boardmates_shared.schemas.common import ErrorDetail, ErrorResponse

log = structlog.get_logger()

# Most specific first: the handler takes the first isinstance match.
ERROR_STATUS: list[tuple[type[BackendError], int, str, str]] = [
    (
        DuplicateRecordError, 409, "DUPLICATE_RECORD",
        "A record with the same unique value already exists.",
    ),
    (
        RelatedRecordMissingError, 422, "RELATED_RECORD_MISSING",
        "A referenced record does not exist.",
    ),
    (
        BackendUnavailableError, 503, "BACKEND_UNAVAILABLE",
        "The database backend is unavailable.",
    ),
    (
        BackendError, 502, "BACKEND_ERROR",
        "The database backend rejected the request.",
    ),
]


def error_envelope(code: str, message: str, status: int) -> dict:
    return ErrorResponse(
        error=ErrorDetail(code=code, message=message, status=status)
    ).model_dump(exclude_none=True)


def classify(exc: BackendError) -> tuple[int, str, str]:
    for error_cls, status, code, message in ERROR_STATUS:
        if isinstance(exc, error_cls):
            return status, code, message
    return 502, "BACKEND_ERROR", "The database backend rejected the request."


async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
    status, code, message = classify(exc)
    log.warning(
        "request.backend_error",
        path=request.url.path,
        status=status,
        backend_code=exc.code,
        table=exc.table,
        operation=exc.operation,
    )
    return JSONResponse(status_code=status, content=error_envelope(code, message, status))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BackendError, backend_error_handler)
