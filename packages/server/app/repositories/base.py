"""
Shared plumbing for repositories backed by the Supabase query builder.

The backend reports failures as PostgREST/Postgres error codes. ``PGRST116`` on
a single-row fetch means "no rows" and is returned as ``None``. Callers may name
other codes to tolerate, such as ``PGRST103`` for an offset past the last row.
Everything else is raised as a ``BackendError``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import structlog
from postgrest.exceptions import APIError
from postgrest.types import CountMethod
from supabase import AsyncClient

from app.repositories.errors import (
    BackendError,
    BackendUnavailableError,
    DuplicateRecordError,
    RelatedRecordMissingError,
)

log = structlog.get_logger()

NO_ROWS = "PGRST116"
RANGE_NOT_SATISFIABLE = "PGRST103"
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

_ERRORS_BY_CODE: dict[str, type[BackendError]] = {
    UNIQUE_VIOLATION: DuplicateRecordError,
    FOREIGN_KEY_VIOLATION: RelatedRecordMissingError,
}


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseRepository:
    """Base class holding the client and table name for one repository."""

    table: str = ""

    def __init__(self, client: AsyncClient):
        self._client = client

    def _query(self):
        return self._client.table(self.table)

    async def _fetch_one(self, query, operation: str) -> Optional[dict[str, Any]]:
        """Run ``query`` as a single-row fetch. Returns None when no row matched."""
        try:
            response = await query.single().execute()
        except APIError as exc:
            if exc.code == NO_ROWS:
                return None
            raise self._backend_error(exc, operation) from exc
        except httpx.HTTPError as exc:
            raise self._unavailable(exc, operation) from exc
        return response.data

    async def _execute(self, query, operation: str, tolerate: tuple[str, ...] = ()):
        """
        Run ``query`` and return the raw response.

        Errors whose code is in ``tolerate`` return None; everything else is raised.
        """
        try:
            return await query.execute()
        except APIError as exc:
            if exc.code in tolerate:
                return None
            raise self._backend_error(exc, operation) from exc
        except httpx.HTTPError as exc:
            raise self._unavailable(exc, operation) from exc

    async def _fetch_all(self, query, operation: str) -> list[dict[str, Any]]:
        response = await self._execute(query, operation)
        return list(response.data or [])

    def _count_query(self):
        """Head-only select that returns just the exact row count."""
        return self._query().select("id", count=CountMethod.exact, head=True)

    async def _count(self, query, operation: str) -> int:
        response = await self._execute(query, operation)
        return response.count or 0

    def _backend_error(self, exc: APIError, operation: str) -> BackendError:
        error_cls = _ERRORS_BY_CODE.get(exc.code or "", BackendError)
        log.warning(
            "repository.backend_error",
            table=self.table,
            operation=operation,
            code=exc.code,
            message=exc.message,
        )
        return error_cls(
            exc.message or str(exc),
            code=exc.code,
            details=exc.details,
            hint=exc.hint,
            table=self.table,
            operation=operation,
        )

    def _unavailable(self, exc: httpx.HTTPError, operation: str) -> BackendUnavailableError:
        log.error(
            "repository.backend_unavailable",
            table=self.table,
            operation=operation,
            error=str(exc),
        )
        return BackendUnavailableError(
            f"Backend unreachable: {exc}",
            table=self.table,
            operation=operation,
        )
