"""Repository-related error definitions."""

from __future__ import annotations

from typing import Optional


class RepositoryError(Exception):
    """Base class for repository-related errors."""


class BackendError(RepositoryError):
    """Raised when the database backend reports anything other than "no rows"."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[str] = None,
        hint: Optional[str] = None,
        table: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        self.hint = hint
        self.table = table
        self.operation = operation


class DuplicateRecordError(BackendError):
    """Raised on a unique-constraint violation (Postgres 23505)."""


class RelatedRecordMissingError(BackendError):
    """Raised on a foreign-key violation (Postgres 23503)."""


class BackendUnavailableError(BackendError):
    """Raised when the backend could not be reached at all."""
