"""
Domain error taxonomy.

ValidationError and NotFoundError are expected conditions surfaced verbatim
to the caller. AllocationError signals write contention on identifier
allocation. StorageError wraps persistence failures not otherwise classified.
"""

from typing import Iterable, Optional


class HelpdeskError(Exception):
    """Base class for every error raised by the service layer."""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(HelpdeskError):
    code = "validation"

    def __init__(self, errors: Iterable[str], message: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(message or f"Dados inválidos: {', '.join(self.errors)}")


class NotFoundError(HelpdeskError):
    code = "not_found"


class ConflictError(HelpdeskError):
    code = "conflict"


class AllocationError(HelpdeskError):
    code = "allocation"


class StorageError(HelpdeskError):
    code = "storage"


class AccessDeniedError(HelpdeskError):
    code = "forbidden"
