"""Exceptions for agentboard.

Every error a caller can see is a ``CoordinatorError``. The ``kind`` tag is
what the router puts on the wire.
"""

from __future__ import annotations

from typing import Any


class CoordinatorError(Exception):
    """Base exception for coordinator errors."""

    kind = "CoordinatorError"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class ValidationError(CoordinatorError):
    """Raised when input is malformed, missing or oversized."""

    kind = "ValidationError"


class NotFoundError(CoordinatorError):
    """Raised when a referenced id does not resolve."""

    kind = "NotFoundError"


class BackendUnavailableError(CoordinatorError):
    """Raised when the document store, vector store or embedding provider fails."""

    kind = "BackendUnavailableError"

    def __init__(self, backend: str, message: str) -> None:
        super().__init__(f"{backend} unavailable: {message}", backend=backend)
        self.backend = backend


class PartialWriteError(CoordinatorError):
    """Raised when a dual write landed in one backend but not the other."""

    kind = "PartialWriteError"

    def __init__(self, message: str, *, succeeded: str, failed: str, entity_ids: list[str]) -> None:
        super().__init__(message, succeeded=succeeded, failed=failed, entity_ids=entity_ids)
        self.succeeded = succeeded
        self.failed = failed
        self.entity_ids = entity_ids
