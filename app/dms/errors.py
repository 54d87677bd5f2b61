"""
Error taxonomy shared by the engine and the HTTP layer.
"""
from __future__ import annotations


class DmsError(Exception):
    """Base class for document-control errors surfaced to callers."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DmsError):
    """Malformed or incomplete input (missing field, unresolved reference)."""

    kind = "validation_error"


class PreconditionFailed(DmsError):
    """A workflow guard rejected the operation."""

    kind = "precondition_failed"


class NotFound(DmsError):
    """Referenced document or workflow template does not exist."""

    kind = "not_found"
