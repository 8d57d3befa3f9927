"""
Error taxonomy shared by services and the API layer.

Services raise these; routes never build HTTP errors for domain failures
themselves. The API maps each class to a status code and error code.
"""


class RosterError(Exception):
    """Base class for all domain errors."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class ValidationError(RosterError, ValueError):
    """Input rejected before any write (bad window, overlap, duplicate tier...)."""

    code = "VALIDATION_ERROR"


class NotFoundError(RosterError):
    """Referenced period, livestream, snapshot, request, config or user is missing."""

    code = "NOT_FOUND"


class ConflictError(RosterError):
    """Uniqueness or state conflict (duplicate livestream, pending request, ...)."""

    code = "CONFLICT"


class ForbiddenError(RosterError):
    """Acting user may not perform this operation (creator-only edits)."""

    code = "FORBIDDEN"


class FrozenStateError(RosterError):
    """Mutation attempted on a fixed livestream."""

    code = "LIVESTREAM_FIXED"


class InternalError(RosterError):
    """Unexpected failure; the caller receives a generic message."""

    code = "INTERNAL_ERROR"
