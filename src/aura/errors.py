"""Domain error taxonomy.

Every service-level failure raises one of these. The HTTP layer maps them to
status codes in ``aura.middleware.error_handler``; ``code`` is the category
string clients use to decide whether a retry makes sense.
"""

from __future__ import annotations


class AuraError(Exception):
    """Base class for all domain errors."""

    code = "error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AuraError):
    """Malformed input: tied or negative scores, bad handle, self-targeting."""

    code = "validation"
    status_code = 400


class PermissionDeniedError(AuraError):
    """Actor is not allowed to perform the action (e.g. wrong decider)."""

    code = "permission"
    status_code = 403


class NotFoundError(AuraError):
    """Referenced document does not exist."""

    code = "not_found"
    status_code = 404


class InvalidStateError(AuraError):
    """Action attempted against a match or request in the wrong state."""

    code = "invalid_state"
    status_code = 409


class ConflictError(AuraError):
    """Uniqueness check failed (handle taken, request already exists)."""

    code = "conflict"
    status_code = 409


class ExternalServiceError(AuraError):
    """The recap generator failed or timed out."""

    code = "external"
    status_code = 502
