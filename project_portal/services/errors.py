"""
Domain exceptions shared by every service.

Each exception carries the HTTP status the API layer maps it to, so the
exception handler in main.py is the only place that knows about HTTP.
"""


class PortalError(Exception):
    """Base exception for portal operations."""

    status_code = 500
    error_code = "portal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthenticatedError(PortalError):
    """No authenticated identity on the request."""

    status_code = 401
    error_code = "unauthenticated"

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class ProfileMissingError(PortalError):
    """Authenticated, but the user has not completed onboarding."""

    status_code = 428
    error_code = "profile_missing"

    def __init__(self, message: str = "User profile not found"):
        super().__init__(message)


class AccessDeniedError(PortalError):
    """The authorization predicate rejected the operation."""

    status_code = 403
    error_code = "access_denied"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFoundError(PortalError):
    """Referenced entity does not exist."""

    status_code = 404
    error_code = "not_found"


class ConflictingStateError(PortalError):
    """Operation not allowed in the entity's current state."""

    status_code = 409
    error_code = "conflicting_state"


class ExternalFailureError(PortalError):
    """Email or storage collaborator failed."""

    status_code = 502
    error_code = "external_failure"
