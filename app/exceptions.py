"""
Domain exception hierarchy.

Services raise these instead of returning error flags.  The
application factory maps every ``LicenseLensError`` to a JSON error
body with the class's ``status_code``.

``NotFoundError``, ``ConflictError``, ``ValidationError`` and
``InvalidStatusTransitionError`` also subclass ``ValueError`` so
callers that only care about "bad input" can catch that.
"""


class LicenseLensError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.error_code, "message": self.message}


class AuthenticationError(LicenseLensError):
    """No authenticated user could be resolved for the request."""

    status_code = 401
    error_code = "not_authenticated"


class ProfileNotFoundError(LicenseLensError):
    """The user is authenticated but belongs to no organization."""

    status_code = 403
    error_code = "profile_not_found"


class AuthorizationError(LicenseLensError):
    """The user's role does not allow the requested action."""

    status_code = 403
    error_code = "forbidden"


class NotFoundError(LicenseLensError, ValueError):
    """A referenced record is missing or owned by another organization."""

    status_code = 404
    error_code = "not_found"


class ConflictError(LicenseLensError, ValueError):
    """The request collides with an existing record (e.g. domain taken)."""

    status_code = 409
    error_code = "conflict"


class InvalidStatusTransitionError(LicenseLensError, ValueError):
    """An insight status change is not allowed by the workflow."""

    status_code = 409
    error_code = "invalid_transition"


class ValidationError(LicenseLensError, ValueError):
    """Input failed validation (bad enum value, malformed period, ...)."""

    status_code = 400
    error_code = "invalid_input"
