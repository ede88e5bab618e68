"""
Typed business-rule failures raised by the service layer.

Services never build HTTP responses themselves. Each failure carries the
status code and machine-readable code it maps to; the handlers registered in
`madsocial.main` turn them into JSON responses.
"""

from fastapi import status


class MadSocialError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MadSocialError):
    """Malformed or missing input that passed schema validation."""

    code = "validation_error"


class NotFoundError(MadSocialError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ForbiddenError(MadSocialError):
    """Actor lacks the required relationship (e.g. is not the host)."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class ConflictError(MadSocialError):
    """Duplicate membership, duplicate pending request or duplicate email."""

    code = "conflict"


class InvalidStateError(MadSocialError):
    """Operation not valid for the pregame's access type or the request's status."""

    code = "invalid_state"


class CapacityExceededError(MadSocialError):
    code = "capacity_exceeded"


class AuthenticationError(MadSocialError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "authentication_error"
