"""Error taxonomy shared by the service layer and the API routers.

Every error is an :class:`~fastapi.HTTPException`, so a service can raise it
directly and FastAPI renders ``{"detail": "<message>"}`` with the matching
status code.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class ClaimsError(HTTPException):
    """Base class for all application errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Request could not be processed"

    def __init__(self, detail: str | None = None, *, headers: dict[str, str] | None = None) -> None:
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )

    @property
    def message(self) -> str:
        return str(self.detail)


class ValidationError(ClaimsError):
    """Bad user input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class NoFileError(ValidationError):
    default_detail = "You must select a file to upload."


class UnsupportedTypeError(ValidationError):
    default_detail = "Please upload a PDF, Word, or Excel file."


class TooLargeError(ValidationError):
    status_code = status.HTTP_413_CONTENT_TOO_LARGE
    default_detail = "File size must be less than 5MB."


class PermissionDeniedError(ClaimsError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Insufficient permissions"


class RoleConfigurationError(PermissionDeniedError):
    """Raised when a user has no role row or more than one."""

    default_detail = "User role not assigned"


class InvalidStateError(ClaimsError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Claim has already been reviewed"


class NotFoundError(ClaimsError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class AuthError(ClaimsError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class TransportError(ClaimsError):
    """An external service (store, storage, identity provider) failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Upstream service unavailable"

    def __init__(self, detail: str | None = None, *, status_code: int | None = None) -> None:
        if status_code is not None:
            self.status_code = status_code
        super().__init__(detail)


__all__ = [
    "AuthError",
    "ClaimsError",
    "InvalidStateError",
    "NoFileError",
    "NotFoundError",
    "PermissionDeniedError",
    "RoleConfigurationError",
    "TooLargeError",
    "TransportError",
    "UnsupportedTypeError",
    "ValidationError",
]
