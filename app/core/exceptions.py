"""
Service-layer errors.

Services raise these; routes render them as JSON (see app.main for the REST
handler and app.api.v1.functions for the {"error": ...} envelope).
"""

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from app.services.validation import ValidationError


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthenticationError(ServiceError):
    status_code = 401


class PermissionDeniedError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class StorageError(ServiceError):
    status_code = 502


class ProfileValidationError(ServiceError):
    status_code = 422

    def __init__(self, errors: List["ValidationError"], message: str = "Profile validation failed"):
        super().__init__(message)
        self.errors = errors
