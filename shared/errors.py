"""
Shared error handling for the MOV Event Platform.

Components raise these exceptions; only the response-writing layer in
``shared.base_service`` turns them into a status code and envelope.
"""

from typing import Any, Dict, List, Optional

from .responses import ErrorEnvelope, FieldError


class AccessLayerException(Exception):
    """Base exception for platform services."""

    status_code: int = 400

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        *,
        status_code: Optional[int] = None,
        errors: Optional[List[FieldError]] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.errors = errors
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorEnvelope:
        """Convert to error response."""
        return ErrorEnvelope(
            message=self.message,
            error_code=self.code,
            errors=self.errors,
        )


class AuthenticationError(AccessLayerException):
    """Authentication-related errors."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class AuthenticationRequiredError(AuthenticationError):
    """A protected operation was attempted without an identity."""

    def __init__(self, message: str = "Authentication required", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class MissingCredentialError(AuthenticationRequiredError):
    """Authorization header absent or not a bearer credential."""

    def __init__(self, message: str = "No token provided", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class CredentialExpiredError(AuthenticationError):
    def __init__(self, message: str = "Token expired", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class CredentialInvalidError(AuthenticationError):
    def __init__(self, message: str = "Invalid token", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class AuthorizationError(AccessLayerException):
    """Authorization-related errors."""

    status_code = 403

    def __init__(self, message: str = "Authorization failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHORIZATION_ERROR", message, details)


class InsufficientPermissionsError(AuthorizationError):
    """Caller's role is not in the route's allowed role set."""

    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class NotOwnerError(AuthorizationError):
    """Caller is not the organizer that owns the resource."""

    def __init__(self, message: str = "Only the organizer can modify this event", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class NotFoundError(AccessLayerException):
    status_code = 404

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class IllegalTransitionError(AccessLayerException):
    """Requested status is not reachable from the current status."""

    status_code = 400

    def __init__(self, message: str = "Invalid state transition", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_STATE_TRANSITION", message, details)


class InvalidStateError(AccessLayerException):
    """Operation is not permitted in the resource's current status."""

    status_code = 400

    def __init__(self, message: str = "Operation not allowed in current state", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_STATE_TRANSITION", message, details)


class HasParticipantsError(AccessLayerException):
    status_code = 400

    def __init__(self, message: str = "Cannot delete event with registered participants", details: Optional[Dict[str, Any]] = None):
        super().__init__("HAS_PARTICIPANTS", message, details)


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    status_code = 400

    def __init__(
        self,
        message: str = "Validation error",
        errors: Optional[List[FieldError]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("VALIDATION_ERROR", message, details, errors=errors or [])


class DuplicateEntryError(AccessLayerException):
    status_code = 409

    def __init__(self, message: str = "Duplicate entry", details: Optional[Dict[str, Any]] = None):
        super().__init__("DUPLICATE_ENTRY", message, details)


class ConflictRetryError(AccessLayerException):
    """A concurrent writer changed the resource after it was read."""

    status_code = 409

    def __init__(self, message: str = "Resource was modified concurrently, retry the request", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFLICT_RETRY", message, details)


class RateLimitError(AccessLayerException):
    """Rate limiting errors."""

    status_code = 429

    def __init__(self, message: str = "Too many requests, please try again later.", details: Optional[Dict[str, Any]] = None):
        super().__init__("RATE_LIMIT_ERROR", message, details)


class ServiceUnavailableError(AccessLayerException):
    """Backend unreachable, timed out or reset the connection."""

    status_code = 503

    def __init__(self, cause: str, details: Optional[Dict[str, Any]] = None):
        self.cause = cause
        super().__init__("SERVICE_UNAVAILABLE", "Service temporarily unavailable", details)

    def to_response(self) -> ErrorEnvelope:
        envelope = super().to_response()
        envelope.error = self.cause
        return envelope
