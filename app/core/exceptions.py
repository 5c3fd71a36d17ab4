"""
Custom exception classes for the Roommate Match application.
Provides structured error handling with machine-readable error codes.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes shared with the web and socket clients"""

    # Authentication errors (401)
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_TOKEN_INVALID = "AUTH_TOKEN_INVALID"
    AUTH_NOT_AUTHENTICATED = "AUTH_NOT_AUTHENTICATED"

    # Authorization errors (403)
    AUTHZ_FORBIDDEN = "AUTHZ_FORBIDDEN"
    AUTHZ_NOT_PARTICIPANT = "AUTHZ_NOT_PARTICIPANT"
    AUTHZ_BLOCKED = "AUTHZ_BLOCKED"

    # Resource errors (404, 409)
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"

    # Validation errors (400, 422)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    VALIDATION_REQUIRED_FIELD = "VALIDATION_REQUIRED_FIELD"

    # State errors (409, 422)
    STATE_INVALID = "STATE_INVALID"
    STATE_MATCH_NOT_CONFIRMED = "STATE_MATCH_NOT_CONFIRMED"
    STATE_MISSING_LINK = "STATE_MISSING_LINK"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500+)
    SERVER_ERROR = "SERVER_ERROR"
    SERVER_UNAVAILABLE = "SERVER_UNAVAILABLE"
    GATEWAY_TIMEOUT = "GATEWAY_TIMEOUT"


class AppException(Exception):
    """
    Base exception class for application errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SERVER_ERROR,
        status_code: int = 500,
        field: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.field = field
        self.metadata = metadata or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to response dictionary"""
        response = {
            "detail": self.message,
            "code": self.code.value,
        }
        if self.field:
            response["field"] = self.field
        if self.metadata:
            response["metadata"] = self.metadata
        return response


# Authentication Errors (401)


class AuthenticationError(AppException):
    """Base authentication error, answered with a Bearer challenge"""

    headers = {"WWW-Authenticate": "Bearer"}

    def __init__(
        self,
        message: str = "Authentication required",
        code: ErrorCode = ErrorCode.AUTH_NOT_AUTHENTICATED,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=401,
        )


class TokenInvalidError(AuthenticationError):
    """Bearer token is missing, expired or does not resolve to a user"""

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            code=ErrorCode.AUTH_TOKEN_INVALID,
        )


# Authorization Errors (403)


class AuthorizationError(AppException):
    """Base authorization error"""

    def __init__(
        self,
        message: str = "Not allowed to perform this action",
        code: ErrorCode = ErrorCode.AUTHZ_FORBIDDEN,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=403,
            metadata=metadata,
        )


class NotAParticipantError(AuthorizationError):
    """Caller is not one of the two participants of a thread or match"""

    def __init__(self, message: str = "Not authorized for this conversation"):
        super().__init__(
            message=message,
            code=ErrorCode.AUTHZ_NOT_PARTICIPANT,
        )


class BlockedError(AuthorizationError):
    """A block relation exists between the two users in either direction"""

    def __init__(self, message: str = "You cannot interact with this user"):
        super().__init__(
            message=message,
            code=ErrorCode.AUTHZ_BLOCKED,
        )


# Resource Errors (404, 409)


class NotFoundError(AppException):
    """Resource not found"""

    def __init__(
        self,
        message: str = "Requested resource was not found",
        resource: str | None = None,
    ):
        metadata = {"resource": resource} if resource else None
        super().__init__(
            message=message,
            code=ErrorCode.RESOURCE_NOT_FOUND,
            status_code=404,
            metadata=metadata,
        )


class ConflictError(AppException):
    """Resource conflict"""

    def __init__(
        self,
        message: str = "Request conflicts with the current state",
        field: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.RESOURCE_CONFLICT,
            status_code=409,
            field=field,
            metadata=metadata,
        )


# Validation Errors (400, 422)


class ValidationError(AppException):
    """Validation error"""

    def __init__(
        self,
        message: str = "Please check the submitted data",
        field: str | None = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=422,
            field=field,
        )


class RequiredFieldError(ValidationError):
    """Required field missing"""

    def __init__(
        self,
        message: str = "This field is required",
        field: str | None = None,
    ):
        super().__init__(
            message=message,
            field=field,
            code=ErrorCode.VALIDATION_REQUIRED_FIELD,
        )


# State Errors (409, 422)


class StateError(AppException):
    """Operation is not allowed in the current state of a record"""

    def __init__(
        self,
        message: str = "Operation not allowed in the current state",
        code: ErrorCode = ErrorCode.STATE_INVALID,
        status_code: int = 409,
        field: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=status_code,
            field=field,
            metadata=metadata,
        )


class NotConfirmedError(StateError):
    """Meeting scheduled against a match that is not confirmed"""

    def __init__(
        self,
        message: str = "Meetings can only be scheduled for confirmed matches",
        match_status: str | None = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.STATE_MATCH_NOT_CONFIRMED,
            metadata={"match_status": match_status} if match_status else None,
        )


class MissingLinkError(StateError):
    """external_link meeting submitted without a link"""

    def __init__(self, message: str = "External link meetings require a meeting link"):
        super().__init__(
            message=message,
            code=ErrorCode.STATE_MISSING_LINK,
            status_code=422,
            field="meeting_link",
        )


# Server Errors (500)


class ServerError(AppException):
    """Internal server error"""

    def __init__(
        self,
        message: str = "Internal server error",
        code: ErrorCode = ErrorCode.SERVER_ERROR,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=500,
        )


class GatewayTimeoutError(ServerError):
    """A gateway operation did not finish within its time budget"""

    def __init__(self, message: str = "Operation timed out, message was not delivered"):
        super().__init__(message=message, code=ErrorCode.GATEWAY_TIMEOUT)
        self.status_code = 504
