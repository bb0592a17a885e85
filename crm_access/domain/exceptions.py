"""Domain exceptions for crm-access.

Defines domain-level exceptions for authentication, authorization and the
credential store. These exceptions are independent of infrastructure
concerns. The presentation layer maps them to HTTP responses in
crm_access.core.exception_handlers; only message and error_code reach the
client, details are for server-side logs.
"""

from typing import Any


class CrmAccessException(Exception):
    """Base exception for all crm-access errors.

    Attributes:
        message: Human-readable error description (safe for clients).
        error_code: Machine-readable error code.
        details: Additional context for logs (never sent to clients).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context for logging.
            status_code: Optional HTTP status overriding the error_code mapping.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Client-facing body: error code and message only."""
        return {"error": self.error_code, "message": self.message}


class ValidationException(CrmAccessException):
    """Raised when input validation fails (e.g. unknown role, bad reporting line)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthenticationException(CrmAccessException):
    """Raised when the caller cannot be authenticated (missing or unusable credentials)."""

    def __init__(
        self,
        message: str = "Authentication failed",
        error_code: str = "AUTHENTICATION_ERROR",
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, error_code, details, status_code)


class InvalidTokenException(AuthenticationException):
    """Raised when a token is malformed, badly signed, expired or of the wrong type.

    Maps to 403 by default; the refresh endpoint reports it as 401.
    """

    def __init__(self, reason: str = "invalid", status_code: int | None = None) -> None:
        super().__init__(
            "Invalid token", "INVALID_TOKEN", {"reason": reason}, status_code
        )


class TokenRevokedException(AuthenticationException):
    """Raised when a refresh token's jti is no longer in the store."""

    def __init__(self, jti: str | None = None) -> None:
        super().__init__(
            "Invalid or expired refresh token", "TOKEN_REVOKED", {"jti": jti}
        )


class InvalidCredentialsException(AuthenticationException):
    """Raised on login failure. Same message for unknown email and wrong password."""

    def __init__(self) -> None:
        super().__init__("Invalid credentials", "INVALID_CREDENTIALS")


class AccountDisabledException(AuthenticationException):
    """Raised when the user behind a credential is missing or soft-deleted."""

    def __init__(self, user_id: str | None = None, message: str = "User not found") -> None:
        super().__init__(message, "ACCOUNT_DISABLED", {"user_id": user_id})


class AuthorizationException(CrmAccessException):
    """Raised when the subject lacks permission for the operation."""

    def __init__(
        self,
        resource: str | None = None,
        action: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        """Initialize with optional resource, action, and message.

        Args:
            resource: Optional resource type (e.g. 'lead', 'user').
            action: Optional action that was attempted (e.g. 'view', 'delete').
            message: Human-readable message.
        """
        details: dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if action:
            details["action"] = action
        super().__init__(message, "PERMISSION_DENIED", details)


class UserAlreadyExistsException(CrmAccessException):
    """Raised when creating a user whose email is already registered."""

    def __init__(self) -> None:
        super().__init__("Registration failed", "USER_ALREADY_EXISTS", {})


class ResourceNotFoundException(CrmAccessException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} not found",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class StoreUnavailableException(CrmAccessException):
    """Raised when the credential store cannot be reached (after retries) or timed out."""

    def __init__(self, operation: str, reason: str | None = None) -> None:
        super().__init__(
            "Service temporarily unavailable. Please try again later.",
            "STORE_UNAVAILABLE",
            {"operation": operation, "reason": reason},
        )


class StoreTableMissingException(StoreUnavailableException):
    """Raised when the backing collection/table for a write does not exist."""

    def __init__(self, collection: str) -> None:
        super().__init__(f"write:{collection}", "collection missing")
        self.collection = collection
