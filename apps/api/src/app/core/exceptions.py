"""
Service Error Taxonomy

Business-logic errors raised by service modules. Routers translate them to
HTTP responses with a structured ``{"error": ..., "message": ...}`` detail.
"""

from fastapi import HTTPException


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)

    def to_http(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "error": self.error_code,
                "message": self.message,
            },
        )


class ValidationServiceError(ServiceError):
    """Raised when input is missing or malformed beyond schema validation."""

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(message=message, error_code=error_code, status_code=400)


class DuplicateAccountError(ServiceError):
    """Raised when an account with the same email already exists."""

    def __init__(self, message: str = "Email already exists"):
        super().__init__(message=message, error_code="EMAIL_EXISTS", status_code=409)


class AccountNotFoundError(ServiceError):
    """Raised when an account doesn't exist."""

    def __init__(self, account_id: str):
        super().__init__(
            message=f"Account {account_id} not found.",
            error_code="ACCOUNT_NOT_FOUND",
            status_code=404,
        )


class PermissionDeniedError(ServiceError):
    """Raised when the caller may not perform an action on this resource."""

    def __init__(self, message: str = "You do not have permission to perform this action."):
        super().__init__(message=message, error_code="FORBIDDEN", status_code=403)


class InvalidTokenError(ServiceError):
    """Raised when a verification or reset token is unknown or expired."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message=message, error_code="INVALID_TOKEN", status_code=400)


class InvalidCredentialsError(ServiceError):
    """Raised when a login attempt fails credential comparison."""

    def __init__(self, attempts_remaining: int):
        self.attempts_remaining = attempts_remaining
        super().__init__(
            message=f"Incorrect credentials. {attempts_remaining} attempts remaining.",
            error_code="INVALID_CREDENTIALS",
            status_code=401,
        )


class DeviceSuspendedError(ServiceError):
    """Raised when the requesting device is under a login suspension."""

    def __init__(self, hours_remaining: int):
        self.hours_remaining = hours_remaining
        super().__init__(
            message=(
                "Device suspended. Your access is restricted for another "
                f"{hours_remaining} hours."
            ),
            error_code="DEVICE_SUSPENDED",
            status_code=423,
        )


class AccountInactiveError(ServiceError):
    """Raised when a dropped account tries to log in."""

    def __init__(self):
        super().__init__(
            message="Your account is no longer active.",
            error_code="ACCOUNT_INACTIVE",
            status_code=403,
        )


class TransientInfraError(ServiceError):
    """Raised when the store or another backing service is unavailable."""

    def __init__(self, message: str = "Service temporarily unavailable. Please retry."):
        super().__init__(message=message, error_code="SERVICE_UNAVAILABLE", status_code=503)


__all__ = [
    "ServiceError",
    "ValidationServiceError",
    "DuplicateAccountError",
    "AccountNotFoundError",
    "PermissionDeniedError",
    "InvalidTokenError",
    "InvalidCredentialsError",
    "DeviceSuspendedError",
    "AccountInactiveError",
    "TransientInfraError",
]
