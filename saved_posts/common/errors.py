"""Typed failures raised by platform adapters."""

from datetime import datetime
from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Machine-readable adapter error codes."""

    AUTH_FAILED = "AUTH_FAILED"
    RATE_LIMIT = "RATE_LIMIT"
    NOT_FOUND = "NOT_FOUND"
    NETWORK_ERROR = "NETWORK_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    HTTP_ERROR = "HTTP_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    MISSING_CREDENTIALS = "MISSING_CREDENTIALS"


class AdapterError(Exception):
    """Base class for every failure an adapter reports."""

    retryable = True

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        platform: str,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.platform = platform
        self.cause = cause
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value}, platform={self.platform!r}, message={self.message!r})"


class AuthenticationError(AdapterError):
    """Credentials were rejected or have expired."""

    retryable = False

    def __init__(self, platform: str, cause: Optional[BaseException] = None):
        super().__init__(
            "Authentication failed. Please check your credentials.",
            ErrorCode.AUTH_FAILED,
            platform,
            cause,
        )


class RateLimitError(AdapterError):
    """The provider refused the request because of rate limiting."""

    def __init__(
        self,
        platform: str,
        reset_time: Optional[datetime] = None,
        cause: Optional[BaseException] = None,
    ):
        reset_msg = f" Resets at {reset_time.isoformat()}" if reset_time else ""
        super().__init__(
            f"Rate limit exceeded.{reset_msg}",
            ErrorCode.RATE_LIMIT,
            platform,
            cause,
        )
        self.reset_time = reset_time


class ResourceNotFoundError(AdapterError):
    """The requested resource does not exist (404)."""

    retryable = False

    def __init__(self, platform: str, resource: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Resource not found: {resource}",
            ErrorCode.NOT_FOUND,
            platform,
            cause,
        )
        self.resource = resource


class NetworkError(AdapterError):
    """Connection refused, dropped or timed out."""

    def __init__(self, platform: str, cause: Optional[BaseException] = None):
        super().__init__(
            "Network error occurred. Please check your connection.",
            ErrorCode.NETWORK_ERROR,
            platform,
            cause,
        )


class DataValidationError(AdapterError):
    """Input or provider data failed validation."""

    retryable = False

    def __init__(
        self,
        platform: str,
        validation_errors: list[str],
        cause: Optional[BaseException] = None,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            message or f"Data validation failed: {', '.join(validation_errors)}",
            code,
            platform,
            cause,
        )
        self.validation_errors = list(validation_errors)


class MissingCredentialsError(DataValidationError):
    """One or more mandatory credential keys are absent."""

    def __init__(self, platform: str, missing: list[str]):
        super().__init__(
            platform,
            missing,
            message=f"Missing required credentials: {', '.join(missing)}",
            code=ErrorCode.MISSING_CREDENTIALS,
        )
        self.missing = list(missing)


class ServiceUnavailableError(AdapterError):
    """The provider answered with a 5xx status."""

    def __init__(self, platform: str, cause: Optional[BaseException] = None):
        super().__init__(
            "Platform service is currently unavailable.",
            ErrorCode.SERVICE_UNAVAILABLE,
            platform,
            cause,
        )


class QuotaExceededError(AdapterError):
    """A usage quota (daily, monthly, plan tier) is exhausted."""

    retryable = False

    def __init__(self, platform: str, quota_type: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Quota exceeded: {quota_type}",
            ErrorCode.QUOTA_EXCEEDED,
            platform,
            cause,
        )
        self.quota_type = quota_type


class UnsupportedOperationError(AdapterError):
    """The adapter does not implement the requested capability."""

    retryable = False

    def __init__(self, platform: str, operation: str):
        super().__init__(
            f"Operation '{operation}' is not supported by {platform} adapter",
            ErrorCode.UNSUPPORTED_OPERATION,
            platform,
        )
        self.operation = operation
