"""Custom exceptions for the Notekeep server.

Provides a structured exception hierarchy with error codes and
machine-readable error information.

Empty notes, rejected attachments and unknown note ids have no exception
here: they are no-ops.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Auth errors (1xxx)
    INVALID_CREDENTIALS = 1001
    DUPLICATE_EMAIL = 1002
    NOT_AUTHENTICATED = 1003

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001
    INVALID_COLOR = 7002
    INVALID_VIEW = 7003
    INVALID_SORT_KEY = 7004
    PASSWORD_TOO_SHORT = 7005
    NAME_REQUIRED = 7006


class NotekeepError(Exception):
    """Base exception for all Notekeep errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class AuthError(NotekeepError):
    """Base class for recoverable authentication failures."""


class InvalidCredentialsError(AuthError):
    """Raised when no account matches the given email and password."""

    def __init__(self, email: str, message: Optional[str] = None):
        super().__init__(
            message or "Invalid email or password",
            code=ErrorCode.INVALID_CREDENTIALS,
            details={"email": email},
        )
        self.email = email


class DuplicateEmailError(AuthError):
    """Raised when registering an email that already has an account."""

    def __init__(self, email: str, message: Optional[str] = None):
        super().__init__(
            message or "Email already exists",
            code=ErrorCode.DUPLICATE_EMAIL,
            details={"email": email},
        )
        self.email = email


class AuthenticationRequiredError(AuthError):
    """Raised when a note operation is attempted without a session."""

    def __init__(self, operation: Optional[str] = None):
        details = {"operation": operation} if operation else {}
        super().__init__(
            "Please log in first",
            code=ErrorCode.NOT_AUTHENTICATED,
            details=details,
        )
        self.operation = operation


class ValidationError(NotekeepError):
    """Raised for input that fails validation at the tool boundary."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value


class StorageError(NotekeepError):
    """Raised when the key/value store cannot be read or written."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        key: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if key:
            details["key"] = key
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.key = key
        self.original_error = original_error


class ConfigurationError(NotekeepError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key
