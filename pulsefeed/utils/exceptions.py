"""
PulseFeed Custom Exceptions
===========================

Exception hierarchy for PulseFeed with error codes, context information
and caller-safe messages.

Feed-level failures (fetch errors, store write errors) are recoverable and
are handled locally by the ingestion layer. Configuration errors are the
only condition that is expected to propagate to callers.
"""

from typing import Optional, Dict, Any, Tuple, Type
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes, prefixed by category."""

    # Configuration (C)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"
    CONFIG_UNKNOWN_FAMILY = "C003"

    # Feed ingestion (F)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_HTTP_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"

    # Record store (S)
    STORE_UNAVAILABLE = "S001"
    STORE_WRITE_FAILED = "S002"
    STORE_QUERY_FAILED = "S003"

    # Input validation (V)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"

    # System (X)
    SYSTEM_PERMISSION_DENIED = "X001"
    SYSTEM_MEMORY_ERROR = "X002"


class PulseFeedError(Exception):
    """Base exception for all PulseFeed errors.

    Subclasses set class-level defaults for the error code, the caller-safe
    message and recoverability. Extra keyword arguments (``feed_url``,
    ``record_id``, ...) are folded into ``context`` when not None.
    """

    default_code: Optional[ErrorCode] = None
    default_user_message: Optional[str] = None
    recoverable_by_default = False

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: Optional[bool] = None,
        **details: Any,
    ):
        """
        Args:
            message: Technical error message for logging
            error_code: Overrides the class default code
            context: Additional context information
            user_message: Message that is safe to show to API callers
            recoverable: Overrides the class default
            **details: Named context entries
        """
        super().__init__(message)
        self.error_code = error_code or self.default_code
        self.context = dict(context or {})
        self.context.update({k: v for k, v in details.items() if v is not None})
        self.user_message = user_message or self._user_message(message)
        self.recoverable = self.recoverable_by_default if recoverable is None else recoverable

    def _user_message(self, message: str) -> str:
        return self.default_user_message or message

    def to_dict(self) -> Dict[str, Any]:
        """Flat representation for structured logs."""
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        text = super().__str__()
        return f"[{self.error_code.value}] {text}" if self.error_code else text


class ConfigurationError(PulseFeedError):
    """Deployment misconfiguration. Always propagates to the caller."""

    default_code = ErrorCode.CONFIG_INVALID

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        kwargs.pop("recoverable", None)
        super().__init__(message, config_key=config_key, recoverable=False, **kwargs)

    def _user_message(self, message: str) -> str:
        return f"Configuration error: {message}"


class FeedError(PulseFeedError):
    """Feed ingestion errors."""

    default_code = ErrorCode.FEED_NETWORK_ERROR
    default_user_message = "Feed could not be retrieved"
    recoverable_by_default = True

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        super().__init__(message, feed_url=feed_url, **kwargs)


class FeedFetchError(FeedError):
    """Network or transport failure while retrieving a feed."""


class StoreError(PulseFeedError):
    """Record store errors."""

    default_code = ErrorCode.STORE_UNAVAILABLE
    default_user_message = "Storage operation failed"
    recoverable_by_default = True

    def __init__(self, message: str, record_id: Optional[str] = None, **kwargs):
        super().__init__(message, record_id=record_id, **kwargs)


class StoreWriteError(StoreError):
    """Upsert of a single record failed."""

    default_code = ErrorCode.STORE_WRITE_FAILED


class ValidationError(PulseFeedError):
    """Input validation errors."""

    default_code = ErrorCode.VALIDATION_INVALID_FORMAT

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        super().__init__(message, field_name=field_name, **kwargs)

    def _user_message(self, message: str) -> str:
        return f"Invalid {self.context.get('field_name', 'input')}: {message}"


# Foreign exception type -> (wrapper class, code, user message)
_FOREIGN_ERRORS: Tuple[Tuple[Tuple[Type[BaseException], ...], Type[PulseFeedError], ErrorCode, Optional[str]], ...] = (
    ((ConnectionError, TimeoutError), FeedFetchError, ErrorCode.FEED_NETWORK_ERROR, None),
    ((PermissionError,), PulseFeedError, ErrorCode.SYSTEM_PERMISSION_DENIED, "Access denied"),
    ((MemoryError,), PulseFeedError, ErrorCode.SYSTEM_MEMORY_ERROR, "System resources exhausted"),
)


def handle_exception(
    exception: BaseException,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> PulseFeedError:
    """Log a failure and return it as a PulseFeedError.

    PulseFeed errors pass through unchanged; anything else is wrapped
    according to its type, keeping the original type name in the context.
    """
    if isinstance(exception, PulseFeedError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    context = dict(context or {})
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    for types, wrapper, code, user_message in _FOREIGN_ERRORS:
        if isinstance(exception, types):
            error = wrapper(
                f"{operation} failed: {exception}",
                error_code=code,
                context=context,
                user_message=user_message,
                recoverable=True,
            )
            break
    else:
        error = PulseFeedError(
            f"Unexpected error during {operation}: {exception}",
            context=context,
            user_message="An unexpected error occurred",
            recoverable=True,
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error


def get_user_friendly_message(exception: BaseException) -> str:
    """Get a caller-safe error message for any exception.

    Internal details (stack traces, SQL, request internals) never leak
    through this function.
    """
    if isinstance(exception, PulseFeedError):
        return exception.user_message

    return "An unexpected error occurred. Please try again later."
