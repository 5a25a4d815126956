"""
Custom exceptions for the refresh pipeline with structured error context.

Every exception carries a human-readable message, a context dictionary and,
optionally, the original exception that triggered it. Row-level and
field-level problems never surface here: the record mapper absorbs them and
logs instead. Only cycle-level failures (fetch, load) and configuration
failures are raised.

Exception Hierarchy:
    ETLException (base)
    ├── ConfigurationError
    ├── ExtractionError
    │   ├── CSVExtractionError
    │   │   ├── NetworkError
    │   │   ├── RateLimitError
    │   │   └── AuthenticationError
    │   ├── ResourceNotFoundError
    │   └── EmptyDatasetError
    ├── LoadError
    │   └── DatabaseError
    │       └── DatabaseConnectionError
    ├── RefreshInProgressError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ETLException(Exception):
    """
    Base exception for all refresh-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (url, table, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


class ConfigurationError(ETLException):
    """
    Raised when the service configuration is unusable.

    Fatal at startup; never raised by a running refresh cycle.
    """
    pass


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(ETLException):
    """
    Mixin for errors that the fetcher retries before giving up.

    Use this for transient errors like:
    - Network timeouts
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 5xx)
    - Temporary database connection issues

    A cycle that failed with one of these is expected to succeed on a
    later tick without intervention.
    """
    pass


class NonRetryableError(ETLException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - Authentication failures (HTTP 401, 403)
    - Resource not found (HTTP 404)
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for source fetch failures. Aborts the current cycle."""
    pass


class CSVExtractionError(ExtractionError):
    """
    Exception raised when downloading or tokenizing a CSV source fails.

    Context should include:
        - url: The source URL
        - status_code: HTTP status code (if applicable)
        - retry_count: Number of attempts made
    """
    pass


class NetworkError(RetryableError, CSVExtractionError):
    """Timeouts, transport failures and 5xx responses after all retries."""
    pass


class RateLimitError(RetryableError, CSVExtractionError):
    """Rate limiting errors (HTTP 429) that persisted through every retry."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[float] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after
        if retry_after:
            self.context["retry_after"] = retry_after


class AuthenticationError(NonRetryableError, CSVExtractionError):
    """Authentication failures (HTTP 401, 403)."""
    pass


class ResourceNotFoundError(NonRetryableError, ExtractionError):
    """Source URL answered 404."""
    pass


class EmptyDatasetError(ExtractionError):
    """
    Raised when a cycle produced no valid records at all.

    An empty dataset is never promoted over the active table.
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ETLException):
    """Base exception for bulk load failures. Aborts the current cycle."""
    pass


class DatabaseError(LoadError):
    """
    Exception raised when a database operation fails.

    Context should include:
        - operation: Type of database operation (DELETE, INSERT, SELECT)
        - table_name: Name of the table
        - records_written: Rows sent before the failure (all rolled back)
    """
    pass


class DatabaseConnectionError(RetryableError, DatabaseError):
    """Connection lost or refused while talking to the database."""
    pass


# ============================================================================
# Coordination Errors
# ============================================================================

class RefreshInProgressError(ETLException):
    """Raised when a refresh is requested while another cycle is running."""
    pass
