"""
Core utilities and configuration for the crime data updater.

This package provides foundational components used throughout the service:

Modules:
    config: Application configuration and environment variable management
    database: Async engine creation
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration (text or JSON output)

Usage:
    from core.config import settings
    from core.database import create_engine
    from core.exceptions import LoadError, NetworkError
    from core.logging import setup_logging

Example:
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    engine = create_engine(settings)
"""

__all__ = [
    "settings",
    "Settings",
    "create_engine",
    "setup_logging",
    # Exceptions
    "ETLException",
    "ConfigurationError",
    "ExtractionError",
    "CSVExtractionError",
    "NetworkError",
    "RateLimitError",
    "AuthenticationError",
    "ResourceNotFoundError",
    "EmptyDatasetError",
    "LoadError",
    "DatabaseError",
    "DatabaseConnectionError",
    "RefreshInProgressError",
    "RetryableError",
    "NonRetryableError",
]
