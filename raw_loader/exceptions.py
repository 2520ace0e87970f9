"""
Custom exceptions for the raw table loader.

This module defines the exception types raised while managing destination
schemas and tables and while staging record batches. The key split is between
ConfigurationError (the user's destination is misconfigured and must be fixed
by the user) and everything else (unexpected system failures).
"""

from typing import Optional


class RawLoaderError(Exception):
    """Base exception for all raw loader errors."""

    def __init__(self, message: str, error_category: Optional[str] = None,
                 original_exception: Optional[BaseException] = None):
        """
        Initialize raw loader error.

        Args:
            message: Error description
            error_category: Optional category used by callers for reporting
            original_exception: Optional underlying exception that triggered this error
        """
        super().__init__(message)
        self.message = message
        self.error_category = error_category
        self.original_exception = original_exception


class ConfigurationError(RawLoaderError):
    """
    Exception raised when the destination or loader configuration is invalid.

    Errors of this type are user-actionable (missing privileges, missing schema,
    bad credentials, invalid identifiers) and must not be reported as system
    failures. The message is shown to the user as-is.
    """

    def __init__(self, message: str, original_exception: Optional[BaseException] = None):
        super().__init__(message, error_category="config_error", original_exception=original_exception)


class DatabaseConnectionError(RawLoaderError):
    """Exception raised when a database connection cannot be established."""

    def __init__(self, message: str, original_exception: Optional[BaseException] = None):
        super().__init__(message, error_category="connection_error", original_exception=original_exception)


class StagingError(RawLoaderError):
    """Exception raised when a record cannot be converted into a staged row."""

    def __init__(self, message: str, record_index: Optional[int] = None,
                 original_exception: Optional[BaseException] = None):
        """
        Initialize staging error.

        Args:
            message: Error description
            record_index: Position of the failing record within its batch
            original_exception: Optional underlying exception
        """
        super().__init__(message, error_category="staging_error", original_exception=original_exception)
        self.record_index = record_index
