"""Custom exceptions for web2journal."""

from enum import Enum


class ErrorKind(Enum):
    """Failure categories reported on the capture path."""

    INVALID_REQUEST = "invalid_request"
    INVALID_PATTERN = "invalid_pattern"
    AUTHENTICATION_FAILED = "authentication_failed"
    PATTERN_NOT_FOUND = "pattern_not_found"
    PATTERN_DISABLED = "pattern_disabled"
    EXTRACTION_EMPTY = "extraction_empty"
    DISPATCH_TIMEOUT = "dispatch_timeout"
    DISPATCH_IN_PROGRESS = "dispatch_in_progress"
    NETWORK_FAILURE = "network_failure"
    TRANSFORMATION_FAILED = "transformation_failed"
    STORAGE_FAILED = "storage_failed"


class Web2JournalError(Exception):
    """Base exception for web2journal."""

    kind = ErrorKind.INVALID_REQUEST


class ConfigError(Web2JournalError):
    """Raised when configuration is missing or invalid."""


class CrawlError(Web2JournalError):
    """Raised when web scraping fails."""

    # A page that cannot be fetched yields no content to capture
    kind = ErrorKind.EXTRACTION_EMPTY


class LLMError(Web2JournalError):
    """Raised when LLM API calls fail."""


class InvalidPatternError(Web2JournalError):
    """Raised when a URL pattern does not compile."""

    kind = ErrorKind.INVALID_PATTERN


class AuthenticationError(Web2JournalError):
    """Raised when a request carries a missing or wrong token."""

    kind = ErrorKind.AUTHENTICATION_FAILED


class PatternNotFoundError(Web2JournalError):
    """Raised when a pattern id does not resolve."""

    kind = ErrorKind.PATTERN_NOT_FOUND


class PatternDisabledError(Web2JournalError):
    """Raised when a capture names a disabled pattern."""

    kind = ErrorKind.PATTERN_DISABLED


class ExtractionEmptyError(Web2JournalError):
    """Raised when a page yields no usable content."""

    kind = ErrorKind.EXTRACTION_EMPTY


class DispatchTimeoutError(Web2JournalError):
    """Raised when the capture server does not answer in time."""

    kind = ErrorKind.DISPATCH_TIMEOUT


class DispatchInProgressError(Web2JournalError):
    """Raised when a second capture is started while one is outstanding."""

    kind = ErrorKind.DISPATCH_IN_PROGRESS


class NetworkError(Web2JournalError):
    """Raised when the capture server cannot be reached or answers garbage."""

    kind = ErrorKind.NETWORK_FAILURE


class TransformationError(Web2JournalError):
    """Raised when the LLM transformation fails or returns nothing usable."""

    kind = ErrorKind.TRANSFORMATION_FAILED


class StorageError(Web2JournalError):
    """Raised when a persisted file cannot be read or written."""

    kind = ErrorKind.STORAGE_FAILED
