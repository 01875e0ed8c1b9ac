"""
Custom exceptions for the application.
"""


class RetrievalException(Exception):
    """Base exception for all retrieval-related errors."""
    pass


class ArchiveUnavailableError(RetrievalException):
    """Raised when the question archive query fails, including the simplified retry."""
    pass


class CacheUnavailableError(RetrievalException):
    """Raised when the durable cache cannot be reached."""
    pass


class MalformedCacheValueError(RetrievalException):
    """Raised when a durable cache payload cannot be decoded or recovered."""
    pass


class InvalidInputError(RetrievalException):
    """Raised when input validation fails."""
    pass
