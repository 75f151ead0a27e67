"""
Domain-specific exceptions for the Quotes API.

These exceptions represent request and configuration failures and are
mapped to appropriate HTTP status codes in the API layer.
"""

from typing import Any


class QuotesApiError(Exception):
    """Base exception for all Quotes API domain errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(QuotesApiError):
    """
    Raised when input data fails validation.

    Examples:
    - Required field missing from a quote body
    - quotee_id or category_id referencing a row that does not exist

    HTTP Status: 400 Bad Request
    """

    pass


class NotFoundError(QuotesApiError):
    """
    Raised when a requested resource does not exist.

    Examples:
    - Quote ID not found
    - No quotes match the given criteria

    HTTP Status: 404 Not Found
    """

    pass


class UnauthorizedError(QuotesApiError):
    """
    Raised when a write endpoint is called without valid credentials.

    Examples:
    - Missing bearer token
    - Invalid or expired token

    HTTP Status: 401 Unauthorized
    """

    pass


class ConfigurationError(QuotesApiError):
    """
    Raised when a query catalogue or service wiring is inconsistent.

    This is a programming error, raised when a catalogue is constructed,
    never in response to client input.

    Examples:
    - Required include naming an include that is not supported
    - Sort field with a direction other than asc/desc
    - Clause name with no column to filter on

    HTTP Status: 500 Internal Server Error
    """

    pass


# HTTP Status Code Mapping
ERROR_STATUS_MAP = {
    ValidationError: 400,
    UnauthorizedError: 401,
    NotFoundError: 404,
    ConfigurationError: 500,
}


def get_status_code(error: Exception) -> int:
    """
    Get the HTTP status code for a given exception.

    Args:
        error: The exception instance

    Returns:
        HTTP status code (defaults to 500 for unknown errors)
    """
    return ERROR_STATUS_MAP.get(type(error), 500)
