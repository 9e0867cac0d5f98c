"""
Centralized exception hierarchy for domain-specific errors.

This module provides custom exception classes that represent specific
error conditions in the application, enabling consistent error handling
in the normalization runner and the API layer.
"""


class BikeshareError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(BikeshareError):
    """Exception raised when data validation fails."""


class MalformedInputError(ValidationError):
    """Raised when a single trip record cannot be normalized.

    Fatal for that record only: callers record the failure against the trip
    and carry on with the rest of the batch.
    """


class ExternalServiceError(BikeshareError):
    """Exception raised when service calls fail."""


class RateLimitError(ExternalServiceError):
    """Exception raised when rate limits are exceeded."""


class AuthenticationError(BikeshareError):
    """Exception raised when authentication fails."""


class ResourceNotFoundError(BikeshareError):
    """Exception raised when a requested resource is not found."""


class DuplicateResourceError(BikeshareError):
    """Exception raised when attempting to create a duplicate resource."""


BikeshareException = BikeshareError
ValidationException = ValidationError
MalformedInputException = MalformedInputError
ExternalServiceException = ExternalServiceError
RateLimitException = RateLimitError
AuthenticationException = AuthenticationError
ResourceNotFoundException = ResourceNotFoundError
DuplicateResourceException = DuplicateResourceError
