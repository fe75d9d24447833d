"""
Centralized exception hierarchy for domain-specific errors.

This module provides custom exception classes that represent specific
error conditions in the application, enabling better error handling and
client-side error recovery.
"""


class RouteTrackerError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(RouteTrackerError):
    """Exception raised when data validation fails."""


class ExternalServiceError(RouteTrackerError):
    """Exception raised when service calls fail."""


class StorageError(RouteTrackerError):
    """Exception raised when the document store cannot complete an operation."""


class AuthenticationError(RouteTrackerError):
    """Exception raised when no authenticated identity is available."""


class AuthorizationError(RouteTrackerError):
    """Exception raised when authorization fails."""


class ResourceNotFoundError(RouteTrackerError):
    """Exception raised when a requested resource is not found."""


class DuplicateResourceError(RouteTrackerError):
    """Exception raised when attempting to create a duplicate resource."""


RouteTrackerException = RouteTrackerError
ValidationException = ValidationError
ExternalServiceException = ExternalServiceError
StorageException = StorageError
AuthenticationException = AuthenticationError
AuthorizationException = AuthorizationError
ResourceNotFoundException = ResourceNotFoundError
DuplicateResourceException = DuplicateResourceError
