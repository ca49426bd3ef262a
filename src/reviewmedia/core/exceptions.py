"""
Exception handling for the Review-Media service.

This module provides custom exception classes shared by the storage
adapter, the authentication layer and the API.
"""

from typing import Any, Dict, Optional


class ReviewMediaException(Exception):
    """Base exception class for the Review-Media service."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ReviewMediaException):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "CONFIG_ERROR", details)


class InvalidFileError(ReviewMediaException):
    """Raised when an uploaded file violates the image upload policy."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "INVALID_FILE", details)


class AuthenticationError(ReviewMediaException):
    """Raised when there's an authentication error."""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, "AUTH_ERROR", details)


class AuthorizationError(ReviewMediaException):
    """Raised when there's an authorization error."""

    def __init__(
        self, message: str = "Access denied", details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, "AUTHORIZATION_ERROR", details)


class ExternalServiceError(ReviewMediaException):
    """Raised when there's an external service error."""

    def __init__(
        self, service: str, message: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.service = service
        full_message = f"{service} service error: {message}"
        super().__init__(full_message, "EXTERNAL_SERVICE_ERROR", details)


class BackingStoreError(ExternalServiceError):
    """Raised when Azure Blob Storage fails during an upload."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("Azure Blob Storage", message, details)
