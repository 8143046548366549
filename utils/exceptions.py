"""
Custom Exception Classes for Kemono Client

This module defines custom exceptions for better error handling and
categorization of failures across the application. Services raise these
internally and hand them back to callers inside a Result.
"""


class KemonoClientError(Exception):
    """Base exception for all Kemono client errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(KemonoClientError):
    """Raised when configuration validation fails or required settings are missing."""
    pass


# =============================================================================
# Input Errors
# =============================================================================

class ValidationError(KemonoClientError):
    """Raised when user input is missing or malformed, before any network call."""
    pass


# =============================================================================
# Remote API Errors
# =============================================================================

class ApiError(KemonoClientError):
    """Raised when the API reports a failure."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(ApiError):
    """Raised for invalid credentials, an expired or invalid session, or a missing session cookie."""
    pass


class NotFoundError(ApiError):
    """Raised when a remote resource is absent or empty."""
    pass


class TransportError(ApiError):
    """Raised when the API cannot be reached."""
    pass


class UnexpectedShapeError(ApiError):
    """Raised when the API responds successfully but the payload lacks required fields."""
    pass


# =============================================================================
# Aggregation Errors
# =============================================================================

class PartialFailure(KemonoClientError):
    """One sub-request of an aggregate operation failed. Logged, never raised."""

    def __init__(self, message: str, service: str = None, creator_id: str = None):
        super().__init__(message)
        self.service = service
        self.creator_id = creator_id


# =============================================================================
# Storage Errors
# =============================================================================

class StorageError(KemonoClientError):
    """Raised when local state cannot be read or written."""
    pass
