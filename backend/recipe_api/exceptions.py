from typing import Optional, Dict, Any

from fastapi import HTTPException, status


class AppException(Exception):
    """Base class for all application exceptions."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or 'UNKNOWN_ERROR'
        self.details = details or {}


class NotFoundException(AppException):
    """Exception raised when a recipe, video record or user does not exist."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code='NOT_FOUND', details=details)


class VideoFetchException(AppException):
    """Exception raised when YouTube data cannot be fetched."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code='VIDEO_FETCH_FAILED', details=details)


class ExtractionException(AppException):
    """Exception raised when recipe extraction cannot produce a valid recipe."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code='RECIPE_EXTRACTION_FAILED', details=details)


class DatabaseException(AppException):
    """Exception raised when database operation fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code='DATABASE_ERROR', details=details)


class ValidationException(AppException):
    """Exception raised when input validation fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code='VALIDATION_ERROR', details=details)


class AuthenticationException(AppException):
    """Exception raised when the acting user cannot be resolved."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code='UNAUTHORIZED', details=details)


class ProviderConfigurationException(AppException):
    """Exception raised when provider configuration is invalid."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code='PROVIDER_CONFIGURATION_ERROR', details=details)


class APIProviderException(AppException):
    """Exception raised for API provider-specific errors."""

    def __init__(self, provider: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.provider = provider
        # Add provider to details for better context
        provider_details = details or {}
        provider_details['provider'] = provider
        super().__init__(
            message=f"[{provider}] {message}",
            error_code='API_PROVIDER_ERROR',
            details=provider_details
        )


def to_http_exception(exc: AppException) -> HTTPException:
    """Convert AppException to HTTPException for FastAPI."""
    # Map error codes to HTTP status codes
    status_code_map = {
        'VALIDATION_ERROR': status.HTTP_400_BAD_REQUEST,
        'UNAUTHORIZED': status.HTTP_401_UNAUTHORIZED,
        'NOT_FOUND': status.HTTP_404_NOT_FOUND,
        'VIDEO_FETCH_FAILED': status.HTTP_502_BAD_GATEWAY,
        'RECIPE_EXTRACTION_FAILED': status.HTTP_500_INTERNAL_SERVER_ERROR,
        'DATABASE_ERROR': status.HTTP_500_INTERNAL_SERVER_ERROR,
        'PROVIDER_CONFIGURATION_ERROR': status.HTTP_500_INTERNAL_SERVER_ERROR,
        'API_PROVIDER_ERROR': status.HTTP_502_BAD_GATEWAY,
    }

    status_code = status_code_map.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    detail = {
        'error_code': exc.error_code,
        'message': exc.message,
        'details': exc.details
    }

    return HTTPException(status_code=status_code, detail=detail)
