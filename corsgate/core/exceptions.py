"""
Custom exceptions for the application.
"""

from typing import Any, Dict, Optional
from http import HTTPStatus


class AppException(Exception):
    """
    Base exception for all application errors.
    
    Attributes:
        message: Error message
        status_code: HTTP status code
        code: Application error code
        details: Additional error details
    """
    
    def __init__(
        self,
        message: str,
        status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details
            }
        }
    
    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ConfigurationError(AppException):
    """Raised when there's a configuration error."""
    
    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        config_key: Optional[str] = None
    ):
        if config_key:
            details = details or {}
            details["config_key"] = config_key
        super().__init__(
            message=message,
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="CONFIGURATION_ERROR",
            details=details
        )


class UpstreamError(AppException):
    """Raised when the backend cannot be reached or does not answer in time."""
    
    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        backend_url: Optional[str] = None,
        method: Optional[str] = None
    ):
        if backend_url:
            details = details or {}
            details["backend_url"] = backend_url
        if method:
            details = details or {}
            details["method"] = method
        super().__init__(
            message=message,
            status_code=HTTPStatus.BAD_GATEWAY,
            code="UPSTREAM_ERROR",
            details=details
        )
