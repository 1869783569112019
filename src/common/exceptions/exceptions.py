# src/common/exceptions/exceptions.py
"""Domain exceptions carrying an HTTP status and a stable error code."""

from typing import Any, Dict, Optional


class AppException(Exception):
    """Base application exception"""
    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str = "INTERNAL_SERVER_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        super().__init__(self.message)


class BadRequestException(AppException):
    def __init__(self, message: str = "Bad request", code: str = "BAD_REQUEST", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=400, code=code, details=details)


class UnauthorizedException(AppException):
    def __init__(self, message: str = "Unauthorized", code: str = "UNAUTHORIZED", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=401, code=code, details=details)


class ForbiddenException(AppException):
    def __init__(self, message: str = "Forbidden", code: str = "FORBIDDEN", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=403, code=code, details=details)


class NotFoundException(AppException):
    def __init__(self, message: str = "Resource not found", code: str = "NOT_FOUND", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=404, code=code, details=details)


class ConflictException(AppException):
    def __init__(self, message: str = "Resource conflict", code: str = "CONFLICT", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=409, code=code, details=details)


class TooManyRequestsException(AppException):
    def __init__(self, message: str = "Too many requests, please try again later", code: str = "TOO_MANY_REQUESTS", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=429, code=code, details=details)


class ValidationException(BadRequestException):
    """Field-level validation failure raised from service code."""
    def __init__(self, errors: list, message: str = "Validation failed"):
        super().__init__(message, code="VALIDATION_ERROR", details={"errors": errors})
