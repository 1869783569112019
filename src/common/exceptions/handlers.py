# src/common/exceptions/handlers.py
"""
Exception handlers translating every error into the uniform envelope:

    {"success": false, "error": {"code", "message", "details"?, "stack"?}}
"""

import logging
import traceback
from typing import Any, Dict, Optional, Union

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.common.config import settings
from src.common.exceptions.exceptions import AppException
from src.common.logging.logger import redact

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    exc: Optional[BaseException] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    if exc is not None and settings.is_development:
        error["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


def log_error(exc: BaseException, request: Request, level: int = logging.ERROR, body: Any = None) -> None:
    """Log the error with the request context it happened in."""
    context = {
        "error": type(exc).__name__,
        "errorMessage": str(exc),
        "method": request.method,
        "url": str(request.url),
        "params": dict(request.path_params),
        "ip": request.client.host if request.client else None,
        "userAgent": request.headers.get("user-agent"),
    }
    if body is not None:
        context["body"] = redact(body)
    logger.log(level, "Request error", extra=context, exc_info=level >= logging.ERROR)


def format_validation_errors(exc: Union[RequestValidationError, ValidationError]) -> list:
    """One entry per failed field, location prefix (body/query/path) stripped."""
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path", "header", "cookie"):
            loc = loc[1:]
        message = error.get("msg", "")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({
            "field": ".".join(loc),
            "message": message,
            "code": error.get("type", "invalid"),
        })
    return errors


async def app_exception_handler(request: Request, exc: AppException):
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    log_error(exc, request, level)
    return error_response(exc.status_code, exc.code, exc.message, exc.details, exc if exc.status_code >= 500 else None)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = format_validation_errors(exc)
    log_error(exc, request, logging.WARNING, body=exc.body)
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Validation failed",
        {"errors": errors},
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    log_error(exc, request, logging.WARNING)
    return error_response(
        status.HTTP_409_CONFLICT,
        "UNIQUE_CONSTRAINT_VIOLATION",
        "A record with this value already exists",
    )


async def no_result_handler(request: Request, exc: NoResultFound):
    log_error(exc, request, logging.WARNING)
    return error_response(status.HTTP_404_NOT_FOUND, "RECORD_NOT_FOUND", "Record not found")


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    log_error(exc, request)
    return error_response(status.HTTP_400_BAD_REQUEST, "DATABASE_ERROR", "Database operation failed", exc=exc)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return error_response(
            status.HTTP_404_NOT_FOUND,
            "NOT_FOUND",
            f"Route {request.method} {request.url.path} not found",
        )
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return error_response(exc.status_code, "METHOD_NOT_ALLOWED", f"Method {request.method} not allowed")
    return error_response(exc.status_code, "HTTP_ERROR", str(exc.detail), headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception):
    log_error(exc, request)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred",
        exc=exc,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach every handler to the application."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(NoResultFound, no_result_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
