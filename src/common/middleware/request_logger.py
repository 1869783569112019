# src/common/middleware/request_logger.py

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from src.common.logging.logger import request_id_ctx

logger = logging.getLogger("src.http")

REQUEST_ID_HEADER = "X-Request-Id"


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id and logs its start and completion."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)
        request.state.request_id = request_id
        started = time.perf_counter()

        logger.info(
            "Incoming request",
            extra={
                "method": request.method,
                "url": str(request.url.path),
                "userAgent": request.headers.get("user-agent"),
                "ip": request.client.host if request.client else None,
            },
        )
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            "Request completed",
            extra={
                "requestId": request_id,
                "method": request.method,
                "url": str(request.url.path),
                "statusCode": response.status_code,
                "durationMs": duration_ms,
            },
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
