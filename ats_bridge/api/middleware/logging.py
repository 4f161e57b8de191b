"""
Request/response logging middleware
"""
import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ats_bridge.utils.logger import get_logger

logger = get_logger(__name__)


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its status and duration; sets X-Process-Time"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        route = f"{request.method} {request.url.path}"

        logger.debug(f"Request: {route}", extra={
            "method": request.method,
            "path": request.url.path,
            "client_host": request.client.host if request.client else None
        })

        response = await call_next(request)
        duration = time.perf_counter() - start_time

        logger.log(_level_for(response.status_code), f"{route} -> {response.status_code} in {duration:.3f}s", extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_seconds": round(duration, 4)
        })

        response.headers["X-Process-Time"] = f"{duration:.4f}"
        return response
