"""
Simple rate limiting middleware

Only the endpoints that reach the delegate model are limited; health, info
and session reads are free.
"""
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Tuple
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ats_bridge.utils.config import settings
from ats_bridge.utils.logger import get_logger
from ats_bridge.utils.exceptions import RateLimitExceededError

logger = get_logger(__name__)

LIMITED_METHODS = ("POST", "PUT", "PATCH")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding-window rate limiting per client address
    """

    def __init__(self, app, requests: int = None, period: int = None):
        """
        Args:
            app: FastAPI app
            requests: Max requests per period
            period: Time period in seconds
        """
        super().__init__(app)
        self.requests = requests or settings.RATE_LIMIT_REQUESTS
        self.period = period or settings.RATE_LIMIT_PERIOD

        self.request_log: Dict[str, Deque[float]] = defaultdict(deque)

        logger.info(f"RateLimitMiddleware initialized: {self.requests} requests per {self.period}s")

    def _get_client_id(self, request: Request) -> str:
        if request.client:
            return request.client.host
        return "unknown"

    def _check_rate_limit(self, client_id: str) -> Tuple[bool, int]:
        """
        Returns:
            Tuple of (is_allowed, retry_after_seconds)
        """
        now = time.monotonic()
        window = self.request_log[client_id]

        while window and window[0] <= now - self.period:
            window.popleft()

        if len(window) >= self.requests:
            retry_after = int(self.period - (now - window[0])) + 1
            return False, retry_after

        window.append(now)
        return True, 0

    async def dispatch(self, request: Request, call_next):
        if request.method not in LIMITED_METHODS:
            return await call_next(request)

        client_id = self._get_client_id(request)
        is_allowed, retry_after = self._check_rate_limit(client_id)

        if not is_allowed:
            logger.warning(f"Rate limit exceeded for client: {client_id}")
            # exceptions raised inside BaseHTTPMiddleware bypass the app's handlers
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "success": False,
                    "error": exc.message,
                    "error_type": exc.__class__.__name__,
                    "details": exc.details
                },
                headers={"Retry-After": str(retry_after)}
            )

        return await call_next(request)
