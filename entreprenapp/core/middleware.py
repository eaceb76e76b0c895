"""
Custom middleware for request logging, rate limiting and request timeouts.
"""
import asyncio
import logging
import time
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all incoming requests with timing information."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id

        logger.info(
            f"Request started | ID: {request_id} | "
            f"Method: {request.method} | Path: {request.url.path} | "
            f"Client: {request.client.host if request.client else 'unknown'}"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.error(
                f"Request failed | ID: {request_id} | "
                f"Error: {str(e)} | Duration: {duration:.4f}s"
            )
            raise

        duration = time.perf_counter() - start_time
        logger.info(
            f"Request completed | ID: {request_id} | "
            f"Status: {response.status_code} | "
            f"Duration: {duration:.4f}s"
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{duration:.4f}"
        return response


@dataclass(frozen=True)
class RateLimitRule:
    """A sliding-window quota applied to every path under ``prefix``."""

    name: str
    prefix: str
    limit: int
    window_seconds: int


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory per-IP rate limiting with one sliding window per rule.

    A request is counted against every rule whose prefix matches its path,
    so authentication routes consume both the auth quota and the API quota.
    """

    def __init__(
        self,
        app,
        rules: Sequence[RateLimitRule],
        exclude_paths: Optional[List[str]] = None,
    ):
        super().__init__(app)
        self.rules = list(rules)
        self.exclude_paths = exclude_paths or ["/health", "/health/ready"]
        self.requests: Dict[str, Dict[str, List[float]]] = {
            rule.name: defaultdict(list) for rule in self.rules
        }
        self._last_sweep = time.time()

    def _clean_old_requests(self, rule: RateLimitRule, client_id: str, current_time: float) -> None:
        """Remove requests older than the rule's window; drop the client once its window is empty."""
        cutoff = current_time - rule.window_seconds
        bucket = self.requests[rule.name]
        recent = [t for t in bucket.get(client_id, ()) if t > cutoff]
        if recent:
            bucket[client_id] = recent
        else:
            bucket.pop(client_id, None)

    def _sweep_idle_clients(self, current_time: float) -> None:
        """Forget clients with no request inside any window, at most once per shortest window."""
        interval = min(rule.window_seconds for rule in self.rules)
        if current_time - self._last_sweep < interval:
            return
        self._last_sweep = current_time
        for rule in self.rules:
            for client_id in list(self.requests[rule.name]):
                self._clean_old_requests(rule, client_id, current_time)

    def _get_client_id(self, request: Request) -> str:
        """Get unique client identifier."""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in self.exclude_paths:
            return await call_next(request)

        matching = [rule for rule in self.rules if path.startswith(rule.prefix)]
        if not matching:
            return await call_next(request)

        client_id = self._get_client_id(request)
        current_time = time.time()
        self._sweep_idle_clients(current_time)

        for rule in matching:
            self._clean_old_requests(rule, client_id, current_time)
            if len(self.requests[rule.name].get(client_id, ())) >= rule.limit:
                logger.warning(f"Rate limit '{rule.name}' exceeded for client: {client_id}")
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={
                        "success": False,
                        "message": "Too many requests, please try again later",
                    },
                    headers={"Retry-After": str(rule.window_seconds)},
                )

        for rule in matching:
            self.requests[rule.name][client_id].append(current_time)

        response = await call_next(request)

        # Report the rule closest to its limit
        tightest = min(matching, key=lambda r: r.limit - len(self.requests[r.name][client_id]))
        remaining = tightest.limit - len(self.requests[tightest.name][client_id])
        response.headers["X-RateLimit-Limit"] = str(tightest.limit)
        response.headers["X-RateLimit-Remaining"] = str(max(remaining, 0))
        return response


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """Abort requests that run longer than the server-wide timeout."""

    def __init__(self, app, timeout_seconds: float = 60.0):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(
                f"Request timed out after {self.timeout_seconds}s | "
                f"Method: {request.method} | Path: {request.url.path}"
            )
            return JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={"success": False, "message": "Request timed out"},
            )
