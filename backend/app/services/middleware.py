"""Request timing, tracing and rate limiting middleware."""
import collections
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger("hcm-api.middleware")

SKIP_LOG_PATHS = {"/health", "/static/app.js"}


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    - Assigns a unique X-Request-ID (uuid4) to every request/response.
    - Measures end-to-end request duration in milliseconds.
    - Adds X-Process-Time header to every response.
    - Emits a structured log line for every request (except health probes
      and static assets).
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = str(uuid.uuid4())
        start_time = time.perf_counter()

        # Route handlers read it back for their own log lines
        request.state.request_id = request_id

        response: Response = await call_next(request)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        if request.url.path not in SKIP_LOG_PATHS:
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={
                    "http_method": request.method,
                    "http_path": request.url.path,
                    "http_status": response.status_code,
                    "request_id": request_id,
                    "duration_ms": duration_ms,
                },
            )

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding-window rate limiter, per client IP.

    Buckets:
      - login endpoints (/auth/*) : 10 req/min per IP
      - everything else           : 120 req/min per IP
    """

    AUTH_LIMIT = 10
    GENERAL_LIMIT = 120
    WINDOW_SECONDS = 60

    def __init__(self, app):
        super().__init__(app)
        # {bucket_key: deque of timestamps}
        self._windows: dict = collections.defaultdict(collections.deque)

    def _get_limit(self, path: str) -> int:
        if path.startswith("/auth/"):
            return self.AUTH_LIMIT
        return self.GENERAL_LIMIT

    async def dispatch(self, request: Request, call_next):
        ip = request.client.host if request.client else "unknown"
        path = request.url.path
        limit = self._get_limit(path)
        bucket = f"{ip}:{'auth' if limit == self.AUTH_LIMIT else 'general'}"
        now = time.monotonic()
        window = self._windows[bucket]
        while window and now - window[0] > self.WINDOW_SECONDS:
            window.popleft()
        if len(window) >= limit:
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please slow down."},
                headers={"Retry-After": str(self.WINDOW_SECONDS)},
            )
        window.append(now)
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to every response."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response
