"""
HTTP hardening in front of the chat routes:

1. Security headers on every response (helmet-style defaults)
2. Request body ceiling, checked against Content-Length and the bytes actually received
3. Fixed-window rate limiting per client IP for /api/* paths
4. Uncaught errors turned into the 500 envelope inside the stack, so CORS and
   security headers still apply
"""

import logging
import math
import time
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.envelope import INTERNAL_ERROR, error_response

log = logging.getLogger("uvicorn.error")

RATE_LIMIT_ERROR = "Too many requests from this IP, please try again later."
BODY_TOO_LARGE_ERROR = "Request entity too large"

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; base-uri 'self'; font-src 'self' https: data:; "
        "form-action 'self'; frame-ancestors 'self'; img-src 'self' data:; "
        "object-src 'none'; script-src 'self'; script-src-attr 'none'; "
        "style-src 'self' https: 'unsafe-inline'; upgrade-insecure-requests"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


def client_ip(request: Request, trust_proxy: bool = False) -> str:
    if trust_proxy:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Any exception the routes let through becomes the generic 500, inside CORS and security headers."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            log.exception(f"[main] unhandled error on {request.method} {request.url.path}")
            return error_response(500, INTERNAL_ERROR)


class BodySizeLimitMiddleware:
    """
    Pure ASGI so it can see the body as it streams in. Requests without a
    Content-Length (chunked) are cut off once the received bytes pass the limit.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length is not None:
            try:
                too_large = int(length) > self.max_body_bytes
            except ValueError:
                await error_response(400, "Invalid Content-Length header")(scope, receive, send)
                return
            if too_large:
                log.warning(f"[main] rejected {length} byte body on {scope['path']}")
                await error_response(413, BODY_TOO_LARGE_ERROR)(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    log.warning(f"[main] rejected streamed body over {self.max_body_bytes} bytes on {scope['path']}")
                    # FastAPI re-raises HTTPException from body parsing; the handler renders the envelope
                    raise HTTPException(status_code=413, detail=BODY_TOO_LARGE_ERROR)
            return message

        await self.app(scope, limited_receive, send)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed window counter per client IP. Counters live in process memory, so
    each worker process enforces its own limit.
    """

    def __init__(
        self,
        app: ASGIApp,
        window_ms: int,
        max_requests: int,
        path_prefix: str = "/api/",
        trust_proxy: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(app)
        self.window_seconds = window_ms / 1000.0
        self.max_requests = max_requests
        self.path_prefix = path_prefix
        self.trust_proxy = trust_proxy
        self._clock = clock
        # ip -> (window start, hits)
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_cleanup = clock()

    def _cleanup(self, now: float) -> None:
        if now - self._last_cleanup < self.window_seconds:
            return
        expired = [ip for ip, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for ip in expired:
            del self._windows[ip]
        self._last_cleanup = now

    def hit(self, key: str) -> Tuple[bool, int, float]:
        """Counts one request; returns (allowed, remaining, seconds until reset)."""
        now = self._clock()
        self._cleanup(now)

        start, hits = self._windows.get(key, (now, 0))
        if now - start >= self.window_seconds:
            start, hits = now, 0
        hits += 1
        self._windows[key] = (start, hits)

        reset_in = max(0.0, self.window_seconds - (now - start))
        remaining = max(0, self.max_requests - hits)
        return hits <= self.max_requests, remaining, reset_in

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        ip = client_ip(request, self.trust_proxy)
        allowed, remaining, reset_in = self.hit(ip)
        headers = {
            "RateLimit-Limit": str(self.max_requests),
            "RateLimit-Remaining": str(remaining),
            "RateLimit-Reset": str(math.ceil(reset_in)),
        }

        if not allowed:
            log.warning(f"[ratelimit] {ip} exceeded {self.max_requests} requests per window")
            headers["Retry-After"] = str(math.ceil(reset_in))
            return error_response(429, RATE_LIMIT_ERROR, headers=headers)

        response = await call_next(request)
        for name, value in headers.items():
            response.headers[name] = value
        return response


__all__ = [
    "UnhandledErrorMiddleware",
    "SecurityHeadersMiddleware",
    "BodySizeLimitMiddleware",
    "RateLimitMiddleware",
    "client_ip",
    "RATE_LIMIT_ERROR",
    "BODY_TOO_LARGE_ERROR",
]
