"""HTTP middleware: CORS, rate limiting, request logging.

Middleware ordering (outermost first):
1. CORS -- handles OPTIONS preflight before anything else
2. Rate limiting -- reject floods before the store is touched
3. Request log -- method, path, status and latency per request
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from release_relay.config import Settings
from release_relay.webhooks.verification import SIGNATURE_HEADER

logger = logging.getLogger(__name__)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Log one line per handled request."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "Request handled method=%s path=%s status=%d latency=%.1fms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    """Length of the exceeded window, at least one second."""
    try:
        return max(1, int(exc.limit.limit.get_expiry()))
    except AttributeError:
        return 1


def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors."""
    retry_after = _retry_after_seconds(exc)
    logger.warning("Rate limit exceeded for %s on %s", get_remote_address(request), request.url.path)
    return JSONResponse(
        {"error": "Rate limit exceeded", "retry_after": retry_after},
        status_code=429,
        headers={"Retry-After": str(retry_after)},
    )


def build_limiter(settings: Settings) -> Limiter:
    """Per-client limiter applied to every route."""
    return Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )


def install_middleware(app: FastAPI, settings: Settings) -> None:
    """Install all middleware on the FastAPI app.

    Middleware is added in reverse order (last added = outermost = runs first).
    """
    # 3. Request log (innermost)
    app.add_middleware(RequestLogMiddleware)

    # 2. Rate limiting
    app.state.limiter = build_limiter(settings)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # 1. CORS (outermost -- handles OPTIONS preflight)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Requested-With", SIGNATURE_HEADER, "User-Agent"],
    )
