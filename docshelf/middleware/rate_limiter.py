"""
Rate Limiting Middleware

Per-client limits on the expensive endpoints (uploads, LLM chat) using
SlowAPI. Clients are keyed by API key when present, otherwise by IP.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request, status
from fastapi.responses import JSONResponse
from docshelf.config import settings
import hashlib
import logging

logger = logging.getLogger(__name__)


def rate_limit_key(request: Request) -> str:
    """
    Rate limit key: hashed bearer key, or client IP as fallback

    Format: "api_key:{sha256 prefix}" or "ip:{address}"
    """
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer ") and len(auth) > 7:
        digest = hashlib.sha256(auth[7:].encode()).hexdigest()[:16]
        return f"api_key:{digest}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=rate_limit_key,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """429 with a Retry-After hint"""
    logger.warning(f"Rate limit exceeded for {rate_limit_key(request)} on {request.url.path}")

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please slow down.",
            "limit": str(exc.detail),
        },
        headers={"Retry-After": "60"}
    )


def upload_rate_limit():
    """Rate limit for document uploads (default 20/hour)"""
    return limiter.limit(settings.RATE_LIMIT_UPLOAD)


def chat_rate_limit():
    """Rate limit for chat messages (default 10/minute)"""
    return limiter.limit(settings.RATE_LIMIT_CHAT)


def login_rate_limit():
    """Rate limit for password logins (default 10/minute)"""
    return limiter.limit(settings.RATE_LIMIT_LOGIN)


def setup_rate_limiting(app):
    """
    Setup rate limiting middleware

    Args:
        app: FastAPI application instance
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    if settings.RATE_LIMIT_ENABLED:
        logger.info(f"Rate limiting enabled ({settings.RATE_LIMIT_STORAGE_URI})")
    else:
        logger.warning("Rate limiting disabled")
