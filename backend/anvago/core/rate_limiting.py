"""
Rate Limiting & Throttling
Request throttling per client IP.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse
import logging

from anvago.core.config import settings
from anvago.core.errors import error_body

logger = logging.getLogger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


# Rate limit definitions
AUTH_LIMIT = "20/minute"
SEARCH_LIMIT = "100/minute"
MATCH_LIMIT = "60/minute"
HEALTH_LIMIT = "1000/minute"


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 JSON response when rate limit exceeded."""
    client_host = request.client.host if request.client else "unknown"
    logger.warning(f"Rate limit exceeded for {client_host}: {request.url.path}")

    body = error_body("too_many_requests", "Rate limit exceeded. Please slow down.")
    body["error"]["retry_after"] = 60
    return JSONResponse(status_code=429, content=body, headers={"Retry-After": "60"})
