"""
Public chat rate limit: Redis sliding window per client IP, default 20 req/min.
Only guards /public/chat. Without REDIS_URL the middleware is a pass-through.
"""
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import get_settings
from app.errors import RATE_LIMIT_EXCEEDED, error_envelope
from app.logging_config import get_logger

logger = get_logger(__name__)

REDIS_KEY_PREFIX = "rl:public_chat:"
WINDOW_SECONDS = 60
PROTECTED_PATHS = ("/public/chat",)


def _client_ip(request: Request, trusted_proxy_hops: int) -> str:
    """
    Socket peer address. With N trusted proxies, the Nth X-Forwarded-For entry from the right
    (the address the outermost trusted proxy saw); entries further left are client-controlled.
    """
    peer = request.client.host if request.client else ""
    if trusted_proxy_hops <= 0:
        return peer
    hops = [h.strip() for h in request.headers.get("X-Forwarded-For", "").split(",") if h.strip()]
    if len(hops) >= trusted_proxy_hops:
        return hops[-trusted_proxy_hops]
    return hops[0] if hops else peer


def _rate_limit_key(request: Request, trusted_proxy_hops: int = 0) -> Optional[str]:
    """Client IP key; None for non-protected paths."""
    if request.url.path.rstrip("/") not in PROTECTED_PATHS:
        return None
    return f"ip:{_client_ip(request, trusted_proxy_hops) or 'unknown'}"


async def _check_sliding_window(redis_url: str, key: str, limit: int) -> bool:
    """
    ZADD now, ZREMRANGEBYSCORE -inf (now-60), ZCARD.
    True when the request is allowed. Redis errors fail open (logged).
    """
    from redis.asyncio import Redis

    now = time.time()
    rkey = REDIS_KEY_PREFIX + key
    client = Redis.from_url(redis_url, decode_responses=True)
    try:
        pipe = client.pipeline()
        pipe.zadd(rkey, {str(uuid.uuid4()): now})
        pipe.zremrangebyscore(rkey, "-inf", now - WINDOW_SECONDS)
        pipe.zcard(rkey)
        pipe.expire(rkey, WINDOW_SECONDS + 10)
        results = await pipe.execute()
        count = results[2] if len(results) > 2 else 0
        return count <= limit
    except Exception as e:
        logger.warning("rate_limit.redis_error", key=key, error=str(e))
        return True
    finally:
        await client.aclose()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """429 + RATE_LIMIT_EXCEEDED envelope once a client IP exceeds the per-minute budget."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        if not settings.redis_url:
            return await call_next(request)
        key = _rate_limit_key(request, settings.trusted_proxy_hops)
        if not key:
            return await call_next(request)
        limit = settings.public_chat_rate_limit_per_min
        if not await _check_sliding_window(settings.redis_url, key, limit):
            logger.info("rate_limit.exceeded", key=key, limit=limit)
            return JSONResponse(
                status_code=429,
                content=error_envelope(RATE_LIMIT_EXCEEDED, "Too many chat requests, please retry in a moment."),
            )
        return await call_next(request)
