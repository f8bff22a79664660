import logging
import math
import time
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict

from fastapi import Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ythelper.config.settings import config
from ythelper.infra.redis import get_redis
from ythelper.utils.locale import get_locale
from ythelper.i18n import i18n

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int

    def headers(self) -> Dict[str, str]:
        """IETF draft RateLimit-* headers"""
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_seconds),
        }


class SlidingWindowRateLimiter:
    """Sliding-window log per client: Redis sorted set when available, process memory otherwise"""

    def __init__(self):
        self._hits: Dict[str, Deque[int]] = {}
        self._last_sweep_ms = 0

        self.lua_script = """
        local key = KEYS[1]
        local now = tonumber(ARGV[1])
        local window = tonumber(ARGV[2])
        local limit = tonumber(ARGV[3])

        redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
        local count = redis.call('ZCARD', key)
        local allowed = 0
        if count < limit then
            redis.call('ZADD', key, now, ARGV[4])
            count = count + 1
            allowed = 1
        end
        redis.call('PEXPIRE', key, window)

        local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
        local oldest_ts = now
        if oldest[2] then
            oldest_ts = tonumber(oldest[2])
        end

        return {allowed, count, oldest_ts}
        """

    async def hit(self, client_id: str) -> RateLimitResult:
        """Record one request for `client_id` unless it is over the limit"""
        limit = config.rate_limit.max_requests
        window_ms = config.rate_limit.window_seconds * 1000
        now_ms = int(time.time() * 1000)

        redis = get_redis()
        if redis:
            try:
                allowed, count, oldest_ms = await redis.eval(
                    self.lua_script,
                    1,
                    f"rate:{client_id}",
                    now_ms,
                    window_ms,
                    limit,
                    f"{now_ms}:{uuid.uuid4().hex}"
                )
                return self._result(bool(allowed), limit, int(count), int(oldest_ms), now_ms, window_ms)
            except RedisError as e:
                logger.warning(f"Redis rate limiter unavailable, using in-memory window: {e}")

        if now_ms - self._last_sweep_ms >= window_ms:
            self._sweep(now_ms - window_ms)
            self._last_sweep_ms = now_ms

        hits = self._hits.setdefault(client_id, deque())
        while hits and hits[0] <= now_ms - window_ms:
            hits.popleft()

        allowed = len(hits) < limit
        if allowed:
            hits.append(now_ms)

        oldest_ms = hits[0] if hits else now_ms
        return self._result(allowed, limit, len(hits), oldest_ms, now_ms, window_ms)

    def _sweep(self, cutoff_ms: int) -> None:
        """Drop clients whose newest hit has left the window"""
        for client_id in [c for c, hits in self._hits.items() if not hits or hits[-1] <= cutoff_ms]:
            del self._hits[client_id]

    @staticmethod
    def _result(allowed: bool, limit: int, count: int, oldest_ms: int, now_ms: int, window_ms: int) -> RateLimitResult:
        reset_ms = max(oldest_ms + window_ms - now_ms, 0)
        return RateLimitResult(
            allowed=allowed,
            limit=limit,
            remaining=max(limit - count, 0),
            reset_seconds=math.ceil(reset_ms / 1000),
        )

    def reset(self) -> None:
        """Forget in-memory counters"""
        self._hits.clear()
        self._last_sweep_ms = 0


rate_limiter = SlidingWindowRateLimiter()


class RateLimitMiddleware:
    """
    Apply the per-client limit to every HTTP request.

    Allowed responses get RateLimit-* headers added to whatever the route
    sends, streaming bodies included; rejected requests get a 429.
    """

    def __init__(self, app: ASGIApp, limiter: SlidingWindowRateLimiter = rate_limiter) -> None:
        self.app = app
        self.limiter = limiter

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not config.rate_limit.enabled:
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        client_ip = request.client.host if request.client else "unknown"
        result = await self.limiter.hit(client_ip)

        if not result.allowed:
            locale = get_locale(request.headers.get("accept-language"))
            response = JSONResponse(
                {"error": i18n.get("error.rate_limit", locale=locale, seconds=result.reset_seconds)},
                status_code=429,
                headers={**result.headers(), "Retry-After": str(result.reset_seconds)},
            )
            await response(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in result.headers().items():
                    headers.append(name, value)
            await send(message)

        await self.app(scope, receive, send_with_headers)
