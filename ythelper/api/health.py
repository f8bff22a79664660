from fastapi import APIRouter, Request
from redis.exceptions import RedisError

from ythelper.core.state import state
from ythelper.models.response import StatusResponse
from ythelper.utils.locale import get_locale
from ythelper.i18n import i18n

router = APIRouter()


@router.get("/", response_model=StatusResponse)
async def root(request: Request):
    """Root endpoint"""
    locale = get_locale(request.headers.get("accept-language"))
    return StatusResponse(ok=True, message=i18n.get("response.running", locale=locale))


@router.get("/health")
async def health_check():
    """Lightweight health check"""
    redis_status = i18n.get("response.redis_disabled")
    if state.redis:
        try:
            await state.redis.ping()
            redis_status = i18n.get("response.redis_connected")
        except (RedisError, OSError):
            redis_status = i18n.get("response.redis_disconnected")

    return {
        "status": i18n.get("response.health_ok"),
        "ytdlp_version": state.ytdlp_version,
        "redis": redis_status
    }
